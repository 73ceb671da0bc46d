# gunicorn.conf.py
import os

wsgi_app = "forumsite.wsgi:application"

# Worker configuration
workers = int(os.getenv("GUNICORN_WORKERS", 2))
worker_class = "sync"
timeout = int(os.getenv("GUNICORN_TIMEOUT", 120))
keepalive = 2
max_requests = 1000
max_requests_jitter = 50

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# Process naming
proc_name = "forum-app"

# Bind address
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# Behind a proxy: trust X-Forwarded-*. Set TRUSTED_PROXY_COUNT for ClientIPMiddleware too.
forwarded_allow_ips = os.getenv("FORWARDED_ALLOW_IPS", "*")
