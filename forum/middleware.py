"""
================================================================================
FORUM - CUSTOM MIDDLEWARE
================================================================================

@file        middleware.py
@description Client IP resolution and last-IP tracking
@version     1.0.0

MODULE PURPOSE
================================================================================
ClientIPMiddleware
   - Resolves the client IP once per request and stores it on
     request.client_ip (used by the spam dispatcher and registration)
   - Refreshes the authenticated user's last_ip_address
   - Uses the cache to avoid a database write on every request

CACHING STRATEGY
================================================================================
Write Throttle Cache:
   Key: "last_ip_update_{user_id}"
   Value: the IP written most recently
   TTL: LAST_IP_UPDATE_INTERVAL seconds (default 60)

A database write happens when the cache has no entry for the user or the
cached IP differs from the request's IP.

PROXIES
================================================================================
X-Forwarded-For is only read when TRUSTED_PROXY_COUNT is set to the number
of proxies in front of gunicorn (see gunicorn.conf.py). The client address is
the hop that many entries from the right end of the header; hops to its left
are client-supplied and ignored. Without trusted proxies, or when the chosen
hop is not a valid IP address, REMOTE_ADDR is used.

ERROR HANDLING
================================================================================
A failed last_ip_address write is logged and the request continues.

================================================================================
"""

import ipaddress
import logging

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """
    Return the IP address the request came from, or None.

    Args:
        request: Django HttpRequest object (may be None)

    Returns:
        str | None: The X-Forwarded-For hop added by the client-facing
            proxy, else REMOTE_ADDR; None when neither is a valid IP
    """
    if request is None:
        return None
    resolved = getattr(request, 'client_ip', None)
    if resolved:
        return resolved

    proxy_count = getattr(settings, 'TRUSTED_PROXY_COUNT', 0)
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if proxy_count > 0 and forwarded:
        hops = [hop.strip() for hop in forwarded.split(',')]
        if len(hops) >= proxy_count:
            client_hop = valid_ip(hops[-proxy_count])
            if client_hop:
                return client_hop
    return valid_ip(request.META.get('REMOTE_ADDR'))


def valid_ip(value):
    """Return `value` normalized if it is an IPv4/IPv6 address, else None."""
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


class ClientIPMiddleware:
    """
    Resolve the client IP and keep User.last_ip_address current.

    Flow:
        1. Resolve the IP and attach it as request.client_ip
        2. For authenticated users, compare against the throttle cache
        3. Write last_ip_address when the cache is cold or the IP changed
        4. Continue to the next middleware/view

    Performance:
        - Anonymous users: no cache or database access
        - Authenticated users: one cache read, one write per interval
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.client_ip = get_client_ip(request)

        user = getattr(request, 'user', None)
        if user is not None and user.is_authenticated and request.client_ip:
            self._update_last_ip(user, request.client_ip)

        return self.get_response(request)

    def _update_last_ip(self, user, ip_address):
        cache_key = f"last_ip_update_{user.pk}"
        if cache.get(cache_key) == ip_address:
            return

        user.last_ip_address = ip_address
        try:
            user.save(update_fields=['last_ip_address'])
        except Exception:
            logger.exception("Failed to update last_ip_address for user %s", user.pk)
            return

        cache.set(cache_key, ip_address, getattr(settings, 'LAST_IP_UPDATE_INTERVAL', 60))
