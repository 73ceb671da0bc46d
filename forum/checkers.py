"""
Spam checkers consulted by SpamModel.

A checker is any object with an evaluate(record_type, data, options) method
returning True when it considers the record spam. Checkers are listed in the
SPAM_CHECKERS setting:

    SPAM_CHECKERS = [
        {'NAME': 'forum.checkers.BlockedWordsChecker'},
        {'NAME': 'forum.checkers.StopForumSpamChecker', 'OPTIONS': {'ip_threshold': 5}},
    ]
"""

import logging
import re
from typing import Protocol

import requests
from django.conf import settings
from django.core.cache import cache
from django.utils.module_loading import import_string

from .models import RecordType

logger = logging.getLogger(__name__)


class SpamChecker(Protocol):
    def evaluate(self, record_type: str, data: dict, options: dict) -> bool:
        ...


def load_checkers(config=None):
    """Instantiate the checkers described by SPAM_CHECKERS (or `config`)."""
    if config is None:
        config = getattr(settings, 'SPAM_CHECKERS', [])
    checkers = []
    for entry in config:
        checker_class = import_string(entry['NAME'])
        checkers.append(checker_class(**entry.get('OPTIONS', {})))
    return checkers


class BlockedWordsChecker:
    """Flags records whose name, body or username contains a blocked word."""

    fields = ('name', 'body', 'username')

    def __init__(self, words=None):
        if words is None:
            words = getattr(settings, 'SPAM_BLOCKED_WORDS', [])
        self.words = {w.lower() for w in words if w}

    def evaluate(self, record_type, data, options):
        if not self.words:
            return False
        for field in self.fields:
            tokens = set(re.findall(r"[\w']+", str(data.get(field) or '').lower()))
            hits = tokens & self.words
            if hits:
                data.setdefault('spam_reasons', []).append(f"blocked words in {field}: {', '.join(sorted(hits))}")
                return True
        return False


class StopForumSpamChecker:
    """
    Looks the author's IP, email and username up on StopForumSpam.

    A record is spam when the IP has been reported at least `ip_threshold`
    times or the email at least `email_threshold` times. Lookups are cached
    for `cache_seconds`; an unreachable API counts as "not spam".
    """

    record_types = (RecordType.REGISTRATION, RecordType.COMMENT, RecordType.DISCUSSION)

    def __init__(self, url=None, ip_threshold=None, email_threshold=None, timeout=None, cache_seconds=60):
        conf = getattr(settings, 'STOP_FORUM_SPAM', {})
        self.url = url or conf.get('URL', 'https://api.stopforumspam.org/api')
        self.ip_threshold = ip_threshold if ip_threshold is not None else conf.get('IP_THRESHOLD', 5)
        self.email_threshold = email_threshold if email_threshold is not None else conf.get('EMAIL_THRESHOLD', 20)
        self.timeout = timeout or conf.get('TIMEOUT', 8)
        self.cache_seconds = cache_seconds

    def lookup(self, ip_address=None, email=None, username=None):
        params = {'json': '1'}
        if ip_address:
            params['ip'] = ip_address
        if email:
            params['email'] = email
        if username:
            params['username'] = username
        if len(params) == 1:
            return {}

        cache_key = "stopforumspam:" + ":".join(f"{k}={v}" for k, v in sorted(params.items()))
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            response = requests.get(
                self.url,
                params=params,
                timeout=self.timeout,
                headers={"User-Agent": "Forum/1.0 (spam check)"}
            )
            response.raise_for_status()
            result = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"StopForumSpam lookup failed: {e}")
            return {}

        if not result.get('success'):
            logger.warning(f"StopForumSpam returned an error: {result.get('error', 'unknown')}")
            return {}

        cache.set(cache_key, result, self.cache_seconds)
        return result

    def evaluate(self, record_type, data, options):
        if record_type not in self.record_types:
            return False

        result = self.lookup(
            ip_address=data.get('ip_address'),
            email=data.get('email'),
            username=data.get('username'),
        )
        ip_frequency = (result.get('ip') or {}).get('frequency', 0)
        email_frequency = (result.get('email') or {}).get('frequency', 0)

        if ip_frequency >= self.ip_threshold or email_frequency >= self.email_threshold:
            data.setdefault('spam_reasons', []).append(
                f"stopforumspam: ip={ip_frequency} email={email_frequency}"
            )
            return True
        return False
