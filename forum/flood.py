"""
Flood control.

A FloodGate counts how often a user performs one kind of action. Posting
more than `threshold` times within `time_span` seconds locks the user out of
that action for `lock_time` seconds.

Counters live in the Django cache. cache.add() creates the counter with the
window as its timeout and cache.incr() bumps it atomically, so two requests
from the same user cannot both slip under the threshold.
"""

import logging

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

DEFAULT_FLOOD_CONTROL = {
    'threshold': 5,
    'time_span': 60,
    'lock_time': 120,
}


class FloodGate:
    def __init__(self, scope, threshold=5, time_span=60, lock_time=120):
        self.scope = scope
        self.threshold = threshold
        self.time_span = time_span
        self.lock_time = lock_time

    @classmethod
    def configure(cls, scope):
        """Build a gate from FLOOD_CONTROL[scope], falling back to defaults."""
        conf = {**DEFAULT_FLOOD_CONTROL, **getattr(settings, 'FLOOD_CONTROL', {}).get(scope, {})}
        return cls(scope, **conf)

    def _keys(self, user_id):
        base = f"flood:{self.scope}:{user_id}"
        return f"{base}:count", f"{base}:lock"

    def is_locked(self, user_id):
        return cache.get(self._keys(user_id)[1]) is not None

    def is_spamming(self, user):
        """
        Record one action for `user` and report whether they are flooding.

        Returns:
            bool: True while the user is locked out of this scope
        """
        if user.has_perm('forum.moderate'):
            return False

        count_key, lock_key = self._keys(user.pk)
        if cache.get(lock_key) is not None:
            return True

        cache.add(count_key, 0, self.time_span)
        try:
            count = cache.incr(count_key)
        except ValueError:
            # Counter expired between add() and incr().
            cache.add(count_key, 1, self.time_span)
            count = 1

        if count > self.threshold:
            cache.set(lock_key, count, self.lock_time)
            cache.delete(count_key)
            logger.warning(
                f"Flood control: user {user.pk} locked out of {self.scope} for {self.lock_time}s"
            )
            return True
        return False

    def reset(self, user_id):
        cache.delete_many(list(self._keys(user_id)))
