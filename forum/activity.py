"""Notification queue: collect activities during a request, write them once."""

import logging

from .models import Activity

logger = logging.getLogger(__name__)


class ActivityQueue:
    """
    Buffers Activity rows until flush().

    Queueing a second activity for the same recipient and channel replaces
    the first, so a recipient gets one notification per channel per flush.
    """

    def __init__(self):
        self._queue = {}

    def __len__(self):
        return len(self._queue)

    def queue(self, activity, channel):
        """
        Add an activity for later delivery.

        Args:
            activity: dict of Activity field values; must include notify_user_id
            channel: Delivery channel name (stored on the row)
        """
        key = (activity['notify_user_id'], channel)
        self._queue[key] = {**activity, 'channel': channel}

    def flush(self):
        """Write all queued activities in one batch and empty the queue."""
        if not self._queue:
            return []
        rows = Activity.objects.bulk_create([Activity(**fields) for fields in self._queue.values()])
        logger.info(f"Flushed {len(rows)} queued activities")
        self._queue.clear()
        return rows
