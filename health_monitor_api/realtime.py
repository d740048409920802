# realtime.py
"""Insert notifications over the Channels layer.

Rows inserted into ``readings`` or ``alerts`` are published to a per-subject
group. Consumers hold an :class:`InsertSubscription` for the groups they
watch; it is acquired once and released exactly once.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

TABLES = ("readings", "alerts")


def group_name(table, subject_id):
    if table not in TABLES:
        raise ValueError(f"Unknown table: {table}")
    return f"{table}.{subject_id}"


def insert_event(table, row):
    return {"type": "row.insert", "table": table, "row": row}


def publish_insert(table, subject_id, row):
    """Broadcast a new row. Failures are logged, never raised to the writer."""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False
    try:
        async_to_sync(channel_layer.group_send)(group_name(table, subject_id), insert_event(table, row))
    except Exception:
        logger.exception("Realtime publish failed for %s of subject %s", table, subject_id)
        return False
    return True


class InsertSubscription:
    """Scoped membership of one channel in one or more insert groups."""

    def __init__(self, channel_layer, channel_name, table, subject_ids):
        self.channel_layer = channel_layer
        self.channel_name = channel_name
        self.groups = [group_name(table, subject_id) for subject_id in subject_ids]
        self.acquired = False
        self.released = False

    async def acquire(self):
        if self.acquired:
            raise RuntimeError("Subscription already acquired")
        self.acquired = True
        for group in self.groups:
            await self.channel_layer.group_add(group, self.channel_name)
        return self

    async def release(self):
        if not self.acquired or self.released:
            return
        self.released = True
        for group in self.groups:
            await self.channel_layer.group_discard(group, self.channel_name)

    async def __aenter__(self):
        return await self.acquire()

    async def __aexit__(self, exc_type, exc, tb):
        await self.release()
