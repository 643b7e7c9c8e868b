"""Client-side notification inbox with optimistic mark-read and clear."""
import copy
import logging

logger = logging.getLogger(__name__)


class NotificationInbox:
    def __init__(self, transport):
        self._transport = transport
        self.items: list[dict] = []

    @property
    def unread_count(self) -> int:
        return sum(1 for item in self.items if not item["read"])

    async def refresh(self):
        result = await self._transport.list_notifications()
        if result.ok:
            self.items = result.data
        return result

    async def open(self):
        """Mark everything read locally, then on the server; revert on failure."""
        before = copy.deepcopy(self.items)
        for item in self.items:
            item["read"] = True
        result = await self._transport.mark_all_read()
        if not result.ok:
            logger.info("Mark-read failed, restoring inbox: %s", result.message)
            self.items = before
        return result

    async def clear(self):
        before = self.items
        self.items = []
        result = await self._transport.clear_notifications()
        if not result.ok:
            logger.info("Clear failed, restoring inbox: %s", result.message)
            self.items = before
        return result
