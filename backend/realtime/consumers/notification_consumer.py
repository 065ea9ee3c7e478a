"""WebSocket consumer streaming ride notifications to the signed-in user."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from notifications.models import Notification
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class NotificationConsumer(BaseConsumer):
    """
    Handles:
        - Forwarding ride_notification events sent to user_<id>
        - Marking notifications read from the client
    """

    async def on_connect(self):
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "unread_count": await self._unread_count(),
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        if msg_type == "ping":
            await self.send_json({"type": "pong"})
        elif msg_type == "mark_read":
            notification_id = data.get("notification_id")
            if not notification_id:
                await self.send_error("mark_read requires notification_id")
                return
            await self._mark_read(notification_id)
            await self.send_json({
                "type": "marked_read",
                "notification_id": notification_id,
                "unread_count": await self._unread_count(),
            })
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Server Events ----------------------

    async def ride_notification(self, event):
        """Sent by ChannelsNotifier whenever a ride change concerns this user."""
        await self.send_json({
            "type": "notification",
            "notification_id": event.get("notification_id"),
            "title": event.get("title"),
            "message": event.get("message"),
            "metadata": event.get("metadata", {}),
            "url": event.get("url"),
        })

    # ---------------------- DB Helpers ----------------------

    @database_sync_to_async
    def _unread_count(self) -> int:
        return Notification.objects.filter(user_id=self.user_id, read=False).count()

    @database_sync_to_async
    def _mark_read(self, notification_id):
        Notification.objects.filter(id=notification_id, user_id=self.user_id).update(read=True)
