"""Authenticated JSON consumer bound to the user's personal channel group."""

import logging
from typing import Dict, Any

from channels.generic.websocket import AsyncJsonWebsocketConsumer

from realtime.notifications import user_group

logger = logging.getLogger(__name__)


class BaseConsumer(AsyncJsonWebsocketConsumer):
    """
    Rejects anonymous connections and subscribes the socket to ``user_<id>``,
    where ChannelsNotifier sends events.

    Subclasses override on_connect() and handle_message(msg_type, data).
    """

    personal_group = None

    async def connect(self):
        user = self.scope.get("user")
        if user is None or user.is_anonymous:
            await self.close()
            return

        self.user_id = user.id
        self.personal_group = user_group(self.user_id)
        await self.channel_layer.group_add(self.personal_group, self.channel_name)

        await self.accept()
        await self.on_connect()

    async def on_connect(self):
        await self.send_json({"type": "connection_established", "user_id": self.user_id})

    async def disconnect(self, close_code):
        if self.personal_group is None:
            return
        try:
            await self.channel_layer.group_discard(self.personal_group, self.channel_name)
        except Exception:
            logger.exception("Error leaving %s on disconnect", self.personal_group)

    async def receive_json(self, data: Dict[str, Any]):
        """Route incoming messages to handle_message by their ``type``."""
        msg_type = data.get("type")
        if not msg_type:
            await self.send_error("Message type is required")
            return

        try:
            await self.handle_message(msg_type, data)
        except Exception:
            logger.exception("Error handling message type %s", msg_type)
            await self.send_error(f"Error processing {msg_type}")

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        await self.send_error(f"Unknown message type: {msg_type}")

    async def send_error(self, message: str):
        await self.send_json({"type": "error", "message": message})
