"""
Default Notifier implementation.

Each notification is:
1. stored in the notifications table (history, unread badge, replay)
2. pushed over the channel layer to the user's personal group: user_<user_id>

The user's notifications past the retention window are pruned on insert.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from notifications.models import Notification
from notifications.services import delete_old_notifications

logger = logging.getLogger(__name__)


def user_group(user_id) -> str:
    return f"user_{user_id}"


class ChannelsNotifier:
    def notify(
        self,
        user_id: int,
        title: str,
        body: str,
        metadata: Dict[str, Any],
        deep_link: Optional[str] = None,
    ) -> None:
        metadata = dict(metadata or {})
        if deep_link:
            metadata["url"] = deep_link

        notification = Notification.objects.create(
            user_id=user_id,
            title=title,
            message=body,
            metadata=metadata,
        )
        delete_old_notifications(user_id=user_id)

        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning("No channel layer configured; notification %s stored only", notification.id)
            return

        payload = {
            "type": "ride_notification",
            "notification_id": str(notification.id),
            "title": title,
            "message": body,
            "metadata": metadata,
            "url": deep_link,
        }
        logger.debug("WS -> %s: %s", user_group(user_id), payload)
        async_to_sync(channel_layer.group_send)(user_group(user_id), payload)
