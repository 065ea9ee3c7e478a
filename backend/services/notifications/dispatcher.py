"""
Notification fan-out.

The ledger hands over a list of RideNotification values after its
transaction commits; each one is delivered independently so a single
failing recipient never stops the rest of the batch.
"""

import logging
from typing import Any, Dict, Iterable, Optional, Protocol

from django.conf import settings
from django.utils.module_loading import import_string

from .messages import RideNotification

logger = logging.getLogger(__name__)

DEFAULT_NOTIFIER = "realtime.notifications.ChannelsNotifier"


class Notifier(Protocol):
    def notify(
        self,
        user_id: int,
        title: str,
        body: str,
        metadata: Dict[str, Any],
        deep_link: Optional[str] = None,
    ) -> None:
        ...


class NotificationDispatcher:
    def __init__(self, notifier: Notifier):
        self.notifier = notifier

    def dispatch(self, notifications: Iterable[RideNotification]) -> int:
        """Deliver each notification once. Returns how many were handed off successfully."""
        delivered = 0
        for notification in notifications:
            try:
                self.notifier.notify(
                    notification.user_id,
                    notification.title(),
                    notification.body(),
                    notification.metadata(),
                    notification.deep_link(),
                )
            except Exception:
                logger.exception(
                    "Failed to notify user %s (%s)", notification.user_id, notification.action
                )
                continue
            delivered += 1
        return delivered


def get_default_notifier() -> Notifier:
    """Instantiate the notifier class named by settings.RIDESHARE['NOTIFIER']."""
    config = getattr(settings, "RIDESHARE", {})
    notifier_class = import_string(config.get("NOTIFIER", DEFAULT_NOTIFIER))
    return notifier_class()
