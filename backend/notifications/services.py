"""Notification history: retention and bookkeeping."""

import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from .models import Notification

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30


def retention_days() -> int:
    return getattr(settings, "RIDESHARE", {}).get("NOTIFICATION_RETENTION_DAYS", DEFAULT_RETENTION_DAYS)


def old_notifications(days: Optional[int] = None, user_id=None):
    cutoff = timezone.now() - timedelta(days=days if days is not None else retention_days())
    qs = Notification.objects.filter(created_at__lt=cutoff)
    if user_id is not None:
        qs = qs.filter(user_id=user_id)
    return qs


def delete_old_notifications(days: Optional[int] = None, user_id=None) -> int:
    """Delete notifications older than the retention window. Returns the number removed."""
    deleted, _ = old_notifications(days, user_id).delete()
    if deleted:
        logger.info("Deleted %d notification(s) past retention", deleted)
    return deleted
