"""Celery tasks for notification housekeeping."""

import logging

from celery import shared_task

from .services import delete_old_notifications

logger = logging.getLogger(__name__)


@shared_task
def cleanup_old_notifications_task(days=None):
    """Periodic sweep deleting notifications past the retention window."""
    deleted = delete_old_notifications(days)
    logger.info("Notification cleanup removed %d row(s)", deleted)
    return deleted
