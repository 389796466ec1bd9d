"""Celery task fanning out a notification for an unlocked achievement."""

import logging

from app.workers.celery_app import celery_app
from app.workers.runtime import invocation_store, run_task

logger = logging.getLogger(__name__)


@celery_app.task(name="notify_achievement_unlocked")
def notify_achievement_unlocked(account_id: str, achievement_id: str, achievement: dict):
    """
    Create the notification for a newly created achievement.

    Retries are safe: the notification is keyed by the achievement id and
    written create-if-absent.

    Returns:
        Path of the created notification, or None
    """

    async def _run():
        from app.services.notification_service import NotificationService

        async with invocation_store() as store:
            notification = await NotificationService.create_achievement_notification(
                store, account_id, achievement_id, achievement
            )
        return notification.path if notification else None

    return run_task("notify_achievement_unlocked", _run)
