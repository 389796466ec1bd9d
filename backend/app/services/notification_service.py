"""Service for creating and managing account notifications."""

import enum
import logging
from typing import Any, List, Optional

from app.core.exceptions import AlreadyExistsError, DocumentNotFoundError
from app.core.metrics import track_achievement_notification
from app.store.document_store import DocumentSnapshot, DocumentStore
from app.store.paths import ACCOUNTS, NOTIFICATIONS, account_collection, join_path
from app.utils.datetime_utils import isoformat, utc_now

logger = logging.getLogger(__name__)


class NotificationType(str, enum.Enum):
    """Type of notification."""

    ACHIEVEMENT = "achievement"


ACHIEVEMENT_TITLE = "Новое достижение!"
ACHIEVEMENT_MESSAGE = 'Поздравляем! Вы разблокировали достижение "{title}"'


class NotificationService:
    """Service for creating and managing notifications."""

    @staticmethod
    async def create_achievement_notification(
        store: DocumentStore,
        account_id: str,
        achievement_id: str,
        achievement: dict[str, Any],
    ) -> Optional[DocumentSnapshot]:
        """
        Create the notification for a newly created achievement.

        Only unlocked achievements produce a notification. The notification
        reuses the achievement id and is written create-if-absent, so a
        redelivered trigger cannot create a second one. The achievement itself
        is never modified.

        Args:
            store: Document store for this invocation
            account_id: Owning account local id
            achievement_id: Id of the created achievement document
            achievement: Achievement document content

        Returns:
            Created notification, or None when nothing was written
        """
        if achievement.get("unlocked") is not True:
            track_achievement_notification("skipped_locked")
            logger.debug(
                "Achievement %s for account=%s is locked, no notification",
                achievement_id,
                account_id,
            )
            return None

        title = str(achievement.get("title") or "")
        path = join_path(ACCOUNTS, account_id, NOTIFICATIONS, achievement_id)
        try:
            notification = await store.create(
                path,
                {
                    "type": NotificationType.ACHIEVEMENT.value,
                    "title": ACHIEVEMENT_TITLE,
                    "message": ACHIEVEMENT_MESSAGE.format(title=title),
                    "isRead": False,
                    "createdAt": isoformat(utc_now()),
                    "achievementId": achievement_id,
                },
            )
        except AlreadyExistsError:
            track_achievement_notification("duplicate")
            logger.info("Notification for achievement %s already exists, skipping", achievement_id)
            return None

        track_achievement_notification("created")
        logger.info(
            "Created achievement notification %s for account=%s",
            notification.path,
            account_id,
        )
        return notification

    @staticmethod
    async def get_account_notifications(
        store: DocumentStore,
        account_id: str,
        include_read: bool = False,
        limit: int = 50,
    ) -> List[DocumentSnapshot]:
        """
        Get notifications for an account, newest first.

        Args:
            store: Document store
            account_id: Owning account local id
            include_read: Include already-read notifications
            limit: Maximum number to return
        """
        notifications = await store.list_collection(
            account_collection(account_id, NOTIFICATIONS), descending=True
        )
        if not include_read:
            notifications = [n for n in notifications if not n.data.get("isRead")]
        return notifications[:limit]

    @staticmethod
    async def get_unread_count(store: DocumentStore, account_id: str) -> int:
        """Get count of unread notifications."""
        unread = await NotificationService.get_account_notifications(
            store, account_id, include_read=False, limit=10_000
        )
        return len(unread)

    @staticmethod
    async def mark_as_read(
        store: DocumentStore,
        account_id: str,
        notification_id: str,
    ) -> Optional[DocumentSnapshot]:
        """Mark notification as read; returns None if it does not exist."""
        path = join_path(ACCOUNTS, account_id, NOTIFICATIONS, notification_id)
        try:
            await store.update(path, {"isRead": True, "readAt": isoformat(utc_now())})
        except DocumentNotFoundError:
            return None
        return await store.get(path)


notification_service = NotificationService()
