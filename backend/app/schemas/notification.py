"""Notification schemas."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.services.notification_service import NotificationType


class NotificationResponse(BaseModel):
    """Schema for notification response."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    type: NotificationType
    title: str
    message: str
    is_read: bool = Field(False, alias="isRead")
    achievement_id: Optional[str] = Field(None, alias="achievementId")
    created_at: Optional[str] = Field(None, alias="createdAt")
    read_at: Optional[str] = Field(None, alias="readAt")


class UnreadCountResponse(BaseModel):
    """Schema for unread count response."""

    count: int
