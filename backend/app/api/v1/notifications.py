"""Notification API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from app.dependencies import get_current_account, get_document_store
from app.schemas.content import from_snapshot
from app.schemas.notification import NotificationResponse, UnreadCountResponse
from app.services.identity.resolver import Account
from app.services.notification_service import notification_service
from app.store.document_store import DocumentStore
from app.store.paths import is_valid_segment

router = APIRouter()


@router.get("/", response_model=List[NotificationResponse])
async def list_notifications(
    include_read: bool = False,
    limit: int = 50,
    current_account: Account = Depends(get_current_account),
    store: DocumentStore = Depends(get_document_store),
):
    """Get notifications for the current account, newest first."""
    notifications = await notification_service.get_account_notifications(
        store,
        current_account.local_id,
        include_read=include_read,
        limit=limit,
    )
    return [from_snapshot(NotificationResponse, n) for n in notifications]


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    current_account: Account = Depends(get_current_account),
    store: DocumentStore = Depends(get_document_store),
):
    """Get count of unread notifications."""
    count = await notification_service.get_unread_count(store, current_account.local_id)
    return {"count": count}


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    current_account: Account = Depends(get_current_account),
    store: DocumentStore = Depends(get_document_store),
):
    """Mark a notification as read."""
    if not is_valid_segment(notification_id):
        raise HTTPException(status_code=404, detail="Notification not found")

    notification = await notification_service.mark_as_read(
        store, current_account.local_id, notification_id
    )
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")

    return from_snapshot(NotificationResponse, notification)
