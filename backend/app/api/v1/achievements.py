"""Achievement API endpoints.

Achievements are immutable once created; an unlocked one produces a
notification through the achievement trigger.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from app.dependencies import get_current_account, get_document_store
from app.schemas.content import AchievementCreate, AchievementResponse, from_snapshot
from app.services.identity.resolver import Account
from app.store.document_store import DocumentStore
from app.store.paths import ACHIEVEMENTS, account_collection
from app.utils.datetime_utils import isoformat, utc_now

router = APIRouter()


@router.post("/", response_model=AchievementResponse, status_code=status.HTTP_201_CREATED)
async def create_achievement(
    achievement: AchievementCreate,
    current_account: Account = Depends(get_current_account),
    store: DocumentStore = Depends(get_document_store),
):
    """Record an achievement."""
    data = achievement.model_dump()
    data["createdAt"] = isoformat(utc_now())
    snapshot = await store.add(account_collection(current_account.local_id, ACHIEVEMENTS), data)
    return from_snapshot(AchievementResponse, snapshot)


@router.get("/", response_model=List[AchievementResponse])
async def list_achievements(
    current_account: Account = Depends(get_current_account),
    store: DocumentStore = Depends(get_document_store),
):
    """List the account's achievements, oldest first."""
    achievements = await store.list_collection(
        account_collection(current_account.local_id, ACHIEVEMENTS)
    )
    return [from_snapshot(AchievementResponse, a) for a in achievements]
