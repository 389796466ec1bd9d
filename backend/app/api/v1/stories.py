"""Story API endpoints.

Creating a story triggers retention pruning for the account in a worker.
"""

from typing import List

from fastapi import APIRouter, Depends, Query, status

from app.dependencies import get_current_account, get_document_store
from app.schemas.content import StoryCreate, StoryResponse, from_snapshot
from app.services.identity.resolver import Account
from app.store.document_store import DocumentStore
from app.store.paths import STORIES, account_collection
from app.utils.datetime_utils import isoformat, utc_now

router = APIRouter()


@router.post("/", response_model=StoryResponse, status_code=status.HTTP_201_CREATED)
async def create_story(
    story: StoryCreate,
    current_account: Account = Depends(get_current_account),
    store: DocumentStore = Depends(get_document_store),
):
    """Save a generated story."""
    data = story.model_dump(by_alias=True, exclude_none=True)
    data["createdAt"] = isoformat(utc_now())
    snapshot = await store.add(account_collection(current_account.local_id, STORIES), data)
    return from_snapshot(StoryResponse, snapshot)


@router.get("/", response_model=List[StoryResponse])
async def list_stories(
    limit: int = Query(50, ge=1, le=100),
    current_account: Account = Depends(get_current_account),
    store: DocumentStore = Depends(get_document_store),
):
    """List the account's stories, newest first."""
    stories = await store.list_collection(
        account_collection(current_account.local_id, STORIES), descending=True, limit=limit
    )
    return [from_snapshot(StoryResponse, story) for story in stories]
