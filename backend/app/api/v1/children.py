"""Child profile API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, status

from app.dependencies import get_current_account, get_document_store
from app.schemas.content import ChildCreate, ChildResponse, from_snapshot
from app.services.identity.resolver import Account
from app.store.document_store import DocumentStore
from app.store.paths import CHILDREN, account_collection

router = APIRouter()


@router.post("/", response_model=ChildResponse, status_code=status.HTTP_201_CREATED)
async def create_child(
    child: ChildCreate,
    current_account: Account = Depends(get_current_account),
    store: DocumentStore = Depends(get_document_store),
):
    """Create a child profile with its virtual pet."""
    snapshot = await store.add(
        account_collection(current_account.local_id, CHILDREN),
        child.model_dump(by_alias=True),
    )
    return from_snapshot(ChildResponse, snapshot)


@router.get("/", response_model=List[ChildResponse])
async def list_children(
    current_account: Account = Depends(get_current_account),
    store: DocumentStore = Depends(get_document_store),
):
    """List the account's child profiles, oldest first."""
    children = await store.list_collection(account_collection(current_account.local_id, CHILDREN))
    return [from_snapshot(ChildResponse, child) for child in children]
