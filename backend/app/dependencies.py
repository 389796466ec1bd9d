"""FastAPI dependencies for the document store and session authentication."""

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.security import decode_session_token
from app.services.identity.bridge import FederatedIdentityBridge
from app.services.identity.resolver import Account
from app.store.document_store import DocumentStore
from app.store.paths import account_path, is_valid_segment
from app.workers.triggers import dispatch_document_created

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme; missing headers are reported as 401 below
security = HTTPBearer(auto_error=False)


async def get_document_store(db: AsyncSession = Depends(get_db)) -> DocumentStore:
    """Document store bound to the request's session, wired to the store-event triggers."""
    return DocumentStore(db, on_create=dispatch_document_created)


async def get_bridge(
    store: DocumentStore = Depends(get_document_store),
) -> FederatedIdentityBridge:
    """Federated identity bridge for one login invocation."""
    return FederatedIdentityBridge(store)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_account(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    store: DocumentStore = Depends(get_document_store),
) -> Account:
    """
    Get the current account from a session credential.

    Args:
        credentials: HTTP Bearer credentials
        store: Document store

    Returns:
        Current account

    Raises:
        HTTPException: If the credential is missing, invalid, or the account no longer exists
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        payload = decode_session_token(credentials.credentials)
    except JWTError as exc:
        logger.debug("Rejected session credential: %s", exc)
        raise _unauthorized("Could not validate credentials")

    local_id = payload["sub"]
    if not is_valid_segment(local_id):
        raise _unauthorized("Could not validate credentials")

    snapshot = await store.get(account_path(local_id))
    if snapshot is None:
        raise _unauthorized("Could not validate credentials")

    return Account.from_document(snapshot.data)
