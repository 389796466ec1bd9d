"""Federated login endpoints."""

import logging

from fastapi import APIRouter, Depends

from app.schemas.auth import (
    ErrorResponse,
    FederatedLoginRequest,
    FederatedLoginResponse,
    PublicProfile,
    SessionCredentialResponse,
)
from app.dependencies import get_bridge
from app.services.identity.bridge import FederatedIdentityBridge

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/{provider}",
    response_model=FederatedLoginResponse,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def federated_login(
    provider: str,
    body: FederatedLoginRequest,
    bridge: FederatedIdentityBridge = Depends(get_bridge),
):
    """
    Exchange a VK or Yandex access token for a session credential.

    The account for ``(provider, provider user id)`` is created on first login
    and reused afterwards. Failures are mapped to ``{error}`` responses by the
    ``BridgeError`` exception handler.
    """
    result = await bridge.exchange(
        provider,
        body.access_token,
        asserted_user_id=body.user_id,
        asserted_email=body.email,
    )

    account = result.account
    return FederatedLoginResponse(
        credential=SessionCredentialResponse(
            token=result.credential.token,
            token_type=result.credential.token_type,
            expires_at=result.credential.expires_at,
        ),
        profile=PublicProfile(
            local_id=account.local_id,
            display_name=account.display_name,
            photo_url=account.photo_url,
        ),
    )
