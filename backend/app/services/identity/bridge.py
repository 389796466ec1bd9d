"""Federated identity bridge: exchanges a provider access token for a session.

One invocation runs ``VERIFYING → RESOLVING → ISSUING`` strictly in order.
The caller gets either a complete ``BridgeResult`` or a single ``BridgeError``
carrying the failure reason; no partial result is ever returned.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

from app.core.exceptions import (
    BridgeError,
    BridgeFailure,
    InvalidTokenError,
    ProviderUnavailableError,
    SigningUnavailableError,
    StoreError,
)
from app.core.logging_config import get_logger
from app.core.metrics import track_federated_login
from app.services.identity.registry import ProviderRegistry, get_registry
from app.services.identity.resolver import Account, IdentityResolver
from app.services.identity.session import SessionCredential, SessionIssuer
from app.store.document_store import DocumentStore
from app.utils.logging_utils import redact_token

logger = logging.getLogger(__name__)
audit_logger = get_logger("app.audit.federated_login")

UNKNOWN_PROVIDER_LABEL = "unknown"


class BridgeStage(str, enum.Enum):
    RECEIVED = "received"
    VERIFYING = "verifying"
    RESOLVING = "resolving"
    ISSUING = "issuing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class BridgeResult:
    """Successful exchange: credential plus the account's public profile."""

    credential: SessionCredential
    account: Account

    @property
    def profile(self) -> dict[str, Any]:
        return self.account.public_profile()


class FederatedIdentityBridge:
    """Composes provider verification, account resolution and session issuing."""

    def __init__(
        self,
        store: DocumentStore,
        registry: Optional[ProviderRegistry] = None,
        issuer: Optional[SessionIssuer] = None,
    ) -> None:
        self._registry = registry or get_registry()
        self._resolver = IdentityResolver(store)
        self._issuer = issuer or SessionIssuer()

    async def exchange(
        self,
        provider_name: str,
        access_token: str,
        *,
        asserted_user_id: Optional[str] = None,
        asserted_email: Optional[str] = None,
    ) -> BridgeResult:
        """
        Exchange ``access_token`` for a session credential.

        Args:
            provider_name: Provider enum value ('vk', 'yandex')
            access_token: Provider OAuth access token
            asserted_user_id: Client-claimed provider user id (checked, never trusted)
            asserted_email: Client-claimed email (fallback default only)

        Raises:
            BridgeError: With reason INVALID_INPUT, UNAUTHORIZED, UPSTREAM_ERROR or INTERNAL_ERROR
        """
        stage = BridgeStage.RECEIVED
        try:
            provider = self._registry.get(provider_name or "")
            if provider is None:
                raise BridgeError(BridgeFailure.INVALID_INPUT, f"Unsupported provider: {provider_name}")
            if not access_token or not access_token.strip():
                raise BridgeError(BridgeFailure.INVALID_INPUT, "Missing required parameter: accessToken")

            stage = BridgeStage.VERIFYING
            try:
                profile = await provider.verify(access_token, asserted_user_id)
            except InvalidTokenError as exc:
                raise BridgeError(BridgeFailure.UNAUTHORIZED, str(exc) or "Invalid token") from exc
            except ProviderUnavailableError as exc:
                raise BridgeError(BridgeFailure.UPSTREAM_ERROR, "Identity provider unavailable") from exc

            stage = BridgeStage.RESOLVING
            try:
                account = await self._resolver.resolve(provider, profile, asserted_email)
            except StoreError as exc:
                logger.error("Account resolution failed for %s: %s", provider.provider_name, exc)
                raise BridgeError(BridgeFailure.INTERNAL_ERROR, "Internal server error") from exc

            stage = BridgeStage.ISSUING
            try:
                credential = await self._issuer.issue(account.local_id)
            except SigningUnavailableError as exc:
                raise BridgeError(BridgeFailure.INTERNAL_ERROR, "Internal server error") from exc

        except BridgeError as exc:
            self._record_failure(provider_name, access_token, stage, exc)
            raise
        except Exception as exc:
            logger.exception("Unexpected federated login failure at stage=%s", stage.value)
            error = BridgeError(BridgeFailure.INTERNAL_ERROR, "Internal server error")
            self._record_failure(provider_name, access_token, stage, error)
            raise error from exc

        track_federated_login(provider.provider_name, BridgeStage.COMPLETED.value)
        audit_logger.info(
            "federated_login",
            provider=provider.provider_name,
            local_id=account.local_id,
            account_created=account.created,
            stage=BridgeStage.COMPLETED.value,
        )
        return BridgeResult(credential=credential, account=account)

    def _record_failure(
        self, provider_name: str, access_token: str, stage: BridgeStage, error: BridgeError
    ) -> None:
        # Metric labels are limited to enabled providers
        known = self._registry.get(provider_name or "")
        label = known.provider_name if known is not None else UNKNOWN_PROVIDER_LABEL
        track_federated_login(label, error.reason.value)
        audit_logger.warning(
            "federated_login",
            provider=provider_name,
            token=redact_token(access_token),
            stage=BridgeStage.FAILED.value,
            failed_at=stage.value,
            reason=error.reason.value,
            error=error.message,
        )
