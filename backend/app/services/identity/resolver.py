"""Identity resolver: maps a verified provider identity to a local account.

The local account id is a pure function of ``(provider, provider_user_id)``,
so repeated or concurrent logins for the same external identity address the
same document without a secondary index or lock. Creation goes through the
store's create-if-absent primitive; the loser of a creation race re-reads the
winner's document instead of failing.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from app.core.exceptions import AlreadyExistsError, StoreUnavailableError
from app.core.metrics import track_account_created
from app.services.identity.base import FederatedProvider, VerifiedProfile
from app.store.document_store import DocumentStore
from app.store.paths import account_path
from app.utils.datetime_utils import isoformat, utc_now
from app.utils.logging_utils import redact_email

logger = logging.getLogger(__name__)


def local_id_for(provider: str, provider_user_id: str) -> str:
    """Deterministic local account id, e.g. ``vk:42``."""
    if not provider or not provider_user_id:
        raise ValueError("provider and provider_user_id are required")
    return f"{provider}:{provider_user_id}"


@dataclass
class Account:
    """Local account bound to one provider identity."""

    local_id: str
    provider: str
    provider_user_id: str
    email: str
    display_name: str
    photo_url: Optional[str]
    created_at: str
    last_login_at: str
    created: bool = False  # True only on the call that created the account

    @classmethod
    def from_document(cls, data: dict[str, Any], *, created: bool = False) -> "Account":
        return cls(
            local_id=data["localId"],
            provider=data["provider"],
            provider_user_id=data["providerUserId"],
            email=data.get("email", ""),
            display_name=data.get("displayName", ""),
            photo_url=data.get("photoURL"),
            created_at=data.get("createdAt", ""),
            last_login_at=data.get("lastLoginAt", ""),
            created=created,
        )

    def public_profile(self) -> dict[str, Any]:
        """Fields safe to return to the client."""
        return {
            "localId": self.local_id,
            "displayName": self.display_name,
            "photoURL": self.photo_url,
        }


class IdentityResolver:
    """Get-or-create accounts in the document store."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def resolve(
        self,
        provider: FederatedProvider,
        profile: VerifiedProfile,
        asserted_email: Optional[str] = None,
    ) -> Account:
        """
        Return the account for a verified identity, creating it on first login.

        Profile fields (email, display name, photo) are written once at creation
        and never overwritten by later logins; only ``lastLoginAt`` is refreshed.

        Args:
            provider: Provider that verified the identity (supplies defaults)
            profile: Verified provider profile
            asserted_email: Client-supplied email, used only as a fallback default

        Raises:
            StoreError: On persistence failures (not retried here)
        """
        local_id = local_id_for(profile.provider, profile.provider_user_id)
        path = account_path(local_id)
        now = isoformat(utc_now())

        existing = await self._store.get(path)
        if existing is None:
            document = {
                "localId": local_id,
                "provider": profile.provider,
                "providerUserId": profile.provider_user_id,
                "email": profile.email or asserted_email or provider.default_email(profile.provider_user_id),
                "displayName": profile.name or provider.default_display_name(),
                "photoURL": profile.avatar_url or provider.default_avatar(),
                "createdAt": now,
                "lastLoginAt": now,
            }
            try:
                snapshot = await self._store.create(path, document)
            except AlreadyExistsError:
                logger.info("Account %s was created concurrently, using existing document", local_id)
                existing = await self._store.get(path)
                if existing is None:
                    raise StoreUnavailableError(f"Account {local_id} vanished after create conflict")
            else:
                track_account_created(profile.provider)
                logger.info(
                    "Created account %s email=%s",
                    local_id,
                    redact_email(document["email"]),
                )
                return Account.from_document(snapshot.data, created=True)

        await self._store.update(path, {"lastLoginAt": now})
        return Account.from_document({**existing.data, "lastLoginAt": now})
