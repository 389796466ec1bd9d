"""Base classes for federated identity providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import ClassVar, Optional


@dataclass(frozen=True)
class VerifiedProfile:
    """Normalized result of a successful provider verification.

    ``provider_user_id`` is always present. The profile fields are best-effort:
    providers omit them freely and callers fall back to the provider defaults.
    """

    provider: str           # 'vk', 'yandex'
    provider_user_id: str   # provider-scoped stable id
    name: Optional[str] = None
    avatar_url: Optional[str] = None
    email: Optional[str] = None


class FederatedProvider(ABC):
    """Abstract base for OAuth providers whose access tokens can be exchanged for a session.

    One subclass per provider; the bridge selects the instance by ``provider_name``
    through the registry, so adding a provider never touches the bridge itself.
    """

    provider_name: ClassVar[str]
    fallback_display_name: ClassVar[str] = "User"

    @abstractmethod
    async def verify(
        self, access_token: str, asserted_user_id: Optional[str] = None
    ) -> VerifiedProfile:
        """Resolve an access token to the provider user that owns it.

        Args:
            access_token: Opaque OAuth access token issued by the provider
            asserted_user_id: User id claimed by the client, if any; a token
                owned by a different user is rejected

        Raises:
            InvalidTokenError: The provider rejected the token
            ProviderUnavailableError: The provider could not be reached in time
                or answered with something unusable
        """

    def default_email(self, provider_user_id: str) -> str:
        """Synthesized address used when neither provider nor caller supplies one."""
        return f"{provider_user_id}@{self.provider_name}.local"

    def default_display_name(self) -> str:
        return self.fallback_display_name

    def default_avatar(self) -> Optional[str]:
        return None
