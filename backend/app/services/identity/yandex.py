"""Yandex identity provider: verifies access tokens via the Yandex ID ``/info`` endpoint."""

import logging
from typing import Optional

import httpx

from app.config import settings
from app.core.exceptions import InvalidTokenError, ProviderUnavailableError
from app.services.identity.base import FederatedProvider, VerifiedProfile
from app.utils.logging_utils import redact_token

logger = logging.getLogger(__name__)


class YandexProvider(FederatedProvider):
    """Validates Yandex OAuth tokens.

    Yandex answers 401 for unknown or expired tokens; any other non-2xx status
    is treated as the provider being unavailable.
    """

    provider_name = "yandex"
    fallback_display_name = "Yandex User"

    async def verify(
        self, access_token: str, asserted_user_id: Optional[str] = None
    ) -> VerifiedProfile:
        headers = {"Authorization": f"OAuth {access_token}"}

        try:
            async with httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as client:
                response = await client.get(
                    settings.YANDEX_INFO_URL, params={"format": "json"}, headers=headers
                )
        except httpx.TimeoutException as exc:
            logger.warning("Yandex /info timed out for %s", redact_token(access_token))
            raise ProviderUnavailableError("Yandex API timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("Yandex /info request failed: %s", exc)
            raise ProviderUnavailableError(f"Yandex API error: {exc}") from exc

        if response.status_code in (400, 401, 403):
            raise InvalidTokenError("Invalid Yandex token")
        if response.status_code != 200:
            logger.warning("Yandex /info returned status=%s", response.status_code)
            raise ProviderUnavailableError(f"Yandex API returned {response.status_code}")

        try:
            user = response.json()
        except ValueError as exc:
            raise ProviderUnavailableError("Yandex API returned a non-JSON body") from exc

        if not isinstance(user, dict) or not user.get("id"):
            raise InvalidTokenError("Invalid Yandex token")

        provider_user_id = str(user["id"])
        if asserted_user_id is not None and str(asserted_user_id) != provider_user_id:
            raise InvalidTokenError("Yandex token does not belong to the given user")

        return VerifiedProfile(
            provider=self.provider_name,
            provider_user_id=provider_user_id,
            name=user.get("real_name") or user.get("display_name") or None,
            avatar_url=self._avatar_url(user),
            email=user.get("default_email") or None,
        )

    @staticmethod
    def _avatar_url(user: dict) -> Optional[str]:
        avatar_id = user.get("default_avatar_id")
        if not avatar_id or user.get("is_avatar_empty"):
            return None
        return settings.YANDEX_AVATAR_URL.format(avatar_id=avatar_id)
