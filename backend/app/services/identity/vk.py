"""VK identity provider: verifies access tokens via the ``users.get`` API method."""

import logging
from typing import Optional

import httpx

from app.config import settings
from app.core.exceptions import InvalidTokenError, ProviderUnavailableError
from app.services.identity.base import FederatedProvider, VerifiedProfile
from app.utils.logging_utils import redact_token

logger = logging.getLogger(__name__)

# VK API error codes that signal a transient VK-side failure rather than a bad token
_TRANSIENT_ERROR_CODES = {1, 6, 9, 10}


class VKProvider(FederatedProvider):
    """Validates VK access tokens.

    ``users.get`` called without ``user_ids`` returns the token owner, so the
    provider user id always comes from VK rather than from the client. A
    client-asserted ``userId`` must match the owner.
    """

    provider_name = "vk"
    fallback_display_name = "VK User"

    async def verify(
        self, access_token: str, asserted_user_id: Optional[str] = None
    ) -> VerifiedProfile:
        params = {
            "fields": "photo_200,first_name,last_name",
            "access_token": access_token,
            "v": settings.VK_API_VERSION,
        }

        try:
            async with httpx.AsyncClient(timeout=settings.PROVIDER_TIMEOUT_SECONDS) as client:
                response = await client.get(settings.VK_API_URL, params=params)
                response.raise_for_status()
                payload = response.json()
        except httpx.TimeoutException as exc:
            logger.warning("VK users.get timed out for %s", redact_token(access_token))
            raise ProviderUnavailableError("VK API timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("VK users.get failed: %s", exc)
            raise ProviderUnavailableError(f"VK API error: {exc}") from exc
        except ValueError as exc:
            raise ProviderUnavailableError("VK API returned a non-JSON body") from exc

        if not isinstance(payload, dict):
            raise ProviderUnavailableError("VK API returned an unexpected body")

        error = payload.get("error")
        if error:
            code = error.get("error_code") if isinstance(error, dict) else None
            message = error.get("error_msg", "") if isinstance(error, dict) else str(error)
            if code in _TRANSIENT_ERROR_CODES:
                logger.warning("VK users.get transient error %s: %s", code, message)
                raise ProviderUnavailableError(f"VK API error {code}: {message}")
            raise InvalidTokenError(f"Invalid VK token: {message}".strip())

        users = payload.get("response")
        if not isinstance(users, list) or not users or not isinstance(users[0], dict):
            raise InvalidTokenError("Invalid VK token")

        user = users[0]
        if user.get("id") is None:
            raise InvalidTokenError("Invalid VK token")

        provider_user_id = str(user["id"])
        if asserted_user_id is not None and str(asserted_user_id) != provider_user_id:
            logger.warning(
                "VK token owner %s does not match asserted user id %s",
                provider_user_id,
                asserted_user_id,
            )
            raise InvalidTokenError("VK token does not belong to the given user")

        name = " ".join(
            part for part in (user.get("first_name"), user.get("last_name")) if part
        ).strip()

        return VerifiedProfile(
            provider=self.provider_name,
            provider_user_id=provider_user_id,
            name=name or None,
            avatar_url=user.get("photo_200") or None,
        )
