"""Session issuer: mints the signed credential returned by the identity bridge."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from jose import JWTError

from app.config import settings
from app.core.exceptions import SigningUnavailableError
from app.core.security import create_session_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionCredential:
    """Signed, short-lived credential asserting a local account id."""

    token: str
    expires_at: datetime
    token_type: str = "bearer"


class SessionIssuer:
    """Signs session credentials with a bounded wait."""

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._timeout = timeout if timeout is not None else settings.SIGNING_TIMEOUT_SECONDS

    async def issue(self, local_id: str) -> SessionCredential:
        """
        Issue a credential whose subject is ``local_id``.

        Raises:
            SigningUnavailableError: If the key is missing, signing fails or times out
        """
        try:
            token, expires_at = await asyncio.wait_for(
                asyncio.to_thread(create_session_token, local_id),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Signing session credential for %s timed out", local_id)
            raise SigningUnavailableError("Signing timed out") from exc
        except (JWTError, ValueError) as exc:
            logger.error("Signing session credential for %s failed: %s", local_id, exc)
            raise SigningUnavailableError(str(exc)) from exc

        return SessionCredential(token=token, expires_at=expires_at)
