"""Domain exceptions shared by the identity bridge, the document store and the workers."""

import enum


class StoreError(Exception):
    """Base class for document store failures."""

    pass


class StoreUnavailableError(StoreError):
    """Raised when the document store cannot be read or written."""

    pass


class AlreadyExistsError(StoreError):
    """Raised by create-if-absent writes when the document already exists."""

    def __init__(self, path: str):
        super().__init__(f"Document already exists: {path}")
        self.path = path


class DocumentNotFoundError(StoreError):
    """Raised by update writes when the target document is missing."""

    def __init__(self, path: str):
        super().__init__(f"Document not found: {path}")
        self.path = path


class VerificationError(Exception):
    """Base class for identity provider verification failures."""

    pass


class InvalidTokenError(VerificationError):
    """The provider rejected the access token or could not resolve it to a user."""

    pass


class ProviderUnavailableError(VerificationError):
    """The provider call failed, timed out or returned something unusable.

    Distinct from ``InvalidTokenError``: the login may succeed on retry.
    """

    pass


class SigningUnavailableError(Exception):
    """The session credential could not be signed."""

    pass


class BridgeFailure(str, enum.Enum):
    """Typed failure reasons surfaced by the federated identity bridge."""

    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    UPSTREAM_ERROR = "upstream_error"
    INTERNAL_ERROR = "internal_error"


class BridgeError(Exception):
    """Single typed failure returned to callers of the identity bridge."""

    def __init__(self, reason: BridgeFailure, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message

    def __repr__(self) -> str:
        return f"<BridgeError {self.reason.value}: {self.message}>"
