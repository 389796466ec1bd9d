"""Federated identity package: provider verification, account resolution, session issuing."""

from app.services.identity.base import FederatedProvider, VerifiedProfile
from app.services.identity.bridge import BridgeResult, BridgeStage, FederatedIdentityBridge
from app.services.identity.registry import (
    ProviderRegistry,
    build_registry,
    get_registry,
    reset_registry,
)
from app.services.identity.resolver import Account, IdentityResolver, local_id_for
from app.services.identity.session import SessionCredential, SessionIssuer
from app.services.identity.vk import VKProvider
from app.services.identity.yandex import YandexProvider

__all__ = [
    "Account",
    "BridgeResult",
    "BridgeStage",
    "FederatedIdentityBridge",
    "FederatedProvider",
    "IdentityResolver",
    "ProviderRegistry",
    "SessionCredential",
    "SessionIssuer",
    "VKProvider",
    "VerifiedProfile",
    "YandexProvider",
    "build_registry",
    "get_registry",
    "local_id_for",
    "reset_registry",
]
