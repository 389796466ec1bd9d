"""ProviderRegistry: selects the federated provider by name."""

import logging
from typing import Optional

from app.config import settings
from app.services.identity.base import FederatedProvider
from app.services.identity.vk import VKProvider
from app.services.identity.yandex import YandexProvider

logger = logging.getLogger(__name__)

_PROVIDER_CLASSES: dict[str, type[FederatedProvider]] = {
    VKProvider.provider_name: VKProvider,
    YandexProvider.provider_name: YandexProvider,
}

# Module-level singleton (built lazily on first request)
_registry: Optional["ProviderRegistry"] = None


class ProviderRegistry:
    """Enabled federated providers keyed by ``provider_name``.

    Providers hold no per-user state, so one instance per provider is shared
    across invocations.
    """

    def __init__(self, providers: list[FederatedProvider]) -> None:
        self._providers = {p.provider_name: p for p in providers}

    def get(self, name: str) -> Optional[FederatedProvider]:
        """Return the provider for ``name`` (case-insensitive), or None if not enabled."""
        return self._providers.get(name.strip().lower())

    @property
    def names(self) -> list[str]:
        return sorted(self._providers)


def build_registry() -> ProviderRegistry:
    """Construct the registry from ``settings.FEDERATED_PROVIDERS``."""
    providers: list[FederatedProvider] = []

    for name in settings.FEDERATED_PROVIDERS:
        name = name.strip().lower()
        provider_cls = _PROVIDER_CLASSES.get(name)
        if provider_cls is None:
            logger.warning("Provider registry: unknown provider %r, skipping", name)
            continue
        providers.append(provider_cls())
        logger.info("Provider registry: enabled %s", name)

    if not providers:
        logger.warning("Provider registry: no federated providers enabled")

    return ProviderRegistry(providers)


def get_registry() -> ProviderRegistry:
    """Return the singleton registry, building it on first call."""
    global _registry
    if _registry is None:
        _registry = build_registry()
    return _registry


def reset_registry() -> None:
    """Reset the singleton registry (used in tests to re-read config)."""
    global _registry
    _registry = None
