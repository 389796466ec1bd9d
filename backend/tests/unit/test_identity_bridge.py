"""Tests for account resolution, session issuing and the federated identity bridge."""

import asyncio
import time
from typing import Optional
from unittest.mock import AsyncMock, patch

import pytest
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import settings
from app.core.database import Base
from app.core.exceptions import (
    BridgeError,
    BridgeFailure,
    InvalidTokenError,
    ProviderUnavailableError,
    SigningUnavailableError,
    StoreUnavailableError,
)
from app.core.security import create_session_token, decode_session_token
from app.services.identity.base import FederatedProvider, VerifiedProfile
from app.services.identity.bridge import FederatedIdentityBridge
from app.services.identity.registry import ProviderRegistry
from app.services.identity.resolver import IdentityResolver, local_id_for
from app.services.identity.session import SessionIssuer
from app.store.document_store import DocumentStore


class StubProvider(FederatedProvider):
    """Provider returning a fixed profile (or raising) without network calls."""

    provider_name = "vk"
    fallback_display_name = "VK User"

    def __init__(self, profile: Optional[VerifiedProfile] = None, error: Optional[Exception] = None):
        self.profile = profile
        self.error = error
        self.calls = []

    async def verify(self, access_token, asserted_user_id=None):
        self.calls.append((access_token, asserted_user_id))
        if self.error is not None:
            raise self.error
        return self.profile


def _anna(**overrides) -> VerifiedProfile:
    fields = dict(provider="vk", provider_user_id="42", name="Anna", avatar_url="https://vk/anna.jpg")
    fields.update(overrides)
    return VerifiedProfile(**fields)


@pytest.mark.unit
class TestLocalId:
    """Tests for local id derivation."""

    def test_local_id_is_provider_scoped(self):
        assert local_id_for("vk", "42") == "vk:42"
        assert local_id_for("yandex", "42") == "yandex:42"

    def test_empty_parts_rejected(self):
        with pytest.raises(ValueError):
            local_id_for("vk", "")


@pytest.mark.unit
class TestIdentityResolver:
    """Tests for IdentityResolver.resolve()."""

    @pytest.mark.asyncio
    async def test_first_login_creates_account(self, store: DocumentStore):
        account = await IdentityResolver(store).resolve(StubProvider(), _anna())

        assert account.created is True
        assert account.local_id == "vk:42"
        assert account.display_name == "Anna"
        assert account.photo_url == "https://vk/anna.jpg"
        assert account.email == "42@vk.local"

        stored = await store.get("accounts/vk:42")
        assert stored.data["providerUserId"] == "42"
        assert stored.data["createdAt"] == stored.data["lastLoginAt"]

    @pytest.mark.asyncio
    async def test_email_priority(self, store: DocumentStore):
        resolver = IdentityResolver(store)

        asserted = await resolver.resolve(StubProvider(), _anna(provider_user_id="1"), "anna@mail.ru")
        from_provider = await resolver.resolve(
            StubProvider(), _anna(provider_user_id="2", email="anna@vk.com"), "anna@mail.ru"
        )

        assert asserted.email == "anna@mail.ru"
        assert from_provider.email == "anna@vk.com"

    @pytest.mark.asyncio
    async def test_missing_profile_fields_use_provider_defaults(self, store: DocumentStore):
        account = await IdentityResolver(store).resolve(
            StubProvider(), _anna(name=None, avatar_url=None)
        )
        assert account.display_name == "VK User"
        assert account.photo_url is None

    @pytest.mark.asyncio
    async def test_repeat_login_keeps_profile_fields(self, store: DocumentStore):
        resolver = IdentityResolver(store)
        first = await resolver.resolve(StubProvider(), _anna())

        second = await resolver.resolve(
            StubProvider(), _anna(name="Anna Renamed", avatar_url="https://vk/new.jpg"), "new@mail.ru"
        )

        assert second.created is False
        assert second.local_id == first.local_id
        assert second.display_name == "Anna"
        assert second.photo_url == "https://vk/anna.jpg"
        assert second.email == "42@vk.local"
        assert second.created_at == first.created_at

        stored = await store.get("accounts/vk:42")
        assert stored.data["displayName"] == "Anna"
        assert stored.data["createdAt"] == first.created_at
        assert len(await store.list_collection("accounts")) == 1

    @pytest.mark.asyncio
    async def test_concurrent_create_converges(self, tmp_path):
        """Concurrent first logins on separate sessions yield exactly one account."""
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'race.db'}")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        sessions = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async def login(name: str):
            async with sessions() as session:
                return await IdentityResolver(DocumentStore(session)).resolve(
                    StubProvider(), _anna(name=name)
                )

        try:
            accounts = await asyncio.gather(*(login(f"Anna {i}") for i in range(5)))

            assert sum(account.created for account in accounts) == 1
            assert {account.local_id for account in accounts} == {"vk:42"}
            winner = next(account for account in accounts if account.created)
            assert {account.display_name for account in accounts} == {winner.display_name}
            async with sessions() as session:
                assert len(await DocumentStore(session).list_collection("accounts")) == 1
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, store: DocumentStore):
        with patch.object(store, "get", AsyncMock(side_effect=StoreUnavailableError("db down"))):
            with pytest.raises(StoreUnavailableError):
                await IdentityResolver(store).resolve(StubProvider(), _anna())


@pytest.mark.unit
class TestSessionIssuer:
    """Tests for SessionIssuer.issue() and session token decoding."""

    @pytest.mark.asyncio
    async def test_issue_signs_subject(self):
        credential = await SessionIssuer().issue("vk:42")

        payload = decode_session_token(credential.token)
        assert payload["sub"] == "vk:42"
        assert payload["iss"] == settings.SESSION_TOKEN_ISSUER
        assert payload["type"] == "session"
        assert "displayName" not in payload
        assert credential.token_type == "bearer"
        assert credential.expires_at is not None

    @pytest.mark.asyncio
    async def test_missing_key_is_signing_unavailable(self):
        with patch.object(settings, "SECRET_KEY", ""):
            with pytest.raises(SigningUnavailableError):
                await SessionIssuer().issue("vk:42")

    @pytest.mark.asyncio
    async def test_slow_signer_times_out(self):
        def slow_sign(subject):
            time.sleep(0.5)
            return create_session_token(subject)

        with patch("app.services.identity.session.create_session_token", side_effect=slow_sign):
            with pytest.raises(SigningUnavailableError):
                await SessionIssuer(timeout=0.01).issue("vk:42")

    def test_non_session_token_rejected(self):
        token = jwt.encode(
            {"sub": "vk:42", "type": "refresh", "iss": settings.SESSION_TOKEN_ISSUER},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        with pytest.raises(JWTError):
            decode_session_token(token)

    def test_foreign_issuer_rejected(self):
        token = jwt.encode(
            {"sub": "vk:42", "type": "session", "iss": "someone-else"},
            settings.SECRET_KEY,
            algorithm=settings.ALGORITHM,
        )
        with pytest.raises(JWTError):
            decode_session_token(token)


@pytest.mark.unit
class TestFederatedIdentityBridge:
    """Tests for FederatedIdentityBridge.exchange()."""

    def _bridge(self, store, provider):
        return FederatedIdentityBridge(store, registry=ProviderRegistry([provider]))

    @pytest.mark.asyncio
    async def test_first_vk_login(self, store: DocumentStore):
        provider = StubProvider(_anna())

        result = await self._bridge(store, provider).exchange("vk", "T", asserted_user_id="42")

        assert result.profile == {
            "localId": "vk:42",
            "displayName": "Anna",
            "photoURL": "https://vk/anna.jpg",
        }
        assert decode_session_token(result.credential.token)["sub"] == "vk:42"
        assert provider.calls == [("T", "42")]

    @pytest.mark.asyncio
    async def test_repeat_login_same_account(self, store: DocumentStore):
        bridge = self._bridge(store, StubProvider(_anna()))
        first = await bridge.exchange("vk", "T1")

        bridge = self._bridge(store, StubProvider(_anna(name="Changed")))
        second = await bridge.exchange("vk", "T2")

        assert second.profile == first.profile
        assert second.account.created_at == first.account.created_at
        assert second.account.created is False

    @pytest.mark.asyncio
    async def test_unknown_provider_is_invalid_input(self, store: DocumentStore):
        with pytest.raises(BridgeError) as exc_info:
            await self._bridge(store, StubProvider(_anna())).exchange("facebook", "T")
        assert exc_info.value.reason is BridgeFailure.INVALID_INPUT

    @pytest.mark.asyncio
    async def test_empty_token_is_invalid_input(self, store: DocumentStore):
        provider = StubProvider(_anna())
        with pytest.raises(BridgeError) as exc_info:
            await self._bridge(store, provider).exchange("vk", "  ")
        assert exc_info.value.reason is BridgeFailure.INVALID_INPUT
        assert provider.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, reason",
        [
            (InvalidTokenError("Invalid VK token"), BridgeFailure.UNAUTHORIZED),
            (ProviderUnavailableError("VK API timed out"), BridgeFailure.UPSTREAM_ERROR),
            (RuntimeError("boom"), BridgeFailure.INTERNAL_ERROR),
        ],
    )
    async def test_provider_failures(self, store: DocumentStore, error, reason):
        with pytest.raises(BridgeError) as exc_info:
            await self._bridge(store, StubProvider(error=error)).exchange("vk", "T")

        assert exc_info.value.reason is reason
        assert await store.list_collection("accounts") == []

    @pytest.mark.asyncio
    async def test_store_failure_is_internal_error(self, store: DocumentStore):
        with patch.object(store, "get", AsyncMock(side_effect=StoreUnavailableError("db down"))):
            with pytest.raises(BridgeError) as exc_info:
                await self._bridge(store, StubProvider(_anna())).exchange("vk", "T")
        assert exc_info.value.reason is BridgeFailure.INTERNAL_ERROR

    @pytest.mark.asyncio
    async def test_signing_failure_is_internal_error(self, store: DocumentStore):
        with patch.object(settings, "SECRET_KEY", ""):
            with pytest.raises(BridgeError) as exc_info:
                await self._bridge(store, StubProvider(_anna())).exchange("vk", "T")
        assert exc_info.value.reason is BridgeFailure.INTERNAL_ERROR

    @pytest.mark.asyncio
    async def test_unknown_provider_names_share_one_metric_label(self, store: DocumentStore):
        bridge = self._bridge(store, StubProvider(error=InvalidTokenError("Invalid VK token")))

        with patch("app.services.identity.bridge.track_federated_login") as track:
            for name in ("junk0", "junk1", "Junk2"):
                with pytest.raises(BridgeError):
                    await bridge.exchange(name, "T")
            with pytest.raises(BridgeError):
                await bridge.exchange(" VK ", "T")

        labels = [c.args[0] for c in track.call_args_list]
        assert labels == ["unknown", "unknown", "unknown", "vk"]
