"""Unit tests for the VK and Yandex federated providers."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from app.core.exceptions import InvalidTokenError, ProviderUnavailableError
from app.services.identity.registry import ProviderRegistry, build_registry
from app.services.identity.vk import VKProvider
from app.services.identity.yandex import YandexProvider


def _mock_client(response=None, side_effect=None):
    """Build a patched ``httpx.AsyncClient`` class whose ``get`` returns ``response``."""
    client = MagicMock()
    client.get = AsyncMock(return_value=response, side_effect=side_effect)

    client_cls = MagicMock()
    client_cls.return_value.__aenter__ = AsyncMock(return_value=client)
    client_cls.return_value.__aexit__ = AsyncMock(return_value=False)
    return client_cls, client


def _json_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


@pytest.mark.unit
class TestVKProvider:
    """Tests for VKProvider.verify()."""

    @pytest.mark.asyncio
    async def test_valid_token_returns_owner_profile(self):
        response = _json_response(
            {"response": [{"id": 42, "first_name": "Anna", "last_name": "Ivanova", "photo_200": "https://vk/a.jpg"}]}
        )
        client_cls, client = _mock_client(response)

        with patch("app.services.identity.vk.httpx.AsyncClient", client_cls):
            profile = await VKProvider().verify("vk-token", "42")

        assert profile.provider == "vk"
        assert profile.provider_user_id == "42"
        assert profile.name == "Anna Ivanova"
        assert profile.avatar_url == "https://vk/a.jpg"
        assert profile.email is None

        params = client.get.call_args.kwargs["params"]
        assert params["access_token"] == "vk-token"
        assert params["fields"] == "photo_200,first_name,last_name"
        assert params["v"] == "5.131"

    @pytest.mark.asyncio
    async def test_missing_names_give_no_name(self):
        client_cls, _ = _mock_client(_json_response({"response": [{"id": 7}]}))

        with patch("app.services.identity.vk.httpx.AsyncClient", client_cls):
            profile = await VKProvider().verify("vk-token")

        assert profile.name is None
        assert profile.avatar_url is None

    @pytest.mark.asyncio
    async def test_asserted_user_mismatch_is_rejected(self):
        client_cls, _ = _mock_client(_json_response({"response": [{"id": 42}]}))

        with patch("app.services.identity.vk.httpx.AsyncClient", client_cls):
            with pytest.raises(InvalidTokenError):
                await VKProvider().verify("vk-token", "43")

    @pytest.mark.asyncio
    async def test_auth_error_is_invalid_token(self):
        client_cls, _ = _mock_client(
            _json_response({"error": {"error_code": 5, "error_msg": "User authorization failed"}})
        )

        with patch("app.services.identity.vk.httpx.AsyncClient", client_cls):
            with pytest.raises(InvalidTokenError):
                await VKProvider().verify("bad-token")

    @pytest.mark.asyncio
    async def test_empty_response_is_invalid_token(self):
        client_cls, _ = _mock_client(_json_response({"response": []}))

        with patch("app.services.identity.vk.httpx.AsyncClient", client_cls):
            with pytest.raises(InvalidTokenError):
                await VKProvider().verify("bad-token")

    @pytest.mark.asyncio
    async def test_rate_limit_error_is_unavailable(self):
        client_cls, _ = _mock_client(
            _json_response({"error": {"error_code": 6, "error_msg": "Too many requests per second"}})
        )

        with patch("app.services.identity.vk.httpx.AsyncClient", client_cls):
            with pytest.raises(ProviderUnavailableError):
                await VKProvider().verify("vk-token")

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self):
        client_cls, _ = _mock_client(side_effect=httpx.ReadTimeout("timed out"))

        with patch("app.services.identity.vk.httpx.AsyncClient", client_cls):
            with pytest.raises(ProviderUnavailableError):
                await VKProvider().verify("vk-token")

    @pytest.mark.asyncio
    async def test_non_json_body_is_unavailable(self):
        response = _json_response(None)
        response.json.side_effect = ValueError("not json")
        client_cls, _ = _mock_client(response)

        with patch("app.services.identity.vk.httpx.AsyncClient", client_cls):
            with pytest.raises(ProviderUnavailableError):
                await VKProvider().verify("vk-token")

    def test_defaults(self):
        provider = VKProvider()
        assert provider.default_email("42") == "42@vk.local"
        assert provider.default_display_name() == "VK User"
        assert provider.default_avatar() is None


@pytest.mark.unit
class TestYandexProvider:
    """Tests for YandexProvider.verify()."""

    @pytest.mark.asyncio
    async def test_valid_token_returns_profile(self):
        response = _json_response(
            {
                "id": "1000",
                "real_name": "Boris Petrov",
                "display_name": "boris",
                "default_email": "boris@yandex.ru",
                "default_avatar_id": "131652443/abc",
                "is_avatar_empty": False,
            }
        )
        client_cls, client = _mock_client(response)

        with patch("app.services.identity.yandex.httpx.AsyncClient", client_cls):
            profile = await YandexProvider().verify("ya-token")

        assert profile.provider_user_id == "1000"
        assert profile.name == "Boris Petrov"
        assert profile.email == "boris@yandex.ru"
        assert profile.avatar_url == "https://avatars.yandex.net/get-yapic/131652443/abc/islands-200"
        assert client.get.call_args.kwargs["headers"] == {"Authorization": "OAuth ya-token"}

    @pytest.mark.asyncio
    async def test_display_name_fallback_and_empty_avatar(self):
        response = _json_response(
            {"id": "1000", "display_name": "boris", "default_avatar_id": "0/0-0", "is_avatar_empty": True}
        )
        client_cls, _ = _mock_client(response)

        with patch("app.services.identity.yandex.httpx.AsyncClient", client_cls):
            profile = await YandexProvider().verify("ya-token")

        assert profile.name == "boris"
        assert profile.avatar_url is None
        assert profile.email is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [400, 401, 403])
    async def test_rejected_token(self, status_code):
        client_cls, _ = _mock_client(_json_response({}, status_code=status_code))

        with patch("app.services.identity.yandex.httpx.AsyncClient", client_cls):
            with pytest.raises(InvalidTokenError):
                await YandexProvider().verify("bad-token")

    @pytest.mark.asyncio
    async def test_server_error_is_unavailable(self):
        client_cls, _ = _mock_client(_json_response({}, status_code=503))

        with patch("app.services.identity.yandex.httpx.AsyncClient", client_cls):
            with pytest.raises(ProviderUnavailableError):
                await YandexProvider().verify("ya-token")

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self):
        client_cls, _ = _mock_client(side_effect=httpx.ConnectError("refused"))

        with patch("app.services.identity.yandex.httpx.AsyncClient", client_cls):
            with pytest.raises(ProviderUnavailableError):
                await YandexProvider().verify("ya-token")

    @pytest.mark.asyncio
    async def test_body_without_id_is_invalid_token(self):
        client_cls, _ = _mock_client(_json_response({"login": "boris"}))

        with patch("app.services.identity.yandex.httpx.AsyncClient", client_cls):
            with pytest.raises(InvalidTokenError):
                await YandexProvider().verify("ya-token")

    @pytest.mark.asyncio
    async def test_asserted_user_mismatch_is_rejected(self):
        client_cls, _ = _mock_client(_json_response({"id": "1000"}))

        with patch("app.services.identity.yandex.httpx.AsyncClient", client_cls):
            with pytest.raises(InvalidTokenError):
                await YandexProvider().verify("ya-token", "999")


@pytest.mark.unit
class TestProviderRegistry:
    """Tests for provider selection."""

    def test_default_registry_has_vk_and_yandex(self):
        registry = build_registry()
        assert registry.names == ["vk", "yandex"]
        assert isinstance(registry.get("VK"), VKProvider)
        assert isinstance(registry.get("yandex"), YandexProvider)

    def test_unknown_provider_is_none(self):
        registry = ProviderRegistry([VKProvider()])
        assert registry.get("yandex") is None
        assert registry.get("google") is None

    def test_registry_respects_settings(self):
        with patch("app.services.identity.registry.settings") as mock_settings:
            mock_settings.FEDERATED_PROVIDERS = ["yandex", "facebook"]
            registry = build_registry()

        assert registry.names == ["yandex"]
