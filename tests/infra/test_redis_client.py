# tests/infra/test_redis_client.py
"""
Тесты для клиента Redis.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.config.loader import RedisSettings
from src.infra.redis_client import RedisClient, close_redis, init_redis


class TestRedisClient:
    """Тесты для RedisClient."""

    @pytest.fixture
    def raw(self) -> AsyncMock:
        """Мок redis.asyncio.Redis."""
        client = AsyncMock()
        client.get.return_value = None
        client.set.return_value = True
        client.publish.return_value = 1
        return client

    @pytest.fixture
    def redis_client(self, raw: AsyncMock) -> RedisClient:
        client = RedisClient()
        client._client = raw
        return client

    def test_client_not_initialized(self) -> None:
        """Проверяет ошибку при обращении к неинициализированному клиенту."""
        with pytest.raises(RuntimeError, match="Redis клиент не инициализирован"):
            _ = RedisClient().client

    def test_make_key_without_namespace(self) -> None:
        assert RedisClient()._make_key("1:7:D1") == "1:7:D1"

    def test_make_and_strip_key_with_namespace(self) -> None:
        client = RedisClient(namespace="fleet")

        assert client._make_key("1:7:D1") == "fleet:1:7:D1"
        assert client._strip_key("fleet:1:7:D1") == "1:7:D1"
        assert client._strip_key("other:1") == "other:1"

    @pytest.mark.asyncio
    async def test_connect(self) -> None:
        """Проверяет подключение к Redis."""
        raw = AsyncMock()
        raw.ping = AsyncMock(return_value=True)
        client = RedisClient()

        with patch("redis.asyncio.from_url", return_value=raw) as from_url:
            await client.connect(url="redis://localhost:6379/0", max_connections=10)

        from_url.assert_called_once_with(
            "redis://localhost:6379/0",
            max_connections=10,
            decode_responses=True,
        )
        raw.ping.assert_awaited_once()
        assert client.client is raw

    @pytest.mark.asyncio
    async def test_disconnect(self, redis_client: RedisClient, raw: AsyncMock) -> None:
        await redis_client.disconnect()

        raw.aclose.assert_awaited_once()
        assert redis_client._client is None

    @pytest.mark.asyncio
    async def test_set_with_ttl(self, redis_client: RedisClient, raw: AsyncMock) -> None:
        assert await redis_client.set("1:7:D1", "value", ttl=300) is True
        raw.set.assert_awaited_once_with("1:7:D1", "value", ex=300)

    @pytest.mark.asyncio
    async def test_json_roundtrip_calls(self, redis_client: RedisClient, raw: AsyncMock) -> None:
        await redis_client.set_json("1:7:D1", {"latitude": "26.9169"}, ttl=300)

        key, value = raw.set.call_args.args
        assert key == "1:7:D1"
        assert json.loads(value) == {"latitude": "26.9169"}
        assert raw.set.call_args.kwargs == {"ex": 300}

    @pytest.mark.asyncio
    async def test_get_json_invalid(self, redis_client: RedisClient, raw: AsyncMock) -> None:
        raw.get.return_value = "{broken"
        assert await redis_client.get_json("1:7:D1") is None

    @pytest.mark.asyncio
    async def test_get_json_missing(self, redis_client: RedisClient) -> None:
        assert await redis_client.get_json("1:7:D1") is None

    @pytest.mark.asyncio
    async def test_scan_page_strips_namespace(self, raw: AsyncMock) -> None:
        client = RedisClient(namespace="fleet")
        client._client = raw
        raw.scan.return_value = (7, ["fleet:1:7:D1", "fleet:1:8:D2"])

        cursor, keys = await client.scan_page(0, match="1:*:*", count=100)

        assert cursor == 7
        assert keys == ["1:7:D1", "1:8:D2"]
        raw.scan.assert_awaited_once_with(cursor=0, match="fleet:1:*:*", count=100)

    @pytest.mark.asyncio
    async def test_mget(self, redis_client: RedisClient, raw: AsyncMock) -> None:
        raw.mget.return_value = ['{"latitude": "1"}', None]

        assert await redis_client.mget(["1:7:D1", "1:8:D2"]) == ['{"latitude": "1"}', None]
        raw.mget.assert_awaited_once_with(["1:7:D1", "1:8:D2"])

    @pytest.mark.asyncio
    async def test_mget_empty(self, redis_client: RedisClient, raw: AsyncMock) -> None:
        assert await redis_client.mget([]) == []
        raw.mget.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_publish_dict(self, redis_client: RedisClient, raw: AsyncMock) -> None:
        receivers = await redis_client.publish("1:7:D1", {"latitude": "26.9169"})

        assert receivers == 1
        channel, message = raw.publish.call_args.args
        assert channel == "1:7:D1"
        assert json.loads(message) == {"latitude": "26.9169"}

    @pytest.mark.asyncio
    async def test_publish_string(self, redis_client: RedisClient, raw: AsyncMock) -> None:
        await redis_client.publish("1:7:D1", "raw")
        raw.publish.assert_awaited_once_with("1:7:D1", "raw")

    @pytest.mark.asyncio
    async def test_health_check(self, redis_client: RedisClient, raw: AsyncMock) -> None:
        raw.ping.return_value = True
        assert await redis_client.health_check() is True

        raw.ping.side_effect = ConnectionError("down")
        assert await redis_client.health_check() is False


class TestInitRedis:
    """Тесты init_redis / close_redis."""

    @pytest.mark.asyncio
    async def test_init_redis(self) -> None:
        redis_settings = RedisSettings(
            REDIS_HOST="cache.local",
            REDIS_PASSWORD="secret",
            REDIS_SSL=True,
            REDIS_NAMESPACE="fleet",
            REDIS_MAX_CONNECTIONS=5,
        )

        with patch.object(RedisClient, "connect", new_callable=AsyncMock) as connect:
            client = await init_redis(redis_settings)

        connect.assert_awaited_once_with(url="rediss://:secret@cache.local:6379/0", max_connections=5)
        assert client._make_key("k") == "fleet:k"

    @pytest.mark.asyncio
    async def test_close_redis(self) -> None:
        client = MagicMock()
        client.disconnect = AsyncMock()

        await close_redis(client)

        client.disconnect.assert_awaited_once()
