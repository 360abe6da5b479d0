"""Tests for Redis client module."""

from collections.abc import Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

import marketlens.storage.redis as redis_module
from marketlens.core.exceptions import CacheUnavailableError
from marketlens.storage.redis import close_redis, get_redis, init_redis


@pytest.fixture(autouse=True)
def _reset_client() -> Iterator[None]:
    redis_module._redis = None
    yield
    redis_module._redis = None


@pytest.fixture
def mock_redis() -> MagicMock:
    client = MagicMock()
    client.ping = AsyncMock(return_value=True)
    client.aclose = AsyncMock()
    return client


class TestGetRedis:
    """Tests for get_redis function."""

    def test_not_initialized(self) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            get_redis()

    def test_returns_instance(self, mock_redis: MagicMock) -> None:
        redis_module._redis = mock_redis

        assert get_redis() is mock_redis


class TestInitRedis:
    """Tests for init_redis function."""

    async def test_connects_and_pings(self, mock_redis: MagicMock) -> None:
        with patch("marketlens.storage.redis.Redis") as mock_redis_cls:
            mock_redis_cls.from_url.return_value = mock_redis

            result = await init_redis("redis://localhost:6379")

        assert result is mock_redis
        assert redis_module._redis is mock_redis
        mock_redis_cls.from_url.assert_called_once_with(
            "redis://localhost:6379",
            decode_responses=False,
        )
        mock_redis.ping.assert_awaited_once()

    async def test_second_call_reuses_client(self, mock_redis: MagicMock) -> None:
        with patch("marketlens.storage.redis.Redis") as mock_redis_cls:
            mock_redis_cls.from_url.return_value = mock_redis

            first = await init_redis("redis://localhost:6379")
            second = await init_redis("redis://localhost:6379")

        assert first is second
        mock_redis_cls.from_url.assert_called_once()

    async def test_unreachable_server(self, mock_redis: MagicMock) -> None:
        mock_redis.ping.side_effect = RedisConnectionError("Connection refused")

        with patch("marketlens.storage.redis.Redis") as mock_redis_cls:
            mock_redis_cls.from_url.return_value = mock_redis

            with pytest.raises(CacheUnavailableError, match="unreachable"):
                await init_redis("redis://localhost:6379")

        mock_redis.aclose.assert_awaited_once()
        assert redis_module._redis is None


class TestCloseRedis:
    """Tests for close_redis function."""

    async def test_close_when_initialized(self, mock_redis: MagicMock) -> None:
        redis_module._redis = mock_redis

        await close_redis()

        mock_redis.aclose.assert_awaited_once()
        assert redis_module._redis is None

    async def test_close_when_not_initialized(self) -> None:
        # Should not raise
        await close_redis()

        assert redis_module._redis is None

    async def test_init_get_close_lifecycle(self, mock_redis: MagicMock) -> None:
        with patch("marketlens.storage.redis.Redis") as mock_redis_cls:
            mock_redis_cls.from_url.return_value = mock_redis
            await init_redis("redis://localhost:6379")

        assert get_redis() is mock_redis

        await close_redis()

        with pytest.raises(RuntimeError):
            get_redis()
