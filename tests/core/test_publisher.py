# tests/core/test_publisher.py
"""
Тесты публикации обновлений позиций.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.core.locations.publisher import UpdatePublisher


class TestUpdatePublisher:
    """Тесты UpdatePublisher."""

    @pytest.mark.asyncio
    async def test_publish(self, mock_redis: MagicMock) -> None:
        mock_redis.publish.return_value = 3
        publisher = UpdatePublisher(mock_redis)

        receivers = await publisher.publish("1:7:D1", {"latitude": "26.9169"})

        assert receivers == 3
        mock_redis.publish.assert_awaited_once_with("1:7:D1", {"latitude": "26.9169"})

    @pytest.mark.asyncio
    async def test_no_subscribers_is_success(self, mock_redis: MagicMock) -> None:
        mock_redis.publish.return_value = 0
        publisher = UpdatePublisher(mock_redis)

        assert await publisher.publish("1:7:D1", {}) == 0

    @pytest.mark.asyncio
    async def test_retry_then_success(self, mock_redis: MagicMock) -> None:
        mock_redis.publish.side_effect = [ConnectionError("reset"), 2]
        publisher = UpdatePublisher(mock_redis, max_attempts=3, retry_delay=0.2)

        with patch("src.core.locations.publisher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            receivers = await publisher.publish("1:7:D1", {})

        assert receivers == 2
        assert mock_redis.publish.await_count == 2
        sleep.assert_awaited_once_with(0.2)

    @pytest.mark.asyncio
    async def test_linear_backoff_and_final_error(self, mock_redis: MagicMock) -> None:
        """После исчерпания попыток пробрасывается последняя ошибка."""
        mock_redis.publish.side_effect = [
            ConnectionError("first"),
            ConnectionError("second"),
            ConnectionError("third"),
        ]
        publisher = UpdatePublisher(mock_redis, max_attempts=3, retry_delay=0.5)

        with patch("src.core.locations.publisher.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(ConnectionError, match="third"):
                await publisher.publish("1:7:D1", {})

        assert mock_redis.publish.await_count == 3
        assert [c.args[0] for c in sleep.await_args_list] == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_at_least_one_attempt(self, mock_redis: MagicMock) -> None:
        mock_redis.publish.side_effect = ConnectionError("down")
        publisher = UpdatePublisher(mock_redis, max_attempts=0, retry_delay=0)

        with pytest.raises(ConnectionError):
            await publisher.publish("1:7:D1", {})

        assert mock_redis.publish.await_count == 1
