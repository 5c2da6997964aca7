"""
지수 백오프 재시도 테스트
"""

from unittest.mock import AsyncMock, call

import pytest

from core.usecases.retry import retry_with_backoff


class TestRetryWithBackoff:

    @pytest.mark.asyncio
    async def test_success_on_first_attempt_does_not_sleep(self):
        action = AsyncMock(return_value=True)
        sleep = AsyncMock()

        assert await retry_with_backoff(action, sleep=sleep) is True
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delays_double_between_attempts(self):
        action = AsyncMock(return_value=False)
        sleep = AsyncMock()

        result = await retry_with_backoff(action, max_attempts=4, base_delay=1.0, sleep=sleep)

        assert result is False
        assert action.await_count == 4
        assert sleep.await_args_list == [call(1.0), call(2.0), call(4.0)]

    @pytest.mark.asyncio
    async def test_returns_first_truthy_result(self):
        action = AsyncMock(side_effect=[False, "ok", "unused"])
        sleep = AsyncMock()

        assert await retry_with_backoff(action, max_attempts=3, sleep=sleep) == "ok"
        assert action.await_count == 2

    @pytest.mark.asyncio
    async def test_exception_is_retried(self, logger):
        action = AsyncMock(side_effect=[ConnectionError("reset"), True])

        result = await retry_with_backoff(action, logger=logger, sleep=AsyncMock())

        assert result is True
        logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_exception_on_last_attempt_is_raised(self):
        action = AsyncMock(side_effect=ConnectionError("reset"))

        with pytest.raises(ConnectionError):
            await retry_with_backoff(action, max_attempts=3, sleep=AsyncMock())

        assert action.await_count == 3

    @pytest.mark.asyncio
    async def test_invalid_attempt_count(self):
        with pytest.raises(ValueError):
            await retry_with_backoff(AsyncMock(), max_attempts=0)
