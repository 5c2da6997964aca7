"""
지수 백오프 재시도

구독 해지처럼 일시적 실패가 잦은 외부 작업을 재시도합니다.
n번째 실패 후 base_delay * 2^(n-1)초를 기다립니다.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional

from ..domain.ports import LoggerPort


async def retry_with_backoff(
    action: Callable[[], Awaitable[Any]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    logger: Optional[LoggerPort] = None,
    operation_name: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Any:
    """
    작업을 성공(참 값 반환)할 때까지 재시도합니다.

    Args:
        action: 인자 없는 비동기 함수
        max_attempts: 최대 시도 횟수
        base_delay: 첫 재시도 전 대기 시간 (초)
        logger: 로거
        operation_name: 로그용 작업 이름
        sleep: 대기 함수

    Returns:
        첫 번째 참 값, 또는 모든 시도가 실패한 경우 마지막 결과

    Raises:
        Exception: 마지막 시도에서 발생한 예외
    """
    if max_attempts < 1:
        raise ValueError("max_attempts는 1 이상이어야 합니다")

    result: Any = None
    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            delay = (2 ** (attempt - 2)) * base_delay
            if logger:
                logger.info(f"{operation_name} 재시도 {attempt}/{max_attempts} ({delay}초 후)")
            await sleep(delay)

        try:
            result = await action()
        except Exception as e:
            if attempt == max_attempts:
                raise
            if logger:
                logger.warning(f"{operation_name} 시도 {attempt} 실패: {str(e)}")
            continue

        if result:
            return result

        if logger:
            logger.warning(f"{operation_name} 시도 {attempt} 실패")

    return result
