"""
HTTP 구독 해지 실행 어댑터

구독 해지 링크를 요청하고 응답 페이지의 확인 문구로 성공 여부를 추정합니다.
"""

from typing import Optional

import httpx

from core.domain.ports import LoggerPort, UnsubscribeExecutorPort

SUCCESS_KEYWORDS = ("unsubscribed", "success", "removed", "confirmed")


class HttpUnsubscribeExecutorAdapter(UnsubscribeExecutorPort):
    """HTTP 기반 구독 해지 실행 어댑터"""

    def __init__(
        self,
        logger: LoggerPort,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.logger = logger
        self.timeout = 30.0
        self.transport = transport

    async def execute(self, url: str, user_email: str) -> bool:
        """구독 해지 링크를 열고 성공 여부를 반환합니다."""
        self.logger.debug(f"구독 해지 링크 요청: {url} ({user_email})")

        async with httpx.AsyncClient(
            timeout=self.timeout,
            transport=self.transport,
            follow_redirects=True,
            headers={"User-Agent": "Mozilla/5.0"},
        ) as client:
            response = await client.get(url)

        if not response.is_success:
            self.logger.warning(f"구독 해지 페이지 응답 오류: {response.status_code} - {url}")
            return False

        page = response.text.lower()
        succeeded = any(keyword in page for keyword in SUCCESS_KEYWORDS)
        if not succeeded:
            self.logger.info(f"구독 해지 확인 문구 없음: {url}")
        return succeeded
