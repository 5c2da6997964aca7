"""
Google OAuth 클라이언트 어댑터

리프레시 토큰으로 액세스 토큰을 갱신합니다.
"""

from typing import Optional

import httpx

from core.domain.exceptions import TokenRefreshError
from core.domain.ports import LoggerPort, OAuthClientPort


class GoogleOAuthClientAdapter(OAuthClientPort):
    """Google OAuth 토큰 엔드포인트 어댑터"""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        logger: LoggerPort,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.logger = logger
        self.token_url = "https://oauth2.googleapis.com/token"
        self.timeout = 30.0
        self.transport = transport

    async def refresh_token(self, refresh_token: str) -> dict:
        """리프레시 토큰으로 토큰을 갱신합니다."""
        self.logger.debug(f"토큰 갱신 요청: client_id={self.client_id}")

        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                self.token_url,
                data=data,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )

            if response.status_code != 200:
                error_msg = f"토큰 갱신 실패: {response.status_code} - {response.text}"
                self.logger.error(error_msg)
                raise TokenRefreshError(error_msg)

            result = response.json()
            self.logger.debug("토큰 갱신 성공")
            return result
