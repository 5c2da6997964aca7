"""
토큰 수명 주기 유즈케이스

메일 제공자 API 호출 전에 액세스 토큰을 유효하게 유지합니다.
- 만료 임박 시 선제 갱신
- 401 응답 후 사후 갱신
- 갱신 결과는 한 번의 조건부 UPDATE로 저장 (동시 갱신 시 먼저 저장한 쪽 유지)
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from ..domain.entities import Account, AccountStatus, utcnow
from ..domain.exceptions import ReauthenticationRequiredError, TokenRefreshError
from ..domain.ports import (
    AccountRepositoryPort,
    EncryptionServicePort,
    LoggerPort,
    OAuthClientPort,
)

DEFAULT_EXPIRES_IN = 3600


class TokenLifecycleManager:
    """토큰 수명 주기 관리자"""

    def __init__(
        self,
        account_repository: AccountRepositoryPort,
        oauth_client: OAuthClientPort,
        encryption_service: EncryptionServicePort,
        logger: LoggerPort,
        refresh_lookahead: timedelta = timedelta(minutes=5),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.account_repository = account_repository
        self.oauth_client = oauth_client
        self.encryption_service = encryption_service
        self.logger = logger
        self.refresh_lookahead = refresh_lookahead
        self.clock = clock or utcnow

    async def ensure_valid(self, account: Account) -> str:
        """
        유효한 액세스 토큰을 반환합니다.

        만료 임박이면 저장소의 최신 상태를 다시 읽고, 다른 작업이 이미 갱신했다면
        그 토큰을 그대로 사용합니다.

        Args:
            account: 대상 계정

        Returns:
            복호화된 액세스 토큰

        Raises:
            ReauthenticationRequiredError: 리프레시 토큰이 없는 경우
            TokenRefreshError: 갱신 실패
        """
        if not account.credential.is_expiring(self.refresh_lookahead, self.clock()):
            return await self.encryption_service.decrypt(account.credential.access_token)

        current = await self.account_repository.get_by_id(account.id) or account
        if not current.credential.is_expiring(self.refresh_lookahead, self.clock()):
            self.logger.debug(f"이미 갱신된 토큰 사용: {account.id}")
            return await self.encryption_service.decrypt(current.credential.access_token)

        self.logger.info(f"토큰 만료 임박, 갱신 시작: {account.id}")
        return await self._refresh(current)

    async def refresh_on_unauthorized(self, account: Account) -> str:
        """401 응답 후 토큰을 무조건 갱신합니다."""
        self.logger.info(f"401 응답으로 토큰 갱신: {account.id}")
        current = await self.account_repository.get_by_id(account.id) or account
        return await self._refresh(current)

    async def _refresh(self, account: Account) -> str:
        """리프레시 토큰으로 갱신하고 저장합니다."""
        if not account.credential.can_refresh():
            await self.account_repository.update_status(account.id, AccountStatus.EXPIRED)
            self.logger.warning(f"리프레시 토큰 없음, 재인증 필요: {account.email}")
            raise ReauthenticationRequiredError(
                f"리프레시 토큰이 없어 재인증이 필요합니다: {account.email}"
            )

        try:
            refresh_token = await self.encryption_service.decrypt(account.credential.refresh_token)
            response = await self.oauth_client.refresh_token(refresh_token)

            access_token = response.get("access_token")
            if not access_token:
                raise TokenRefreshError("갱신 응답에 access_token이 없습니다")

            expires_in = int(response.get("expires_in") or DEFAULT_EXPIRES_IN)
            rotated_refresh_token = response.get("refresh_token")

            encrypted_access_token = await self.encryption_service.encrypt(access_token)
            # 회전되지 않았으면 이번 갱신에 사용한 리프레시 토큰을 함께 저장
            encrypted_refresh_token = account.credential.refresh_token
            if rotated_refresh_token:
                encrypted_refresh_token = await self.encryption_service.encrypt(rotated_refresh_token)

        except Exception as e:
            self.logger.error(f"토큰 갱신 실패: {account.id}, 오류: {str(e)}")
            await self.account_repository.update_status(account.id, AccountStatus.ERROR)
            if isinstance(e, TokenRefreshError):
                raise
            raise TokenRefreshError(f"토큰 갱신 실패: {str(e)}") from e

        updated = await self.account_repository.update_credential(
            account_id=account.id,
            access_token=encrypted_access_token,
            refresh_token=encrypted_refresh_token,
            expires_at=self.clock() + timedelta(seconds=expires_in),
            status=AccountStatus.ACTIVE,
            expected_access_token=account.credential.access_token,
        )

        if updated is None:
            # 다른 작업이 먼저 저장한 자격 증명을 그대로 사용
            winner = await self.account_repository.get_by_id(account.id)
            if winner is None:
                raise TokenRefreshError(f"계정을 찾을 수 없습니다: {account.id}")
            self.logger.info(f"동시 갱신 감지, 먼저 저장된 토큰 사용: {account.id}")
            return await self.encryption_service.decrypt(winner.credential.access_token)

        self.logger.info(f"토큰 갱신 완료: {account.id}")
        return await self.encryption_service.decrypt(updated.credential.access_token)
