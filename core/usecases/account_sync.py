"""
계정 동기화 유즈케이스

한 계정에 대해 락 획득 → 토큰 확인 → 증분 조회 → 배치 처리 → 커서 전진 → 락 해제
순서로 동기화를 수행합니다. 락은 어떤 경우에도 해제합니다.
"""

from typing import List, Optional
from uuid import UUID

from ..domain.entities import SyncReport, SyncState, utcnow
from ..domain.exceptions import UnauthorizedError
from ..domain.ports import AccountRepositoryPort, LoggerPort
from .batch_processing import BatchProcessor
from .distributed_lock import DistributedLockManager
from .mailbox_diff import MailboxDiffReader
from .token_lifecycle import TokenLifecycleManager


class AccountSyncUseCase:
    """계정 동기화 유즈케이스"""

    def __init__(
        self,
        account_repository: AccountRepositoryPort,
        lock_manager: DistributedLockManager,
        token_manager: TokenLifecycleManager,
        diff_reader: MailboxDiffReader,
        batch_processor: BatchProcessor,
        logger: LoggerPort,
        node_id: str,
    ):
        self.account_repository = account_repository
        self.lock_manager = lock_manager
        self.token_manager = token_manager
        self.diff_reader = diff_reader
        self.batch_processor = batch_processor
        self.logger = logger
        self.node_id = node_id

    async def list_account_ids(self, owner_id: Optional[str] = None) -> List[UUID]:
        """동기화 대상 계정 ID 목록을 조회합니다."""
        if owner_id:
            accounts = await self.account_repository.list_by_owner(owner_id)
        else:
            accounts = await self.account_repository.list_all()
        return [account.id for account in accounts]

    async def sync_account(self, account_id: UUID) -> SyncReport:
        """
        계정 하나를 동기화합니다.

        Args:
            account_id: 계정 ID

        Returns:
            동기화 결과 (락 경합, 비활성 계정은 skipped_reason으로 표시)

        Raises:
            ReauthenticationRequiredError, TokenRefreshError: 토큰 문제
            UnauthorizedError: 갱신 후에도 401이 반복된 경우
        """
        report = SyncReport(account_id=account_id)
        lock_key = str(account_id)

        if not await self.lock_manager.try_acquire(lock_key, self.node_id):
            self.logger.info(f"다른 노드가 처리 중이라 건너뜀: {account_id}")
            report.skipped_reason = "locked"
            report.completed_at = utcnow()
            return report

        report.state = SyncState.LOCK_ACQUIRED
        try:
            # 락 획득 후 최신 상태 재조회
            account = await self.account_repository.get_by_id(account_id)
            if account is None:
                report.skipped_reason = "not_found"
                return report

            if not account.can_sync():
                self.logger.info(f"동기화할 수 없는 계정 상태: {account.email} ({account.status.value})")
                report.skipped_reason = f"status:{account.status.value}"
                return report

            self.logger.info(f"계정 동기화 시작: {account.email}")
            access_token = await self.token_manager.ensure_valid(account)
            report.state = SyncState.TOKEN_VALID

            try:
                items = await self.diff_reader.fetch(access_token, account.email, account.sync_cursor)
            except UnauthorizedError:
                # 401은 한 번만 갱신 후 재시도
                access_token = await self.token_manager.refresh_on_unauthorized(account)
                account = await self.account_repository.get_by_id(account_id) or account
                items = await self.diff_reader.fetch(access_token, account.email, account.sync_cursor)
            report.state = SyncState.FETCHED

            async def lease_held() -> bool:
                return await self.lock_manager.is_held(lock_key, self.node_id)

            # 커서 저장 직전 임대 재확인
            result = await self.batch_processor.process(
                account, items, access_token, lease_check=lease_held
            )
            report.state = SyncState.BATCH_DONE
            report.processed = result.processed
            report.skipped = result.skipped
            report.failed = result.failed

            if result.cursor_advanced:
                report.state = SyncState.CURSOR_ADVANCED

            self.logger.info(
                f"계정 동기화 완료: {account.email}, 조회 {result.fetched}, 처리 {result.processed}"
            )
            return report

        finally:
            report.completed_at = utcnow()
            await self.lock_manager.release(lock_key, self.node_id)
