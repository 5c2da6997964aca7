"""
동기화 오케스트레이터

주기 실행과 즉시 실행 요청을 받아 계정별 동기화 작업을 분배합니다.
동시 실행 수는 세마포어로 제한하며, 계정마다 별도의 유즈케이스 범위
(데이터베이스 세션)를 사용합니다.
"""

import asyncio
from typing import AsyncContextManager, Callable, Optional, Set
from uuid import UUID

from ..domain.entities import CycleReport, SyncOptions, SyncReport, utcnow
from ..domain.ports import LoggerPort
from .account_sync import AccountSyncUseCase

UseCaseScope = Callable[[], AsyncContextManager[AccountSyncUseCase]]


class SyncOrchestrator:
    """동기화 오케스트레이터"""

    def __init__(
        self,
        usecase_scope: UseCaseScope,
        logger: LoggerPort,
        options: Optional[SyncOptions] = None,
    ):
        self.usecase_scope = usecase_scope
        self.logger = logger
        self.options = options or SyncOptions()
        self._background: Set[asyncio.Task] = set()
        self._wakeup: Optional[asyncio.Event] = None
        self._running = False

    @property
    def background_tasks(self) -> Set[asyncio.Task]:
        """사이클 제한 시간을 넘겨 계속 실행 중인 작업들"""
        return set(self._background)

    async def run_cycle(self, owner_id: Optional[str] = None) -> CycleReport:
        """
        계정별 동기화를 한 번 실행합니다.

        제한 시간 안에 끝나지 않은 작업은 취소하지 않고 백그라운드에서 계속 실행됩니다.

        Args:
            owner_id: 지정하면 해당 소유자의 계정만 처리

        Returns:
            사이클 결과
        """
        async with self.usecase_scope() as usecase:
            account_ids = await usecase.list_account_ids(owner_id)

        report = CycleReport(dispatched=len(account_ids))
        if not account_ids:
            self.logger.debug("동기화할 계정이 없습니다")
            return report

        self.logger.info(f"동기화 사이클 시작: {len(account_ids)}개 계정")

        semaphore = asyncio.Semaphore(self.options.worker_concurrency)
        tasks = [
            asyncio.create_task(self._run_account(account_id, semaphore))
            for account_id in account_ids
        ]
        done, pending = await asyncio.wait(tasks, timeout=self.options.cycle_timeout)

        for task in done:
            sync_report = task.result()
            report.reports.append(sync_report)
            if not sync_report.is_success():
                report.failed += 1
            elif sync_report.skipped_reason:
                report.skipped += 1
            else:
                report.succeeded += 1

        if pending:
            self.logger.warning(f"제한 시간 내 완료되지 않은 계정 작업: {len(pending)}개 (계속 실행)")
            report.pending = len(pending)
            for task in pending:
                self._background.add(task)
                task.add_done_callback(self._background.discard)

        self.logger.info(
            f"동기화 사이클 완료: 성공 {report.succeeded}, 건너뜀 {report.skipped}, "
            f"실패 {report.failed}, 진행 중 {report.pending}"
        )
        return report

    async def process_owner_now(self, owner_id: str) -> CycleReport:
        """소유자의 계정을 즉시 동기화합니다."""
        self.logger.info(f"즉시 동기화 요청: {owner_id}")
        return await self.run_cycle(owner_id)

    async def _run_account(self, account_id: UUID, semaphore: asyncio.Semaphore) -> SyncReport:
        """계정 작업 하나를 실행합니다. 예외는 결과로 변환합니다."""
        async with semaphore:
            try:
                async with self.usecase_scope() as usecase:
                    return await usecase.sync_account(account_id)
            except Exception as e:
                self.logger.error(f"계정 동기화 실패: {account_id}, 오류: {str(e)}")
                return SyncReport(account_id=account_id, error=str(e), completed_at=utcnow())

    def trigger(self) -> None:
        """대기 중인 주기 루프를 즉시 깨웁니다."""
        if self._wakeup is not None:
            self._wakeup.set()

    def stop(self) -> None:
        """주기 루프를 종료합니다."""
        self._running = False
        self.trigger()

    async def run_forever(self) -> None:
        """sync_interval 간격으로 사이클을 반복 실행합니다."""
        self._wakeup = asyncio.Event()
        self._running = True
        self.logger.info(f"스케줄러 시작: {self.options.sync_interval}초 간격")

        while self._running:
            try:
                await self.run_cycle()
            except Exception as e:
                self.logger.error(f"동기화 사이클 실패: {str(e)}")

            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.options.sync_interval)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()

        self.logger.info("스케줄러 종료")

    async def wait_background(self) -> None:
        """백그라운드에서 계속 실행 중인 작업이 끝날 때까지 기다립니다."""
        if self._background:
            await asyncio.gather(*list(self._background))
