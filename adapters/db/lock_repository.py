"""
데이터베이스 기반 분산 락 저장소 어댑터

account_locks 테이블의 기본 키 유일성을 이용해 노드 간 계정 락을 구현합니다.
모든 연산은 단일 행 INSERT/DELETE 한 번으로 끝납니다.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entities import LockLease
from core.domain.ports import LockStorePort, LoggerPort
from .models import AccountLockModel


class DatabaseLockStoreAdapter(LockStorePort):
    """데이터베이스 기반 락 저장소 어댑터"""

    def __init__(self, session: AsyncSession, logger: LoggerPort):
        self.session = session
        self.logger = logger

    async def insert_if_absent(self, lease: LockLease) -> bool:
        """키가 없을 때만 임대를 삽입합니다."""
        model = AccountLockModel(
            account_key=lease.account_key,
            holder_id=lease.holder_id,
            acquired_at=lease.acquired_at,
            expires_at=lease.expires_at,
        )
        self.session.add(model)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            self.logger.debug(f"락 삽입 충돌: {lease.account_key}")
            return False
        except Exception:
            await self.session.rollback()
            raise

        # 락 행은 세션에 남기지 않음 (같은 세션에서 삭제 후 재삽입)
        self.session.expunge(model)
        return True

    async def get(self, account_key: str) -> Optional[LockLease]:
        """키로 임대를 조회합니다."""
        stmt = (
            select(AccountLockModel)
            .where(AccountLockModel.account_key == account_key)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        self.session.expunge(model)
        return self._model_to_entity(model)

    async def delete_if_expired(self, account_key: str, now: datetime) -> bool:
        """만료된 경우에만 해당 키의 임대를 삭제합니다."""
        stmt = delete(AccountLockModel).where(
            AccountLockModel.account_key == account_key,
            AccountLockModel.expires_at < now,
        )
        return await self._execute_delete(stmt) > 0

    async def delete_if_owned(self, account_key: str, holder_id: str) -> bool:
        """보유자가 일치할 때만 임대를 삭제합니다."""
        stmt = delete(AccountLockModel).where(
            AccountLockModel.account_key == account_key,
            AccountLockModel.holder_id == holder_id,
        )
        return await self._execute_delete(stmt) > 0

    async def delete_expired(self, now: datetime) -> int:
        """만료된 모든 임대를 삭제합니다."""
        stmt = delete(AccountLockModel).where(AccountLockModel.expires_at < now)
        deleted = await self._execute_delete(stmt)
        if deleted:
            self.logger.debug(f"만료된 락 정리: {deleted}개")
        return deleted

    async def list_all(self) -> List[LockLease]:
        """모든 임대를 조회합니다."""
        stmt = (
            select(AccountLockModel)
            .order_by(AccountLockModel.acquired_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        leases = []
        for model in result.scalars().all():
            self.session.expunge(model)
            leases.append(self._model_to_entity(model))
        return leases

    async def _execute_delete(self, stmt) -> int:
        """삭제 문을 실행하고 삭제 건수를 반환합니다."""
        try:
            result = await self.session.execute(
                stmt.execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return result.rowcount

    def _model_to_entity(self, model: AccountLockModel) -> LockLease:
        """모델을 엔티티로 변환합니다."""
        return LockLease(
            account_key=model.account_key,
            holder_id=model.holder_id,
            acquired_at=model.acquired_at,
            expires_at=model.expires_at,
        )
