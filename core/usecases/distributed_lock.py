"""
분산 락 유즈케이스

여러 노드가 같은 계정을 동시에 처리하지 않도록 계정 단위 임대를 관리합니다.
락 경합은 오류가 아니며 False로 알립니다. 저장소 오류는 그대로 전파합니다.
"""

from datetime import datetime, timedelta
from typing import Callable, Optional

from ..domain.entities import LockLease, utcnow
from ..domain.ports import LockStorePort, LoggerPort


class DistributedLockManager:
    """분산 락 관리자"""

    def __init__(
        self,
        lock_store: LockStorePort,
        logger: LoggerPort,
        lease_ttl: timedelta = timedelta(minutes=10),
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.lock_store = lock_store
        self.logger = logger
        self.lease_ttl = lease_ttl
        self.clock = clock or utcnow

    async def try_acquire(self, key: str, holder_id: str) -> bool:
        """
        계정 락 획득을 시도합니다.

        만료된 임대를 먼저 정리하고 삽입을 시도합니다. 충돌하면 해당 키의
        임대가 만료된 경우에만 삭제 후 한 번 더 삽입합니다.

        Args:
            key: 락 키 (계정 ID)
            holder_id: 노드 ID

        Returns:
            획득 여부
        """
        now = self.clock()
        await self.lock_store.delete_expired(now)

        lease = LockLease(
            account_key=key,
            holder_id=holder_id,
            acquired_at=now,
            expires_at=now + self.lease_ttl,
        )
        if await self.lock_store.insert_if_absent(lease):
            self.logger.debug(f"락 획득: {key} ({holder_id})")
            return True

        # 다른 노드가 정리 직후 만료된 임대를 남겼을 수 있음
        if await self.lock_store.delete_if_expired(key, now):
            self.logger.info(f"만료된 락 회수: {key}")
            if await self.lock_store.insert_if_absent(lease):
                self.logger.debug(f"락 획득 (회수 후): {key} ({holder_id})")
                return True

        self.logger.debug(f"락 사용 중: {key}")
        return False

    async def release(self, key: str, holder_id: str) -> None:
        """보유 중인 락을 해제합니다. 보유하지 않은 락이면 경고만 남깁니다."""
        released = await self.lock_store.delete_if_owned(key, holder_id)
        if released:
            self.logger.debug(f"락 해제: {key} ({holder_id})")
        else:
            self.logger.warning(f"보유하지 않은 락 해제 시도: {key} ({holder_id})")

    async def is_held(self, key: str, holder_id: str) -> bool:
        """holder_id가 아직 만료되지 않은 임대를 보유 중인지 확인합니다."""
        lease = await self.lock_store.get(key)
        if lease is None or lease.holder_id != holder_id:
            return False
        return not lease.is_expired(self.clock())

    async def cleanup_expired(self) -> int:
        """만료된 모든 락을 정리합니다."""
        return await self.lock_store.delete_expired(self.clock())
