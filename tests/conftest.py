"""
테스트 공용 픽스처

임시 SQLite 데이터베이스, 가짜 암호화 서비스, 고정 시계 등을 제공합니다.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from core.domain.entities import (
    Account,
    AccountStatus,
    Credential,
    LockLease,
)
from core.domain.ports import EncryptionServicePort, LockStorePort, LoggerPort
from adapters.db.database import DatabaseAdapter
from config.adapters import TestingConfig

FIXED_NOW = datetime(2024, 1, 15, 12, 0, 0)


class FakeClock:
    """수동으로 진행시키는 시계"""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeEncryptionService(EncryptionServicePort):
    """접두사만 붙이는 암호화 서비스"""

    async def encrypt(self, data: str) -> str:
        return f"enc:{data}" if data else ""

    async def decrypt(self, encrypted_data: str) -> str:
        if not encrypted_data:
            return ""
        return encrypted_data[len("enc:"):] if encrypted_data.startswith("enc:") else encrypted_data


class InMemoryLockStore(LockStorePort):
    """딕셔너리 기반 락 저장소 (단일 이벤트 루프에서 원자적)"""

    def __init__(self):
        self.leases: Dict[str, LockLease] = {}

    async def insert_if_absent(self, lease: LockLease) -> bool:
        if lease.account_key in self.leases:
            return False
        self.leases[lease.account_key] = lease
        return True

    async def get(self, account_key: str) -> Optional[LockLease]:
        return self.leases.get(account_key)

    async def delete_if_expired(self, account_key: str, now: datetime) -> bool:
        lease = self.leases.get(account_key)
        if lease is not None and lease.expires_at < now:
            del self.leases[account_key]
            return True
        return False

    async def delete_if_owned(self, account_key: str, holder_id: str) -> bool:
        lease = self.leases.get(account_key)
        if lease is not None and lease.holder_id == holder_id:
            del self.leases[account_key]
            return True
        return False

    async def delete_expired(self, now: datetime) -> int:
        expired = [key for key, lease in self.leases.items() if lease.expires_at < now]
        for key in expired:
            del self.leases[key]
        return len(expired)

    async def list_all(self) -> List[LockLease]:
        return list(self.leases.values())


def make_account(
    owner_id: str = "owner-1",
    email: str = "user@gmail.com",
    expires_at: Optional[datetime] = None,
    refresh_token: Optional[str] = "enc:refresh-token",
    status: AccountStatus = AccountStatus.ACTIVE,
    sync_cursor: Optional[str] = None,
) -> Account:
    """테스트용 계정 엔티티를 생성합니다."""
    return Account(
        owner_id=owner_id,
        email=email,
        credential=Credential(
            access_token="enc:access-token",
            refresh_token=refresh_token,
            expires_at=expires_at,
        ),
        status=status,
        sync_cursor=sync_cursor,
    )


@pytest.fixture
def logger():
    """호출만 기록하는 로거"""
    return MagicMock(spec=LoggerPort)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def encryption_service():
    return FakeEncryptionService()


@pytest_asyncio.fixture
async def db_adapter(tmp_path):
    """임시 파일 SQLite 데이터베이스"""
    config = TestingConfig(database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    adapter = DatabaseAdapter(config)
    await adapter.initialize()
    await adapter.create_tables()
    yield adapter
    await adapter.close()


@pytest_asyncio.fixture
async def session(db_adapter):
    async with db_adapter.get_session() as session:
        yield session
