"""
도메인 엔티티 정의

메일함 동기화와 처리 파이프라인의 핵심 개념을 나타내는 엔티티들을 정의합니다.
모든 엔티티는 Pydantic 모델을 기반으로 하여 타입 안정성을 보장합니다.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator


UNSORTED_CATEGORY_NAME = "Unsorted Emails"
UNSORTED_CATEGORY_DESCRIPTION = (
    "Emails that couldn't be automatically categorized due to AI quota limits or processing errors"
)


def utcnow() -> datetime:
    """현재 UTC 시간을 반환합니다. (DB 저장용으로 tzinfo 제거)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AccountStatus(str, Enum):
    """계정 상태"""
    ACTIVE = "active"
    EXPIRED = "expired"
    ERROR = "error"


class UnsubscribeStatus(str, Enum):
    """구독 해지 상태"""
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"
    NOT_FOUND = "not_found"


class SyncState(str, Enum):
    """계정 동기화 단계"""
    IDLE = "idle"
    LOCK_ACQUIRED = "lock_acquired"
    TOKEN_VALID = "token_valid"
    FETCHED = "fetched"
    BATCH_DONE = "batch_done"
    CURSOR_ADVANCED = "cursor_advanced"


class Owner(BaseModel):
    """계정 소유자 엔티티"""

    id: str = Field(..., description="소유자 ID (외부 인증 식별자)")
    primary_email: Optional[str] = Field(None, description="대표 이메일")
    created_at: datetime = Field(default_factory=utcnow, description="생성 시간")


class Credential(BaseModel):
    """OAuth 자격 증명

    토큰 값은 저장소에 보관된 그대로(암호화된 상태) 유지됩니다.
    """

    access_token: str = Field(..., description="액세스 토큰 (암호화된 값)")
    refresh_token: Optional[str] = Field(None, description="리프레시 토큰 (암호화된 값)")
    expires_at: Optional[datetime] = Field(None, description="만료 시간")
    scopes: List[str] = Field(default_factory=list, description="허용된 권한 범위")

    def is_expiring(self, lookahead: timedelta, now: Optional[datetime] = None) -> bool:
        """만료 시간이 없거나 lookahead 안에 만료되는지 확인"""
        if self.expires_at is None:
            return True
        now = now or utcnow()
        return self.expires_at <= now + lookahead

    def can_refresh(self) -> bool:
        """토큰 갱신 가능한지 확인"""
        return bool(self.refresh_token)


class Account(BaseModel):
    """메일함 계정 엔티티"""

    id: UUID = Field(default_factory=uuid4, description="계정 고유 ID")
    owner_id: str = Field(..., description="소유자 ID")
    email: str = Field(..., description="메일함 주소")
    is_primary: bool = Field(default=False, description="대표 계정 여부")
    credential: Credential = Field(..., description="자격 증명")
    sync_cursor: Optional[str] = Field(None, description="증분 동기화 커서 (없으면 미동기화)")
    status: AccountStatus = Field(default=AccountStatus.ACTIVE, description="계정 상태")
    last_sync_at: Optional[datetime] = Field(None, description="마지막 동기화 시간")
    created_at: datetime = Field(default_factory=utcnow, description="생성 시간")
    updated_at: datetime = Field(default_factory=utcnow, description="수정 시간")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        """이메일 형식 검증"""
        if "@" not in v:
            raise ValueError("유효한 이메일 주소가 아닙니다")
        return v.lower()

    def is_active(self) -> bool:
        """계정이 활성 상태인지 확인"""
        return self.status == AccountStatus.ACTIVE

    def can_sync(self) -> bool:
        """동기화 가능한 상태인지 확인"""
        return self.is_active() and bool(self.credential.access_token)


class LockLease(BaseModel):
    """분산 락 임대 엔티티"""

    account_key: str = Field(..., description="락 키")
    holder_id: str = Field(..., description="락을 보유한 노드 ID")
    acquired_at: datetime = Field(..., description="획득 시간")
    expires_at: datetime = Field(..., description="만료 시간")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """임대가 만료되었는지 확인"""
        return self.expires_at < (now or utcnow())


class Category(BaseModel):
    """메일 분류 카테고리 엔티티"""

    id: UUID = Field(default_factory=uuid4, description="카테고리 ID")
    account_id: UUID = Field(..., description="계정 ID")
    name: str = Field(..., description="카테고리 이름")
    description: Optional[str] = Field(None, description="분류 기준 설명")
    created_at: datetime = Field(default_factory=utcnow, description="생성 시간")

    def matches(self, label: Optional[str]) -> bool:
        """대소문자 구분 없이 이름이 일치하는지 확인"""
        if not label:
            return False
        return self.name.strip().lower() == label.strip().lower()


class ProcessedItem(BaseModel):
    """처리된 메일 항목 엔티티"""

    id: UUID = Field(default_factory=uuid4, description="항목 ID")
    account_id: UUID = Field(..., description="계정 ID")
    external_id: str = Field(..., description="메일 제공자 메시지 ID")
    category_id: Optional[UUID] = Field(None, description="카테고리 ID")
    summary: Optional[str] = Field(None, description="요약")
    original_content: Optional[str] = Field(None, description="원본 내용")
    unsubscribed: bool = Field(default=False, description="구독 해지 여부")
    unsubscribe_status: Optional[UnsubscribeStatus] = Field(None, description="구독 해지 상태")
    unsubscribe_link: Optional[str] = Field(None, description="구독 해지 링크")
    created_at: datetime = Field(default_factory=utcnow, description="생성 시간")


class MailboxItem(BaseModel):
    """메일 제공자에서 가져온 원본 메시지"""

    external_id: str = Field(..., description="메일 제공자 메시지 ID")
    payload: Dict[str, Any] = Field(default_factory=dict, description="원본 응답")


class SyncOptions(BaseModel):
    """동기화 파이프라인 옵션"""

    worker_concurrency: int = Field(default=5, ge=1, description="동시 처리 계정 수")
    batch_size: int = Field(default=10, ge=1, description="배치 크기")
    inter_item_delay: float = Field(default=0.05, ge=0, description="항목 간 지연 (초)")
    lease_ttl: timedelta = Field(default=timedelta(minutes=10), description="락 임대 기간")
    refresh_lookahead: timedelta = Field(default=timedelta(minutes=5), description="선제 갱신 기준")
    cycle_timeout: float = Field(default=600.0, gt=0, description="사이클 대기 제한 (초)")
    full_resync_limit: int = Field(default=50, ge=1, description="전체 재동기화 최대 항목 수")
    sync_interval: float = Field(default=300.0, gt=0, description="스케줄 간격 (초)")

    @property
    def inter_chunk_delay(self) -> float:
        """배치 간 지연 (항목 간 지연의 2배)"""
        return self.inter_item_delay * 2


class BatchResult(BaseModel):
    """배치 처리 결과"""

    fetched: int = 0
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    cursor_advanced: bool = False


class SyncReport(BaseModel):
    """계정 단위 동기화 결과"""

    account_id: UUID = Field(..., description="계정 ID")
    state: SyncState = Field(default=SyncState.IDLE, description="마지막으로 도달한 단계")
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    skipped_reason: Optional[str] = None
    error: Optional[str] = None
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None

    def is_success(self) -> bool:
        """오류 없이 끝났는지 확인"""
        return self.error is None


class CycleReport(BaseModel):
    """스케줄 사이클 결과"""

    dispatched: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    pending: int = 0
    reports: List[SyncReport] = Field(default_factory=list)


class BulkActionResult(BaseModel):
    """일괄 작업 결과"""

    succeeded: List[UUID] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict, description="항목 ID별 실패 사유")
