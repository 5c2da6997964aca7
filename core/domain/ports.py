"""
포트 인터페이스 정의

클린 아키텍처의 핵심으로, Core 레이어와 외부 어댑터 간의 계약을 정의합니다.
모든 포트는 추상 기본 클래스(ABC)로 정의되어 구현을 강제합니다.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from .entities import (
    Account,
    AccountStatus,
    Category,
    LockLease,
    MailboxItem,
    Owner,
    ProcessedItem,
    SyncOptions,
    UnsubscribeStatus,
)


class OwnerRepositoryPort(ABC):
    """소유자 저장소 포트"""

    @abstractmethod
    async def get_by_id(self, owner_id: str) -> Optional[Owner]:
        """ID로 소유자 조회"""
        pass

    @abstractmethod
    async def create(self, owner: Owner) -> Owner:
        """소유자 생성"""
        pass


class AccountRepositoryPort(ABC):
    """계정 저장소 포트"""

    @abstractmethod
    async def create(self, account: Account) -> Account:
        """계정 생성"""
        pass

    @abstractmethod
    async def get_by_id(self, account_id: UUID) -> Optional[Account]:
        """ID로 계정 조회 (항상 저장소의 최신 상태)"""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[Account]:
        """메일함 주소로 계정 조회"""
        pass

    @abstractmethod
    async def list_all(self) -> List[Account]:
        """모든 계정 목록 조회"""
        pass

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[Account]:
        """소유자별 계정 목록 조회"""
        pass

    @abstractmethod
    async def update_credential(
        self,
        account_id: UUID,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: Optional[datetime],
        status: AccountStatus,
        expected_access_token: Optional[str] = None,
    ) -> Optional[Account]:
        """자격 증명과 상태를 단일 UPDATE로 갱신 (refresh_token이 None이면 유지)

        expected_access_token을 주면 저장된 액세스 토큰이 그 값일 때만 갱신하고,
        다른 작업이 먼저 바꿨다면 None을 반환합니다.
        """
        pass

    @abstractmethod
    async def update_status(self, account_id: UUID, status: AccountStatus) -> None:
        """계정 상태 갱신"""
        pass

    @abstractmethod
    async def update_cursor(self, account_id: UUID, cursor: str, synced_at: datetime) -> None:
        """동기화 커서 갱신"""
        pass

    @abstractmethod
    async def set_primary(self, account_id: UUID) -> Account:
        """대표 계정 지정 (같은 소유자의 다른 계정은 해제)"""
        pass

    @abstractmethod
    async def delete(self, account_id: UUID) -> bool:
        """계정 삭제"""
        pass


class CategoryRepositoryPort(ABC):
    """카테고리 저장소 포트"""

    @abstractmethod
    async def list_by_account(self, account_id: UUID) -> List[Category]:
        """계정별 카테고리 목록 조회"""
        pass

    @abstractmethod
    async def get_by_name(self, account_id: UUID, name: str) -> Optional[Category]:
        """이름으로 카테고리 조회 (대소문자 무시)"""
        pass

    @abstractmethod
    async def create(self, category: Category) -> Category:
        """카테고리 생성 (이름 중복 시 DuplicateItemError)"""
        pass


class ProcessedItemRepositoryPort(ABC):
    """처리 항목 저장소 포트"""

    @abstractmethod
    async def exists(self, account_id: UUID, external_id: str) -> bool:
        """(계정, 외부 ID) 항목 존재 여부 확인"""
        pass

    @abstractmethod
    async def create(self, item: ProcessedItem) -> ProcessedItem:
        """항목 생성 (유니크 제약 위반 시 DuplicateItemError)"""
        pass

    @abstractmethod
    async def get_by_id(self, item_id: UUID) -> Optional[ProcessedItem]:
        """ID로 항목 조회"""
        pass

    @abstractmethod
    async def list_by_account(
        self,
        account_id: UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ProcessedItem]:
        """계정별 항목 목록 조회"""
        pass

    @abstractmethod
    async def update_unsubscribe(
        self,
        item_id: UUID,
        status: UnsubscribeStatus,
        link: Optional[str] = None,
        unsubscribed: bool = False,
    ) -> None:
        """구독 해지 상태 갱신"""
        pass

    @abstractmethod
    async def delete(self, item_id: UUID) -> bool:
        """항목 삭제"""
        pass


class LockStorePort(ABC):
    """분산 락 저장소 포트

    모든 연산은 저장소의 단일 행 원자성에 의존합니다.
    """

    @abstractmethod
    async def insert_if_absent(self, lease: LockLease) -> bool:
        """키가 없을 때만 임대를 삽입 (충돌 시 False)"""
        pass

    @abstractmethod
    async def get(self, account_key: str) -> Optional[LockLease]:
        """키로 임대 조회"""
        pass

    @abstractmethod
    async def delete_if_expired(self, account_key: str, now: datetime) -> bool:
        """만료된 경우에만 해당 키의 임대를 삭제"""
        pass

    @abstractmethod
    async def delete_if_owned(self, account_key: str, holder_id: str) -> bool:
        """보유자가 일치할 때만 임대를 삭제"""
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """만료된 모든 임대를 삭제하고 삭제 건수를 반환"""
        pass

    @abstractmethod
    async def list_all(self) -> List[LockLease]:
        """모든 임대 목록 조회"""
        pass


class MailboxClientPort(ABC):
    """메일 제공자 클라이언트 포트

    401 응답은 UnauthorizedError, 거부된 커서는 CursorInvalidError로 변환합니다.
    """

    @abstractmethod
    async def fetch_changes(
        self,
        access_token: str,
        mailbox_id: str,
        cursor: Optional[str],
        limit: int = 50,
    ) -> List[MailboxItem]:
        """커서 이후의 신규 메시지 조회

        커서가 있으면 히스토리의 모든 페이지를 따라가고, 없으면 limit개까지만 조회합니다.
        """
        pass

    @abstractmethod
    async def current_cursor(self, access_token: str, mailbox_id: str) -> Optional[str]:
        """메일함의 현재 커서 조회"""
        pass

    @abstractmethod
    def extract_content(self, item: MailboxItem) -> str:
        """메시지에서 헤더와 본문 추출"""
        pass

    @abstractmethod
    async def archive(self, access_token: str, mailbox_id: str, external_id: str) -> None:
        """메시지 보관 처리"""
        pass

    @abstractmethod
    async def delete(self, access_token: str, mailbox_id: str, external_id: str) -> None:
        """메시지 삭제 (휴지통 이동)"""
        pass


class OAuthClientPort(ABC):
    """OAuth 토큰 엔드포인트 포트"""

    @abstractmethod
    async def refresh_token(self, refresh_token: str) -> dict:
        """리프레시 토큰으로 토큰 갱신 (access_token, expires_in, refresh_token?)"""
        pass


class ClassifierPort(ABC):
    """메일 분류 서비스 포트

    할당량 초과는 QuotaExceededError, 그 외 실패는 ClassificationError로 알립니다.
    """

    @abstractmethod
    async def classify(self, content: str, categories: List[Category]) -> Optional[str]:
        """카테고리 이름 하나를 반환"""
        pass

    @abstractmethod
    async def summarize(self, content: str) -> Optional[str]:
        """메일 요약"""
        pass

    @abstractmethod
    async def extract_unsubscribe_link(self, content: str) -> Optional[str]:
        """구독 해지 링크 추출 (없으면 None)"""
        pass


class UnsubscribeExecutorPort(ABC):
    """구독 해지 실행 포트"""

    @abstractmethod
    async def execute(self, url: str, user_email: str) -> bool:
        """구독 해지 링크를 실행하고 성공 여부를 반환"""
        pass


class EncryptionServicePort(ABC):
    """암호화 서비스 포트"""

    @abstractmethod
    async def encrypt(self, data: str) -> str:
        """데이터 암호화"""
        pass

    @abstractmethod
    async def decrypt(self, encrypted_data: str) -> str:
        """데이터 복호화"""
        pass


class LoggerPort(ABC):
    """로거 포트"""

    @abstractmethod
    def info(self, message: str, **kwargs) -> None:
        """정보 로그"""
        pass

    @abstractmethod
    def warning(self, message: str, **kwargs) -> None:
        """경고 로그"""
        pass

    @abstractmethod
    def error(self, message: str, **kwargs) -> None:
        """오류 로그"""
        pass

    @abstractmethod
    def debug(self, message: str, **kwargs) -> None:
        """디버그 로그"""
        pass


class ConfigPort(ABC):
    """설정 포트"""

    # 환경 설정
    @abstractmethod
    def get_environment(self) -> str:
        """환경 조회 (development, production, testing)"""
        pass

    @abstractmethod
    def is_debug(self) -> bool:
        """디버그 모드 여부"""
        pass

    # 데이터베이스 설정
    @abstractmethod
    def get_database_url(self) -> str:
        """데이터베이스 URL 조회"""
        pass

    # Google 설정
    @abstractmethod
    def get_google_client_id(self) -> str:
        """Google OAuth 클라이언트 ID 조회"""
        pass

    @abstractmethod
    def get_google_client_secret(self) -> str:
        """Google OAuth 클라이언트 시크릿 조회"""
        pass

    @abstractmethod
    def get_gemini_api_key(self) -> Optional[str]:
        """Gemini API 키 조회"""
        pass

    @abstractmethod
    def get_gemini_model(self) -> str:
        """Gemini 모델 이름 조회"""
        pass

    # 보안 설정
    @abstractmethod
    def get_encryption_key(self) -> str:
        """암호화 키 조회"""
        pass

    # 로깅 설정
    @abstractmethod
    def get_log_level(self) -> str:
        """로그 레벨 조회"""
        pass

    @abstractmethod
    def get_log_format(self) -> str:
        """로그 포맷 조회"""
        pass

    # 웹 서버 설정
    @abstractmethod
    def get_web_host(self) -> str:
        """웹 서버 호스트 조회"""
        pass

    @abstractmethod
    def get_web_port(self) -> int:
        """웹 서버 포트 조회"""
        pass

    # 동기화 설정
    @abstractmethod
    def get_node_id(self) -> str:
        """락 보유자로 사용할 노드 ID 조회"""
        pass

    @abstractmethod
    def is_scheduler_enabled(self) -> bool:
        """웹 서버에서 스케줄러 실행 여부"""
        pass

    @abstractmethod
    def get_sync_options(self) -> SyncOptions:
        """동기화 파이프라인 옵션 조회"""
        pass

    @abstractmethod
    def get_unsubscribe_retry_config(self) -> dict:
        """구독 해지 재시도 설정 조회"""
        pass
