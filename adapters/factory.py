"""
어댑터 팩토리

모든 어댑터들을 생성하고 의존성을 주입하는 팩토리 클래스입니다.
클린 아키텍처의 의존성 역전 원칙을 구현합니다.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.ports import (
    AccountRepositoryPort,
    CategoryRepositoryPort,
    ClassifierPort,
    ConfigPort,
    EncryptionServicePort,
    LockStorePort,
    LoggerPort,
    MailboxClientPort,
    OAuthClientPort,
    OwnerRepositoryPort,
    ProcessedItemRepositoryPort,
    UnsubscribeExecutorPort,
)
from core.usecases.account_management import AccountManagementUseCase
from core.usecases.account_sync import AccountSyncUseCase
from core.usecases.batch_processing import BatchProcessor
from core.usecases.distributed_lock import DistributedLockManager
from core.usecases.mail_actions import MailActionUseCase
from core.usecases.mailbox_diff import MailboxDiffReader
from core.usecases.orchestrator import SyncOrchestrator
from core.usecases.token_lifecycle import TokenLifecycleManager

from .db.database import DatabaseAdapter
from .db.lock_repository import DatabaseLockStoreAdapter
from .db.repositories import (
    AccountRepositoryAdapter,
    CategoryRepositoryAdapter,
    OwnerRepositoryAdapter,
    ProcessedItemRepositoryAdapter,
)
from .external.encryption_service import EncryptionServiceAdapter
from .external.gemini_classifier import GeminiClassifierAdapter
from .external.gmail_api_client import GmailApiClientAdapter
from .external.google_oauth_client import GoogleOAuthClientAdapter
from .external.unsubscribe_executor import HttpUnsubscribeExecutorAdapter
from .logger import LoggerAdapter
from config.adapters import get_config


class AdapterFactory:
    """어댑터 팩토리"""

    def __init__(self, config: Optional[ConfigPort] = None):
        self.config = config or get_config()
        self.sync_options = self.config.get_sync_options()
        self._logger: Optional[LoggerPort] = None
        self._encryption_service: Optional[EncryptionServicePort] = None
        self._mailbox_client: Optional[MailboxClientPort] = None
        self._oauth_client: Optional[OAuthClientPort] = None
        self._classifier: Optional[ClassifierPort] = None
        self._unsubscribe_executor: Optional[UnsubscribeExecutorPort] = None

    # 세션과 무관한 어댑터 (싱글톤)
    def create_logger(self) -> LoggerPort:
        """로거 어댑터를 생성합니다."""
        if self._logger is None:
            self._logger = LoggerAdapter(
                name="mailsync",
                level=self.config.get_log_level(),
                format_string=self.config.get_log_format(),
            )
        return self._logger

    def create_encryption_service(self) -> EncryptionServicePort:
        """암호화 서비스 어댑터를 생성합니다."""
        if self._encryption_service is None:
            self._encryption_service = EncryptionServiceAdapter(
                encryption_key=self.config.get_encryption_key(),
                logger=self.create_logger(),
            )
        return self._encryption_service

    def create_mailbox_client(self) -> MailboxClientPort:
        """Gmail API 클라이언트 어댑터를 생성합니다."""
        if self._mailbox_client is None:
            self._mailbox_client = GmailApiClientAdapter(logger=self.create_logger())
        return self._mailbox_client

    def create_oauth_client(self) -> OAuthClientPort:
        """Google OAuth 클라이언트 어댑터를 생성합니다."""
        if self._oauth_client is None:
            self._oauth_client = GoogleOAuthClientAdapter(
                client_id=self.config.get_google_client_id(),
                client_secret=self.config.get_google_client_secret(),
                logger=self.create_logger(),
            )
        return self._oauth_client

    def create_classifier(self) -> ClassifierPort:
        """Gemini 분류 서비스 어댑터를 생성합니다."""
        if self._classifier is None:
            self._classifier = GeminiClassifierAdapter(
                api_key=self.config.get_gemini_api_key(),
                model=self.config.get_gemini_model(),
                logger=self.create_logger(),
            )
        return self._classifier

    def create_unsubscribe_executor(self) -> UnsubscribeExecutorPort:
        """구독 해지 실행 어댑터를 생성합니다."""
        if self._unsubscribe_executor is None:
            self._unsubscribe_executor = HttpUnsubscribeExecutorAdapter(logger=self.create_logger())
        return self._unsubscribe_executor

    # 세션 단위 Repository
    def create_owner_repository(self, session: AsyncSession) -> OwnerRepositoryPort:
        """소유자 Repository 어댑터를 생성합니다."""
        return OwnerRepositoryAdapter(session)

    def create_account_repository(self, session: AsyncSession) -> AccountRepositoryPort:
        """계정 Repository 어댑터를 생성합니다."""
        return AccountRepositoryAdapter(session)

    def create_category_repository(self, session: AsyncSession) -> CategoryRepositoryPort:
        """카테고리 Repository 어댑터를 생성합니다."""
        return CategoryRepositoryAdapter(session)

    def create_item_repository(self, session: AsyncSession) -> ProcessedItemRepositoryPort:
        """처리 항목 Repository 어댑터를 생성합니다."""
        return ProcessedItemRepositoryAdapter(session)

    def create_lock_store(self, session: AsyncSession) -> LockStorePort:
        """락 저장소 어댑터를 생성합니다."""
        return DatabaseLockStoreAdapter(session, self.create_logger())

    # 유즈케이스
    def create_lock_manager(self, session: AsyncSession) -> DistributedLockManager:
        """분산 락 관리자를 생성합니다."""
        return DistributedLockManager(
            lock_store=self.create_lock_store(session),
            logger=self.create_logger(),
            lease_ttl=self.sync_options.lease_ttl,
        )

    def create_token_manager(self, session: AsyncSession) -> TokenLifecycleManager:
        """토큰 수명 주기 관리자를 생성합니다."""
        return TokenLifecycleManager(
            account_repository=self.create_account_repository(session),
            oauth_client=self.create_oauth_client(),
            encryption_service=self.create_encryption_service(),
            logger=self.create_logger(),
            refresh_lookahead=self.sync_options.refresh_lookahead,
        )

    def create_batch_processor(self, session: AsyncSession) -> BatchProcessor:
        """배치 처리기를 생성합니다."""
        return BatchProcessor(
            mailbox_client=self.create_mailbox_client(),
            classifier=self.create_classifier(),
            account_repository=self.create_account_repository(session),
            category_repository=self.create_category_repository(session),
            item_repository=self.create_item_repository(session),
            logger=self.create_logger(),
            options=self.sync_options,
        )

    def create_account_sync_usecase(self, session: AsyncSession) -> AccountSyncUseCase:
        """계정 동기화 유즈케이스를 생성합니다."""
        return AccountSyncUseCase(
            account_repository=self.create_account_repository(session),
            lock_manager=self.create_lock_manager(session),
            token_manager=self.create_token_manager(session),
            diff_reader=MailboxDiffReader(
                mailbox_client=self.create_mailbox_client(),
                logger=self.create_logger(),
                full_resync_limit=self.sync_options.full_resync_limit,
            ),
            batch_processor=self.create_batch_processor(session),
            logger=self.create_logger(),
            node_id=self.config.get_node_id(),
        )

    def create_account_management_usecase(self, session: AsyncSession) -> AccountManagementUseCase:
        """계정 관리 유즈케이스를 생성합니다."""
        return AccountManagementUseCase(
            owner_repository=self.create_owner_repository(session),
            account_repository=self.create_account_repository(session),
            category_repository=self.create_category_repository(session),
            encryption_service=self.create_encryption_service(),
            logger=self.create_logger(),
        )

    def create_mail_action_usecase(self, session: AsyncSession) -> MailActionUseCase:
        """메일 일괄 작업 유즈케이스를 생성합니다."""
        retry_config = self.config.get_unsubscribe_retry_config()
        return MailActionUseCase(
            account_repository=self.create_account_repository(session),
            item_repository=self.create_item_repository(session),
            token_manager=self.create_token_manager(session),
            mailbox_client=self.create_mailbox_client(),
            classifier=self.create_classifier(),
            unsubscribe_executor=self.create_unsubscribe_executor(),
            logger=self.create_logger(),
            max_attempts=retry_config["max_attempts"],
            base_delay=retry_config["base_delay"],
        )

    @asynccontextmanager
    async def account_sync_scope(self, db_adapter: DatabaseAdapter) -> AsyncIterator[AccountSyncUseCase]:
        """계정 작업마다 새 세션으로 동기화 유즈케이스를 제공합니다."""
        async with db_adapter.get_session() as session:
            yield self.create_account_sync_usecase(session)

    def create_orchestrator(self, db_adapter: DatabaseAdapter) -> SyncOrchestrator:
        """동기화 오케스트레이터를 생성합니다."""
        return SyncOrchestrator(
            usecase_scope=lambda: self.account_sync_scope(db_adapter),
            logger=self.create_logger(),
            options=self.sync_options,
        )

    def get_config(self) -> ConfigPort:
        """설정 객체를 반환합니다."""
        return self.config


# 전역 팩토리 인스턴스
_factory: Optional[AdapterFactory] = None


def get_adapter_factory() -> AdapterFactory:
    """전역 어댑터 팩토리 인스턴스를 반환합니다."""
    global _factory
    if _factory is None:
        _factory = AdapterFactory()
    return _factory


def initialize_adapter_factory(config: Optional[ConfigPort] = None) -> AdapterFactory:
    """어댑터 팩토리를 초기화합니다."""
    global _factory
    _factory = AdapterFactory(config)
    return _factory
