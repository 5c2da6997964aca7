"""
설정 어댑터

환경 변수와 .env 파일에서 설정을 읽어 ConfigPort를 구현합니다.
"""

import os
import platform
from datetime import timedelta
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.domain.entities import SyncOptions
from core.domain.ports import ConfigPort


def resolve_node_id() -> str:
    """락 보유자로 사용할 노드 ID를 결정합니다."""
    for name in ("FLY_APP_INSTANCE_ID", "HOSTNAME"):
        value = os.getenv(name)
        if value:
            return value
    return f"{os.getenv('USER', 'user')}-{platform.node() or 'node'}"


class BaseConfig(BaseSettings, ConfigPort):
    """기본 설정 클래스"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # 환경 설정
    environment: str = "development"
    debug: bool = False

    # 데이터베이스 설정
    database_url: str

    # Google 설정
    google_client_id: str
    google_client_secret: str
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"

    # 암호화 설정
    encryption_key: str

    # 로깅 설정
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # 웹 서버 설정
    web_host: str = "0.0.0.0"
    web_port: int = 5000

    # 노드/스케줄러 설정
    node_id: str = Field(default_factory=resolve_node_id)
    scheduler_enabled: bool = True

    # 메일 동기화 설정
    worker_concurrency: int = 5
    sync_batch_size: int = 10
    inter_item_delay_seconds: float = 0.05
    lease_ttl_minutes: int = 10
    refresh_lookahead_minutes: int = 5
    cycle_timeout_seconds: float = 600.0
    full_resync_limit: int = 50
    sync_interval_minutes: int = 5

    # 구독 해지 재시도 설정
    unsubscribe_max_attempts: int = 3
    unsubscribe_base_delay_seconds: float = 1.0

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """로그 레벨 검증"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"로그 레벨은 {valid_levels} 중 하나여야 합니다")
        return v.upper()

    @field_validator("worker_concurrency", "sync_batch_size", "full_resync_limit", "unsubscribe_max_attempts")
    @classmethod
    def validate_positive(cls, v):
        """양수 값 검증"""
        if v < 1:
            raise ValueError("1 이상이어야 합니다")
        return v

    # ConfigPort 인터페이스 구현
    def get_environment(self) -> str:
        return self.environment

    def is_debug(self) -> bool:
        return self.debug

    def get_database_url(self) -> str:
        return self.database_url

    def get_google_client_id(self) -> str:
        return self.google_client_id

    def get_google_client_secret(self) -> str:
        return self.google_client_secret

    def get_gemini_api_key(self) -> Optional[str]:
        return self.gemini_api_key

    def get_gemini_model(self) -> str:
        return self.gemini_model

    def get_encryption_key(self) -> str:
        return self.encryption_key

    def get_log_level(self) -> str:
        return self.log_level

    def get_log_format(self) -> str:
        return self.log_format

    def get_web_host(self) -> str:
        return self.web_host

    def get_web_port(self) -> int:
        return self.web_port

    def get_node_id(self) -> str:
        return self.node_id

    def is_scheduler_enabled(self) -> bool:
        return self.scheduler_enabled

    def get_sync_options(self) -> SyncOptions:
        """동기화 파이프라인 옵션 조회"""
        return SyncOptions(
            worker_concurrency=self.worker_concurrency,
            batch_size=self.sync_batch_size,
            inter_item_delay=self.inter_item_delay_seconds,
            lease_ttl=timedelta(minutes=self.lease_ttl_minutes),
            refresh_lookahead=timedelta(minutes=self.refresh_lookahead_minutes),
            cycle_timeout=self.cycle_timeout_seconds,
            full_resync_limit=self.full_resync_limit,
            sync_interval=self.sync_interval_minutes * 60.0,
        )

    def get_unsubscribe_retry_config(self) -> dict:
        """구독 해지 재시도 설정 조회"""
        return {
            "max_attempts": self.unsubscribe_max_attempts,
            "base_delay": self.unsubscribe_base_delay_seconds,
        }


class DevelopmentConfig(BaseConfig):
    """개발 환경 설정"""

    environment: str = "development"
    debug: bool = True
    log_level: str = "DEBUG"

    # 개발용 기본값들
    database_url: str = "sqlite+aiosqlite:///./dev_database.db"

    # 개발용 더미 값들 (실제 사용 시 .env 파일에서 설정)
    google_client_id: str = "dev_client_id"
    google_client_secret: str = "dev_client_secret"
    encryption_key: str = "dev_encryption_key_32_bytes_long"


class ProductionConfig(BaseConfig):
    """운영 환경 설정"""

    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def validate_production_database_url(cls, v):
        """운영 환경에서는 데이터베이스 URL이 필수"""
        if not v or v.startswith("sqlite"):
            raise ValueError("운영 환경에서는 PostgreSQL 데이터베이스가 필요합니다")
        return v

    @field_validator("google_client_secret", "encryption_key")
    @classmethod
    def validate_production_secrets(cls, v):
        """운영 환경에서는 모든 시크릿이 필수"""
        if not v or v.startswith("dev_"):
            raise ValueError("운영 환경에서는 실제 시크릿 값이 필요합니다")
        return v


class TestingConfig(BaseConfig):
    """테스트 환경 설정"""

    environment: str = "testing"
    debug: bool = True
    log_level: str = "WARNING"

    # 테스트용 기본값들
    database_url: str = "sqlite+aiosqlite:///:memory:"
    scheduler_enabled: bool = False

    # 테스트용 더미 값들
    google_client_id: str = "test_client_id"
    google_client_secret: str = "test_client_secret"
    encryption_key: str = "test_encryption_key_32_bytes_long"
    inter_item_delay_seconds: float = 0.0
    unsubscribe_base_delay_seconds: float = 0.0


class ConfigAdapter:
    """설정 어댑터 팩토리"""

    @staticmethod
    def create_config() -> ConfigPort:
        """환경에 따른 설정 객체를 생성합니다."""
        environment = os.getenv("ENVIRONMENT", "development").lower()

        if environment == "production":
            return ProductionConfig()
        elif environment == "testing":
            return TestingConfig()
        else:
            return DevelopmentConfig()


# 전역 설정 인스턴스
_config: Optional[ConfigPort] = None


def get_config() -> ConfigPort:
    """전역 설정 인스턴스를 반환합니다."""
    global _config
    if _config is None:
        _config = ConfigAdapter.create_config()
    return _config


def initialize_config() -> ConfigPort:
    """설정을 초기화합니다."""
    global _config
    _config = ConfigAdapter.create_config()
    return _config
