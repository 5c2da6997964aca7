"""
SQLAlchemy 데이터베이스 모델

도메인 엔티티와 매핑되는 데이터베이스 테이블 모델을 정의합니다.
SQLite 호환성을 위해 UUID는 String으로, 리스트는 JSON으로 처리합니다.
"""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

from core.domain.entities import utcnow

Base = declarative_base()


class OwnerModel(Base):
    """소유자 테이블 모델"""

    __tablename__ = "owners"

    id = Column(String(255), primary_key=True)
    primary_email = Column(String(255))
    created_at = Column(DateTime, default=utcnow)


class AccountModel(Base):
    """계정 테이블 모델"""

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(255), ForeignKey("owners.id"), nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    is_primary = Column(Boolean, default=False, nullable=False)
    access_token = Column(Text, nullable=False)  # 암호화된 값
    refresh_token = Column(Text)  # 암호화된 값
    token_expires_at = Column(DateTime, index=True)
    scopes = Column(JSON)  # 문자열 배열을 JSON으로 저장
    sync_cursor = Column(String(255))
    status = Column(String(50), nullable=False, default="active", index=True)  # AccountStatus enum을 문자열로 저장
    last_sync_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_accounts_owner_primary", "owner_id", "is_primary"),
    )


class CategoryModel(Base):
    """카테고리 테이블 모델"""

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    created_at = Column(DateTime, default=utcnow)


# 계정 내 카테고리 이름은 대소문자 무시 유일
Index(
    "uq_categories_account_lower_name",
    CategoryModel.account_id,
    func.lower(CategoryModel.name),
    unique=True,
)


class ProcessedItemModel(Base):
    """처리 항목 테이블 모델"""

    __tablename__ = "processed_items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=False, index=True)
    external_id = Column(String(255), nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), index=True)
    summary = Column(Text)
    original_content = Column(Text)
    unsubscribed = Column(Boolean, default=False, nullable=False)
    unsubscribe_status = Column(String(50))  # UnsubscribeStatus enum을 문자열로 저장
    unsubscribe_link = Column(Text)
    created_at = Column(DateTime, default=utcnow, index=True)

    __table_args__ = (
        UniqueConstraint("account_id", "external_id", name="uq_processed_items_account_external"),
        Index("idx_processed_items_account_created", "account_id", "created_at"),
    )


class AccountLockModel(Base):
    """계정 분산 락 테이블 모델"""

    __tablename__ = "account_locks"

    account_key = Column(String(255), primary_key=True)
    holder_id = Column(String(255), nullable=False)
    acquired_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
