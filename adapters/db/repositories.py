"""
데이터베이스 Repository 어댑터

Core 레이어의 Repository 포트를 구현하는 SQLAlchemy 기반 어댑터들입니다.
SQLite 호환성을 위해 UUID를 문자열로 변환하여 처리합니다.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entities import (
    Account,
    AccountStatus,
    Category,
    Credential,
    Owner,
    ProcessedItem,
    UnsubscribeStatus,
    utcnow,
)
from core.domain.exceptions import DuplicateItemError
from core.domain.ports import (
    AccountRepositoryPort,
    CategoryRepositoryPort,
    OwnerRepositoryPort,
    ProcessedItemRepositoryPort,
)
from .models import AccountModel, CategoryModel, OwnerModel, ProcessedItemModel


class OwnerRepositoryAdapter(OwnerRepositoryPort):
    """소유자 Repository 어댑터"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, owner_id: str) -> Optional[Owner]:
        """ID로 소유자를 조회합니다."""
        model = await self.session.get(OwnerModel, owner_id)
        if model is None:
            return None
        return Owner(id=model.id, primary_email=model.primary_email, created_at=model.created_at)

    async def create(self, owner: Owner) -> Owner:
        """소유자를 생성합니다."""
        model = OwnerModel(id=owner.id, primary_email=owner.primary_email, created_at=owner.created_at)
        self.session.add(model)
        await self.session.commit()
        return owner


class AccountRepositoryAdapter(AccountRepositoryPort):
    """계정 Repository 어댑터"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, account: Account) -> Account:
        """계정을 생성합니다."""
        model = AccountModel(
            id=str(account.id),  # UUID를 문자열로 변환
            owner_id=account.owner_id,
            email=account.email,
            is_primary=account.is_primary,
            access_token=account.credential.access_token,
            refresh_token=account.credential.refresh_token,
            token_expires_at=account.credential.expires_at,
            scopes=account.credential.scopes,
            sync_cursor=account.sync_cursor,
            status=account.status.value,  # Enum을 문자열로 변환
            last_sync_at=account.last_sync_at,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )

        self.session.add(model)
        await self.session.commit()

        return self._model_to_entity(model)

    async def get_by_id(self, account_id: UUID) -> Optional[Account]:
        """ID로 계정을 조회합니다."""
        stmt = (
            select(AccountModel)
            .where(AccountModel.id == str(account_id))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._model_to_entity(model)

    async def get_by_email(self, email: str) -> Optional[Account]:
        """메일함 주소로 계정을 조회합니다."""
        stmt = (
            select(AccountModel)
            .where(AccountModel.email == email.lower())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._model_to_entity(model)

    async def list_all(self) -> List[Account]:
        """모든 계정을 조회합니다."""
        stmt = (
            select(AccountModel)
            .order_by(AccountModel.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def list_by_owner(self, owner_id: str) -> List[Account]:
        """소유자별 계정을 조회합니다."""
        stmt = (
            select(AccountModel)
            .where(AccountModel.owner_id == owner_id)
            .order_by(desc(AccountModel.is_primary), AccountModel.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def update_credential(
        self,
        account_id: UUID,
        access_token: str,
        refresh_token: Optional[str],
        expires_at: Optional[datetime],
        status: AccountStatus,
        expected_access_token: Optional[str] = None,
    ) -> Optional[Account]:
        """자격 증명과 상태를 한 번의 UPDATE로 갱신합니다.

        expected_access_token이 있으면 조건부 UPDATE가 되며, 일치하는 행이
        없으면 None을 반환합니다.
        """
        values = {
            "access_token": access_token,
            "token_expires_at": expires_at,
            "status": status.value,
            "updated_at": utcnow(),
        }
        # 회전된 리프레시 토큰이 있을 때만 교체
        if refresh_token:
            values["refresh_token"] = refresh_token

        stmt = update(AccountModel).where(AccountModel.id == str(account_id))
        if expected_access_token is not None:
            stmt = stmt.where(AccountModel.access_token == expected_access_token)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        result = await self.session.execute(stmt)
        await self.session.commit()

        if result.rowcount == 0:
            if expected_access_token is not None:
                return None
            raise ValueError(f"계정을 찾을 수 없습니다: {account_id}")

        return await self.get_by_id(account_id)

    async def update_status(self, account_id: UUID, status: AccountStatus) -> None:
        """계정 상태를 갱신합니다."""
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == str(account_id))
            .values(status=status.value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def update_cursor(self, account_id: UUID, cursor: str, synced_at: datetime) -> None:
        """동기화 커서를 갱신합니다."""
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == str(account_id))
            .values(sync_cursor=cursor, last_sync_at=synced_at, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def set_primary(self, account_id: UUID) -> Account:
        """대표 계정을 지정합니다."""
        account = await self.get_by_id(account_id)
        if account is None:
            raise ValueError(f"계정을 찾을 수 없습니다: {account_id}")

        await self.session.execute(
            update(AccountModel)
            .where(AccountModel.owner_id == account.owner_id)
            .values(is_primary=False)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(
            update(AccountModel)
            .where(AccountModel.id == str(account_id))
            .values(is_primary=True)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()

        return await self.get_by_id(account_id)

    async def delete(self, account_id: UUID) -> bool:
        """계정과 하위 데이터를 삭제합니다."""
        key = str(account_id)
        await self.session.execute(
            delete(ProcessedItemModel).where(ProcessedItemModel.account_id == key)
        )
        await self.session.execute(
            delete(CategoryModel).where(CategoryModel.account_id == key)
        )
        result = await self.session.execute(
            delete(AccountModel).where(AccountModel.id == key)
        )
        await self.session.commit()

        return result.rowcount > 0

    def _model_to_entity(self, model: AccountModel) -> Account:
        """모델을 엔티티로 변환합니다."""
        return Account(
            id=UUID(model.id),  # 문자열을 UUID로 변환
            owner_id=model.owner_id,
            email=model.email,
            is_primary=bool(model.is_primary),
            credential=Credential(
                access_token=model.access_token,
                refresh_token=model.refresh_token,
                expires_at=model.token_expires_at,
                scopes=model.scopes or [],
            ),
            sync_cursor=model.sync_cursor,
            status=AccountStatus(model.status),  # 문자열을 Enum으로 변환
            last_sync_at=model.last_sync_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


class CategoryRepositoryAdapter(CategoryRepositoryPort):
    """카테고리 Repository 어댑터"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_by_account(self, account_id: UUID) -> List[Category]:
        """계정별 카테고리를 조회합니다."""
        stmt = (
            select(CategoryModel)
            .where(CategoryModel.account_id == str(account_id))
            .order_by(CategoryModel.created_at)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def get_by_name(self, account_id: UUID, name: str) -> Optional[Category]:
        """이름으로 카테고리를 조회합니다. (대소문자 무시)"""
        stmt = select(CategoryModel).where(
            CategoryModel.account_id == str(account_id),
            func.lower(CategoryModel.name) == name.strip().lower(),
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._model_to_entity(model)

    async def create(self, category: Category) -> Category:
        """카테고리를 생성합니다."""
        model = CategoryModel(
            id=str(category.id),
            account_id=str(category.account_id),
            name=category.name.strip(),
            description=category.description,
            created_at=category.created_at,
        )
        self.session.add(model)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateItemError(f"이미 존재하는 카테고리입니다: {category.name}") from e

        return self._model_to_entity(model)

    def _model_to_entity(self, model: CategoryModel) -> Category:
        """모델을 엔티티로 변환합니다."""
        return Category(
            id=UUID(model.id),
            account_id=UUID(model.account_id),
            name=model.name,
            description=model.description,
            created_at=model.created_at,
        )


class ProcessedItemRepositoryAdapter(ProcessedItemRepositoryPort):
    """처리 항목 Repository 어댑터"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists(self, account_id: UUID, external_id: str) -> bool:
        """(계정, 외부 ID) 항목 존재 여부를 확인합니다."""
        stmt = select(ProcessedItemModel.id).where(
            ProcessedItemModel.account_id == str(account_id),
            ProcessedItemModel.external_id == external_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def create(self, item: ProcessedItem) -> ProcessedItem:
        """항목을 생성합니다."""
        model = ProcessedItemModel(
            id=str(item.id),
            account_id=str(item.account_id),
            external_id=item.external_id,
            category_id=str(item.category_id) if item.category_id else None,
            summary=item.summary,
            original_content=item.original_content,
            unsubscribed=item.unsubscribed,
            unsubscribe_status=item.unsubscribe_status.value if item.unsubscribe_status else None,
            unsubscribe_link=item.unsubscribe_link,
            created_at=item.created_at,
        )
        self.session.add(model)

        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateItemError(
                f"이미 처리된 항목입니다: {item.account_id}/{item.external_id}"
            ) from e

        return self._model_to_entity(model)

    async def get_by_id(self, item_id: UUID) -> Optional[ProcessedItem]:
        """ID로 항목을 조회합니다."""
        stmt = (
            select(ProcessedItemModel)
            .where(ProcessedItemModel.id == str(item_id))
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            return None

        return self._model_to_entity(model)

    async def list_by_account(
        self,
        account_id: UUID,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ProcessedItem]:
        """계정별 항목을 조회합니다."""
        stmt = (
            select(ProcessedItemModel)
            .where(ProcessedItemModel.account_id == str(account_id))
            .order_by(desc(ProcessedItemModel.created_at))
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def update_unsubscribe(
        self,
        item_id: UUID,
        status: UnsubscribeStatus,
        link: Optional[str] = None,
        unsubscribed: bool = False,
    ) -> None:
        """구독 해지 상태를 갱신합니다."""
        values = {"unsubscribe_status": status.value, "unsubscribed": unsubscribed}
        if link:
            values["unsubscribe_link"] = link

        stmt = (
            update(ProcessedItemModel)
            .where(ProcessedItemModel.id == str(item_id))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)
        await self.session.commit()

    async def delete(self, item_id: UUID) -> bool:
        """항목을 삭제합니다."""
        result = await self.session.execute(
            delete(ProcessedItemModel).where(ProcessedItemModel.id == str(item_id))
        )
        await self.session.commit()
        return result.rowcount > 0

    def _model_to_entity(self, model: ProcessedItemModel) -> ProcessedItem:
        """모델을 엔티티로 변환합니다."""
        return ProcessedItem(
            id=UUID(model.id),
            account_id=UUID(model.account_id),
            external_id=model.external_id,
            category_id=UUID(model.category_id) if model.category_id else None,
            summary=model.summary,
            original_content=model.original_content,
            unsubscribed=bool(model.unsubscribed),
            unsubscribe_status=(
                UnsubscribeStatus(model.unsubscribe_status) if model.unsubscribe_status else None
            ),
            unsubscribe_link=model.unsubscribe_link,
            created_at=model.created_at,
        )
