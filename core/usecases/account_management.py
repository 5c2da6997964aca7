"""
계정 관리 유즈케이스

메일함 계정의 등록, 재인증, 조회, 삭제와 계정별 분류 카테고리 관리를 구현합니다.
"""

from datetime import timedelta
from typing import List, Optional
from uuid import UUID

from ..domain.entities import (
    Account,
    AccountStatus,
    Category,
    Credential,
    Owner,
    utcnow,
)
from ..domain.exceptions import DuplicateItemError
from ..domain.ports import (
    AccountRepositoryPort,
    CategoryRepositoryPort,
    EncryptionServicePort,
    LoggerPort,
    OwnerRepositoryPort,
)


class AccountManagementUseCase:
    """계정 관리 유즈케이스"""

    def __init__(
        self,
        owner_repository: OwnerRepositoryPort,
        account_repository: AccountRepositoryPort,
        category_repository: CategoryRepositoryPort,
        encryption_service: EncryptionServicePort,
        logger: LoggerPort,
    ):
        self.owner_repository = owner_repository
        self.account_repository = account_repository
        self.category_repository = category_repository
        self.encryption_service = encryption_service
        self.logger = logger

    async def register_account(
        self,
        owner_id: str,
        email: str,
        access_token: str,
        refresh_token: Optional[str] = None,
        expires_in: Optional[int] = None,
        scopes: Optional[List[str]] = None,
    ) -> Account:
        """
        메일함 계정을 등록합니다.

        이미 등록된 메일함이면 새 자격 증명으로 재인증하고 ACTIVE로 되돌립니다.
        소유자의 첫 번째 계정은 대표 계정이 됩니다.

        Args:
            owner_id: 소유자 ID
            email: 메일함 주소
            access_token: 액세스 토큰
            refresh_token: 리프레시 토큰
            expires_in: 액세스 토큰 유효 기간 (초)
            scopes: 허용된 권한 범위

        Returns:
            등록된 계정 엔티티

        Raises:
            ValueError: 다른 소유자가 이미 등록한 메일함인 경우
        """
        self.logger.info(f"계정 등록 시작: {email} (owner={owner_id})")

        if await self.owner_repository.get_by_id(owner_id) is None:
            await self.owner_repository.create(Owner(id=owner_id, primary_email=email.lower()))

        encrypted_access_token = await self.encryption_service.encrypt(access_token)
        encrypted_refresh_token = None
        if refresh_token:
            encrypted_refresh_token = await self.encryption_service.encrypt(refresh_token)
        expires_at = utcnow() + timedelta(seconds=expires_in) if expires_in else None

        existing = await self.account_repository.get_by_email(email)
        if existing is not None:
            if existing.owner_id != owner_id:
                self.logger.warning(f"다른 소유자의 계정 등록 시도: {email}")
                raise ValueError(f"다른 소유자가 이미 등록한 계정입니다: {email}")

            account = await self.account_repository.update_credential(
                account_id=existing.id,
                access_token=encrypted_access_token,
                refresh_token=encrypted_refresh_token,
                expires_at=expires_at,
                status=AccountStatus.ACTIVE,
            )
            self.logger.info(f"계정 재인증 완료: {account.id}, {email}")
            return account

        siblings = await self.account_repository.list_by_owner(owner_id)
        account = Account(
            owner_id=owner_id,
            email=email,
            is_primary=not siblings,
            credential=Credential(
                access_token=encrypted_access_token,
                refresh_token=encrypted_refresh_token,
                expires_at=expires_at,
                scopes=scopes or [],
            ),
        )

        created_account = await self.account_repository.create(account)
        self.logger.info(f"계정 등록 완료: {created_account.id}, {email}")
        return created_account

    async def get_account(self, account_id: UUID) -> Optional[Account]:
        """ID로 계정을 조회합니다."""
        self.logger.debug(f"계정 조회: {account_id}")
        return await self.account_repository.get_by_id(account_id)

    async def get_account_by_email(self, email: str) -> Optional[Account]:
        """메일함 주소로 계정을 조회합니다."""
        self.logger.debug(f"계정 조회 (이메일): {email}")
        return await self.account_repository.get_by_email(email)

    async def list_accounts(self, owner_id: Optional[str] = None) -> List[Account]:
        """계정 목록을 조회합니다. owner_id를 주면 해당 소유자의 계정만 반환합니다."""
        if owner_id:
            return await self.account_repository.list_by_owner(owner_id)
        return await self.account_repository.list_all()

    async def set_primary(self, account_id: UUID) -> Account:
        """
        대표 계정을 지정합니다.

        Raises:
            ValueError: 계정이 없는 경우
        """
        account = await self.account_repository.set_primary(account_id)
        self.logger.info(f"대표 계정 지정: {account.email}")
        return account

    async def delete_account(self, account_id: UUID) -> bool:
        """계정과 처리 기록을 삭제합니다."""
        deleted = await self.account_repository.delete(account_id)
        if deleted:
            self.logger.info(f"계정 삭제 완료: {account_id}")
        else:
            self.logger.warning(f"삭제할 계정 없음: {account_id}")
        return deleted

    async def add_category(
        self,
        account_id: UUID,
        name: str,
        description: Optional[str] = None,
    ) -> Category:
        """
        계정에 분류 카테고리를 추가합니다.

        Raises:
            ValueError: 계정이 없거나 같은 이름(대소문자 무시)의 카테고리가 있는 경우
        """
        if not name or not name.strip():
            raise ValueError("카테고리 이름이 필요합니다")

        account = await self.account_repository.get_by_id(account_id)
        if account is None:
            raise ValueError(f"계정을 찾을 수 없습니다: {account_id}")

        if await self.category_repository.get_by_name(account_id, name) is not None:
            raise ValueError(f"이미 존재하는 카테고리입니다: {name}")

        try:
            category = await self.category_repository.create(
                Category(account_id=account_id, name=name.strip(), description=description)
            )
        except DuplicateItemError as e:
            raise ValueError(str(e)) from e

        self.logger.info(f"카테고리 추가: {account.email} / {category.name}")
        return category

    async def list_categories(self, account_id: UUID) -> List[Category]:
        """계정의 카테고리 목록을 조회합니다."""
        return await self.category_repository.list_by_account(account_id)
