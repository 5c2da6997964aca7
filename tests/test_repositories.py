"""
SQLAlchemy Repository 어댑터 테스트 (SQLite)
"""

from datetime import datetime

import pytest
import pytest_asyncio

from core.domain.entities import (
    AccountStatus,
    Category,
    Owner,
    ProcessedItem,
    UnsubscribeStatus,
)
from core.domain.exceptions import DuplicateItemError
from adapters.db.repositories import (
    AccountRepositoryAdapter,
    CategoryRepositoryAdapter,
    OwnerRepositoryAdapter,
    ProcessedItemRepositoryAdapter,
)
from tests.conftest import make_account


@pytest_asyncio.fixture
async def account(session):
    await OwnerRepositoryAdapter(session).create(Owner(id="owner-1"))
    return await AccountRepositoryAdapter(session).create(make_account())


class TestAccountRepository:

    @pytest.mark.asyncio
    async def test_email_lookup_is_case_insensitive(self, session, account):
        found = await AccountRepositoryAdapter(session).get_by_email("USER@Gmail.com")

        assert found.id == account.id

    @pytest.mark.asyncio
    async def test_update_credential_keeps_refresh_token_when_not_rotated(self, session, account):
        repository = AccountRepositoryAdapter(session)
        expires_at = datetime(2024, 2, 1, 0, 0, 0)

        updated = await repository.update_credential(
            account_id=account.id,
            access_token="enc:new",
            refresh_token=None,
            expires_at=expires_at,
            status=AccountStatus.ACTIVE,
        )

        assert updated.credential.access_token == "enc:new"
        assert updated.credential.refresh_token == "enc:refresh-token"
        assert updated.credential.expires_at == expires_at

    @pytest.mark.asyncio
    async def test_update_credential_replaces_rotated_refresh_token(self, session, account):
        repository = AccountRepositoryAdapter(session)
        await repository.update_status(account.id, AccountStatus.ERROR)

        updated = await repository.update_credential(
            account_id=account.id,
            access_token="enc:new",
            refresh_token="enc:rotated",
            expires_at=None,
            status=AccountStatus.ACTIVE,
        )

        assert updated.credential.refresh_token == "enc:rotated"
        assert updated.status == AccountStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_conditional_update_skips_when_token_changed(self, session, account):
        repository = AccountRepositoryAdapter(session)

        updated = await repository.update_credential(
            account_id=account.id,
            access_token="enc:late",
            refresh_token="enc:late-refresh",
            expires_at=None,
            status=AccountStatus.ACTIVE,
            expected_access_token="enc:someone-else",
        )

        assert updated is None
        stored = await repository.get_by_id(account.id)
        assert stored.credential.access_token == "enc:access-token"
        assert stored.credential.refresh_token == "enc:refresh-token"

    @pytest.mark.asyncio
    async def test_set_primary_clears_siblings(self, session, account):
        repository = AccountRepositoryAdapter(session)
        second = await repository.create(make_account(email="second@gmail.com"))

        await repository.set_primary(second.id)

        accounts = {a.email: a for a in await repository.list_by_owner("owner-1")}
        assert accounts["second@gmail.com"].is_primary is True
        assert accounts["user@gmail.com"].is_primary is False

    @pytest.mark.asyncio
    async def test_delete_removes_items_and_categories(self, session, account):
        categories = CategoryRepositoryAdapter(session)
        items = ProcessedItemRepositoryAdapter(session)
        await categories.create(Category(account_id=account.id, name="Work"))
        await items.create(ProcessedItem(account_id=account.id, external_id="m1"))

        assert await AccountRepositoryAdapter(session).delete(account.id) is True

        assert await AccountRepositoryAdapter(session).get_by_id(account.id) is None
        assert await categories.list_by_account(account.id) == []
        assert await items.exists(account.id, "m1") is False


class TestCategoryRepository:

    @pytest.mark.asyncio
    async def test_name_is_unique_ignoring_case(self, session, account):
        repository = CategoryRepositoryAdapter(session)
        await repository.create(Category(account_id=account.id, name="Work"))

        with pytest.raises(DuplicateItemError):
            await repository.create(Category(account_id=account.id, name="WORK"))

        assert len(await repository.list_by_account(account.id)) == 1


class TestProcessedItemRepository:

    @pytest.mark.asyncio
    async def test_duplicate_external_id_is_rejected(self, session, account):
        repository = ProcessedItemRepositoryAdapter(session)
        await repository.create(ProcessedItem(account_id=account.id, external_id="m1"))

        with pytest.raises(DuplicateItemError):
            await repository.create(ProcessedItem(account_id=account.id, external_id="m1"))

        assert len(await repository.list_by_account(account.id)) == 1

    @pytest.mark.asyncio
    async def test_update_unsubscribe(self, session, account):
        repository = ProcessedItemRepositoryAdapter(session)
        item = await repository.create(ProcessedItem(account_id=account.id, external_id="m1"))

        await repository.update_unsubscribe(
            item.id, UnsubscribeStatus.SUCCESS, "https://example.com/unsubscribe", unsubscribed=True
        )

        stored = await repository.get_by_id(item.id)
        assert stored.unsubscribe_status == UnsubscribeStatus.SUCCESS
        assert stored.unsubscribe_link == "https://example.com/unsubscribe"
        assert stored.unsubscribed is True
