"""
메일 일괄 작업 테스트
"""

from unittest.mock import AsyncMock, call
from uuid import uuid4

import pytest

from core.domain.entities import ProcessedItem, UnsubscribeStatus
from core.domain.exceptions import MailSyncError, QuotaExceededError, UnauthorizedError
from core.usecases.mail_actions import MailActionUseCase, find_unsubscribe_url
from tests.conftest import make_account


@pytest.fixture
def account():
    return make_account()


@pytest.fixture
def foreign_account():
    return make_account(owner_id="owner-2", email="other@gmail.com")


@pytest.fixture
def items(account, foreign_account):
    return {
        "owned_1": ProcessedItem(account_id=account.id, external_id="m1", original_content="hello"),
        "owned_2": ProcessedItem(account_id=account.id, external_id="m2", original_content="hello"),
        "foreign": ProcessedItem(account_id=foreign_account.id, external_id="m3"),
    }


@pytest.fixture
def deps(account, items):
    by_id = {item.id: item for item in items.values()}

    account_repository = AsyncMock()
    account_repository.list_by_owner.return_value = [account]

    item_repository = AsyncMock()
    item_repository.get_by_id.side_effect = lambda item_id: by_id.get(item_id)

    token_manager = AsyncMock()
    token_manager.ensure_valid.return_value = "access"
    token_manager.refresh_on_unauthorized.return_value = "refreshed"

    classifier = AsyncMock()
    classifier.extract_unsubscribe_link.return_value = None

    executor = AsyncMock()
    executor.execute.return_value = True

    return {
        "account_repository": account_repository,
        "item_repository": item_repository,
        "token_manager": token_manager,
        "mailbox_client": AsyncMock(),
        "classifier": classifier,
        "unsubscribe_executor": executor,
    }


@pytest.fixture
def sleep():
    return AsyncMock()


@pytest.fixture
def usecase(deps, logger, sleep):
    return MailActionUseCase(logger=logger, max_attempts=3, base_delay=1.0, sleep=sleep, **deps)


class TestDeleteItems:
    """일괄 삭제"""

    @pytest.mark.asyncio
    async def test_owned_items_are_deleted_and_others_reported(self, usecase, deps, items, account):
        missing_id = uuid4()
        ids = [items["owned_1"].id, items["foreign"].id, missing_id, items["owned_2"].id]

        result = await usecase.delete_items("owner-1", ids)

        assert result.succeeded == [items["owned_1"].id, items["owned_2"].id]
        assert set(result.failed) == {str(items["foreign"].id), str(missing_id)}
        assert deps["mailbox_client"].delete.await_args_list == [
            call("access", account.email, "m1"),
            call("access", account.email, "m2"),
        ]
        deps["token_manager"].ensure_valid.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unauthorized_delete_refreshes_once(self, usecase, deps, items, account):
        deps["mailbox_client"].delete.side_effect = [UnauthorizedError("401"), None]

        result = await usecase.delete_items("owner-1", [items["owned_1"].id])

        assert result.succeeded == [items["owned_1"].id]
        deps["token_manager"].refresh_on_unauthorized.assert_awaited_once()
        assert deps["mailbox_client"].delete.await_args_list[1] == call("refreshed", account.email, "m1")

    @pytest.mark.asyncio
    async def test_provider_failure_keeps_record(self, usecase, deps, items):
        deps["mailbox_client"].delete.side_effect = [MailSyncError("500"), None]

        result = await usecase.delete_items("owner-1", [items["owned_1"].id, items["owned_2"].id])

        assert result.succeeded == [items["owned_2"].id]
        assert "500" in result.failed[str(items["owned_1"].id)]
        deps["item_repository"].delete.assert_awaited_once_with(items["owned_2"].id)


class TestUnsubscribeItems:
    """일괄 구독 해지"""

    @pytest.mark.asyncio
    async def test_stored_link_success(self, usecase, deps, items):
        item = items["owned_1"]
        item.unsubscribe_link = "https://news.example.com/unsubscribe?u=1"

        statuses = await usecase.unsubscribe_items("owner-1", [item.id])

        assert statuses == {str(item.id): UnsubscribeStatus.SUCCESS}
        assert deps["item_repository"].update_unsubscribe.await_args_list == [
            call(item.id, UnsubscribeStatus.PENDING, item.unsubscribe_link),
            call(item.id, UnsubscribeStatus.SUCCESS, item.unsubscribe_link, unsubscribed=True),
        ]
        deps["classifier"].extract_unsubscribe_link.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_link_found(self, usecase, deps, items):
        item = items["owned_1"]

        statuses = await usecase.unsubscribe_items("owner-1", [item.id])

        assert statuses[str(item.id)] == UnsubscribeStatus.NOT_FOUND
        deps["unsubscribe_executor"].execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_quota_falls_back_to_pattern_search(self, usecase, deps, items, account):
        item = items["owned_1"]
        item.original_content = '<a href="https://news.example.com/unsubscribe?id=1&amp;u=2">Unsubscribe</a>'
        deps["classifier"].extract_unsubscribe_link.side_effect = QuotaExceededError("429")

        statuses = await usecase.unsubscribe_items("owner-1", [item.id])

        assert statuses[str(item.id)] == UnsubscribeStatus.SUCCESS
        deps["unsubscribe_executor"].execute.assert_awaited_once_with(
            "https://news.example.com/unsubscribe?id=1&u=2", account.email
        )

    @pytest.mark.asyncio
    async def test_failed_attempts_are_retried_then_marked_failed(self, usecase, deps, items, sleep):
        item = items["owned_1"]
        item.unsubscribe_link = "https://news.example.com/unsubscribe"
        deps["unsubscribe_executor"].execute.return_value = False

        statuses = await usecase.unsubscribe_items("owner-1", [item.id])

        assert statuses[str(item.id)] == UnsubscribeStatus.FAILED
        assert deps["unsubscribe_executor"].execute.await_count == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_foreign_items_are_omitted(self, usecase, deps, items):
        statuses = await usecase.unsubscribe_items("owner-1", [items["foreign"].id])

        assert statuses == {}
        deps["item_repository"].update_unsubscribe.assert_not_awaited()


class TestFindUnsubscribeUrl:

    def test_finds_opt_out_link(self):
        content = "To stop these emails visit https://mail.example.com/opt-out?id=9 now."

        assert find_unsubscribe_url(content) == "https://mail.example.com/opt-out?id=9"

    def test_no_match(self):
        assert find_unsubscribe_url("https://example.com/news") is None
        assert find_unsubscribe_url(None) is None
