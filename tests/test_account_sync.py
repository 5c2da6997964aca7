"""
계정 동기화 유즈케이스 테스트
"""

from unittest.mock import AsyncMock

import pytest

from core.domain.entities import AccountStatus, BatchResult, MailboxItem, SyncState
from core.domain.exceptions import (
    CursorInvalidError,
    ReauthenticationRequiredError,
    UnauthorizedError,
)
from core.usecases.account_sync import AccountSyncUseCase
from core.usecases.mailbox_diff import MailboxDiffReader
from tests.conftest import make_account


@pytest.fixture
def account():
    return make_account(sync_cursor="100")


@pytest.fixture
def deps(account):
    account_repository = AsyncMock()
    account_repository.get_by_id.return_value = account

    lock_manager = AsyncMock()
    lock_manager.try_acquire.return_value = True

    token_manager = AsyncMock()
    token_manager.ensure_valid.return_value = "access"
    token_manager.refresh_on_unauthorized.return_value = "refreshed"

    diff_reader = AsyncMock()
    diff_reader.fetch.return_value = [MailboxItem(external_id="m1")]

    batch_processor = AsyncMock()
    batch_processor.process.return_value = BatchResult(fetched=1, processed=1, cursor_advanced=True)

    return {
        "account_repository": account_repository,
        "lock_manager": lock_manager,
        "token_manager": token_manager,
        "diff_reader": diff_reader,
        "batch_processor": batch_processor,
    }


@pytest.fixture
def usecase(deps, logger):
    return AccountSyncUseCase(logger=logger, node_id="n1", **deps)


class TestSyncAccount:
    """계정 하나의 동기화 흐름"""

    @pytest.mark.asyncio
    async def test_full_cycle_reaches_cursor_advanced(self, usecase, deps, account):
        report = await usecase.sync_account(account.id)

        assert report.state == SyncState.CURSOR_ADVANCED
        assert report.processed == 1
        assert report.is_success()
        deps["diff_reader"].fetch.assert_awaited_once_with("access", account.email, "100")
        deps["lock_manager"].release.assert_awaited_once_with(str(account.id), "n1")

    @pytest.mark.asyncio
    async def test_locked_account_is_skipped(self, usecase, deps, account):
        deps["lock_manager"].try_acquire.return_value = False

        report = await usecase.sync_account(account.id)

        assert report.skipped_reason == "locked"
        deps["token_manager"].ensure_valid.assert_not_awaited()
        deps["lock_manager"].release.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_account_is_skipped_and_unlocked(self, usecase, deps, account):
        deps["account_repository"].get_by_id.return_value = account.model_copy(
            update={"status": AccountStatus.EXPIRED}
        )

        report = await usecase.sync_account(account.id)

        assert report.skipped_reason == "status:expired"
        deps["diff_reader"].fetch.assert_not_awaited()
        deps["lock_manager"].release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_account_is_skipped(self, usecase, deps, account):
        deps["account_repository"].get_by_id.return_value = None

        report = await usecase.sync_account(account.id)

        assert report.skipped_reason == "not_found"
        deps["lock_manager"].release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_no_cursor_advance_stops_at_batch_done(self, usecase, deps, account):
        deps["batch_processor"].process.return_value = BatchResult(fetched=0)

        report = await usecase.sync_account(account.id)

        assert report.state == SyncState.BATCH_DONE

    @pytest.mark.asyncio
    async def test_batch_rechecks_this_node_lease(self, usecase, deps, account):
        deps["lock_manager"].is_held.return_value = False

        await usecase.sync_account(account.id)

        lease_check = deps["batch_processor"].process.await_args.kwargs["lease_check"]
        assert await lease_check() is False
        deps["lock_manager"].is_held.assert_awaited_once_with(str(account.id), "n1")


class TestUnauthorizedRetry:
    """401 응답 시 한 번만 갱신 후 재시도"""

    @pytest.mark.asyncio
    async def test_single_retry_with_refreshed_token(self, usecase, deps, account):
        deps["diff_reader"].fetch.side_effect = [
            UnauthorizedError("401"),
            [MailboxItem(external_id="m1")],
        ]

        report = await usecase.sync_account(account.id)

        assert report.is_success()
        deps["token_manager"].refresh_on_unauthorized.assert_awaited_once()
        assert deps["diff_reader"].fetch.await_count == 2
        assert deps["batch_processor"].process.await_args.args[2] == "refreshed"

    @pytest.mark.asyncio
    async def test_second_unauthorized_propagates_and_releases(self, usecase, deps, account):
        deps["diff_reader"].fetch.side_effect = UnauthorizedError("401")

        with pytest.raises(UnauthorizedError):
            await usecase.sync_account(account.id)

        deps["token_manager"].refresh_on_unauthorized.assert_awaited_once()
        deps["lock_manager"].release.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_token_failure_releases_lock(self, usecase, deps, account):
        deps["token_manager"].ensure_valid.side_effect = ReauthenticationRequiredError("no refresh token")

        with pytest.raises(ReauthenticationRequiredError):
            await usecase.sync_account(account.id)

        deps["diff_reader"].fetch.assert_not_awaited()
        deps["lock_manager"].release.assert_awaited_once()


class TestListAccountIds:

    @pytest.mark.asyncio
    async def test_owner_filter(self, usecase, deps, account):
        deps["account_repository"].list_by_owner.return_value = [account]

        assert await usecase.list_account_ids("owner-1") == [account.id]
        deps["account_repository"].list_all.assert_not_awaited()


class TestMailboxDiffReader:
    """커서 거부 시 전체 재동기화"""

    @pytest.mark.asyncio
    async def test_rejected_cursor_falls_back_to_full_resync(self, logger):
        client = AsyncMock()
        client.fetch_changes.side_effect = [
            CursorInvalidError("too old"),
            [MailboxItem(external_id="m1")],
        ]
        reader = MailboxDiffReader(client, logger, full_resync_limit=50)

        items = await reader.fetch("token", "user@gmail.com", "100")

        assert [item.external_id for item in items] == ["m1"]
        assert client.fetch_changes.await_args_list[1].args == ("token", "user@gmail.com", None, 50)

    @pytest.mark.asyncio
    async def test_rejection_without_cursor_propagates(self, logger):
        client = AsyncMock()
        client.fetch_changes.side_effect = CursorInvalidError("bad request")
        reader = MailboxDiffReader(client, logger)

        with pytest.raises(CursorInvalidError):
            await reader.fetch("token", "user@gmail.com", None)

        client.fetch_changes.assert_awaited_once()
