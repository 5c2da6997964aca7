"""
메일 일괄 작업 유즈케이스

처리된 메일 항목에 대한 일괄 삭제와 구독 해지를 수행합니다.
항목별 실패는 결과에 기록하고 다음 항목을 계속 처리합니다.
"""

import asyncio
import re
from typing import Awaitable, Callable, Dict, List, Optional
from uuid import UUID

from ..domain.entities import Account, BulkActionResult, ProcessedItem, UnsubscribeStatus
from ..domain.exceptions import ClassificationError, QuotaExceededError, UnauthorizedError
from ..domain.ports import (
    AccountRepositoryPort,
    ClassifierPort,
    LoggerPort,
    MailboxClientPort,
    ProcessedItemRepositoryPort,
    UnsubscribeExecutorPort,
)
from .retry import retry_with_backoff
from .token_lifecycle import TokenLifecycleManager

UNSUBSCRIBE_URL_PATTERN = re.compile(
    r"""https?://[^\s"'<>]*(?:unsubscribe|opt-?out|optout)[^\s"'<>]*""",
    re.IGNORECASE,
)


def find_unsubscribe_url(content: Optional[str]) -> Optional[str]:
    """본문에서 구독 해지로 보이는 첫 URL을 찾습니다."""
    if not content:
        return None
    match = UNSUBSCRIBE_URL_PATTERN.search(content)
    if match is None:
        return None
    return match.group(0).replace("&amp;", "&")


class MailActionUseCase:
    """메일 일괄 작업 유즈케이스"""

    def __init__(
        self,
        account_repository: AccountRepositoryPort,
        item_repository: ProcessedItemRepositoryPort,
        token_manager: TokenLifecycleManager,
        mailbox_client: MailboxClientPort,
        classifier: ClassifierPort,
        unsubscribe_executor: UnsubscribeExecutorPort,
        logger: LoggerPort,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.account_repository = account_repository
        self.item_repository = item_repository
        self.token_manager = token_manager
        self.mailbox_client = mailbox_client
        self.classifier = classifier
        self.unsubscribe_executor = unsubscribe_executor
        self.logger = logger
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep = sleep

    async def delete_items(self, owner_id: str, item_ids: List[UUID]) -> BulkActionResult:
        """
        메일을 제공자에서 삭제한 뒤 저장된 항목도 삭제합니다.

        Args:
            owner_id: 요청한 소유자 ID
            item_ids: 삭제할 항목 ID 목록

        Returns:
            항목별 성공/실패 결과
        """
        self.logger.info(f"일괄 삭제 시작: {owner_id}, {len(item_ids)}개")
        result = BulkActionResult()
        accounts = await self._owned_accounts(owner_id)
        tokens: Dict[UUID, str] = {}

        for item_id in item_ids:
            try:
                item = await self._get_owned_item(item_id, accounts)
                if item is None:
                    result.failed[str(item_id)] = "항목을 찾을 수 없습니다"
                    continue

                account = accounts[item.account_id]
                if account.id not in tokens:
                    tokens[account.id] = await self.token_manager.ensure_valid(account)

                try:
                    await self.mailbox_client.delete(tokens[account.id], account.email, item.external_id)
                except UnauthorizedError:
                    tokens[account.id] = await self.token_manager.refresh_on_unauthorized(account)
                    await self.mailbox_client.delete(tokens[account.id], account.email, item.external_id)

                await self.item_repository.delete(item.id)
                result.succeeded.append(item.id)

            except Exception as e:
                self.logger.error(f"메일 삭제 실패: {item_id}, 오류: {str(e)}")
                result.failed[str(item_id)] = str(e)

        self.logger.info(f"일괄 삭제 완료: 성공 {len(result.succeeded)}, 실패 {len(result.failed)}")
        return result

    async def unsubscribe_items(
        self,
        owner_id: str,
        item_ids: List[UUID],
    ) -> Dict[str, UnsubscribeStatus]:
        """
        메일의 구독 해지 링크를 찾아 실행합니다.

        소유하지 않은 항목은 결과에서 제외됩니다.

        Returns:
            항목 ID별 최종 구독 해지 상태
        """
        self.logger.info(f"일괄 구독 해지 시작: {owner_id}, {len(item_ids)}개")
        statuses: Dict[str, UnsubscribeStatus] = {}
        accounts = await self._owned_accounts(owner_id)

        for item_id in item_ids:
            item = await self._get_owned_item(item_id, accounts)
            if item is None:
                self.logger.warning(f"소유하지 않은 항목 건너뜀: {item_id}")
                continue

            statuses[str(item.id)] = await self._unsubscribe(accounts[item.account_id], item)

        return statuses

    async def _unsubscribe(self, account: Account, item: ProcessedItem) -> UnsubscribeStatus:
        """항목 하나의 구독 해지를 수행합니다."""
        link = await self._find_unsubscribe_link(item)
        if not link:
            await self.item_repository.update_unsubscribe(item.id, UnsubscribeStatus.NOT_FOUND)
            self.logger.info(f"구독 해지 링크 없음: {item.id}")
            return UnsubscribeStatus.NOT_FOUND

        await self.item_repository.update_unsubscribe(item.id, UnsubscribeStatus.PENDING, link)

        try:
            succeeded = await retry_with_backoff(
                lambda: self.unsubscribe_executor.execute(link, account.email),
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                logger=self.logger,
                operation_name=f"구독 해지 {item.id}",
                sleep=self.sleep,
            )
        except Exception as e:
            self.logger.error(f"구독 해지 실행 실패: {item.id}, 오류: {str(e)}")
            succeeded = False

        status = UnsubscribeStatus.SUCCESS if succeeded else UnsubscribeStatus.FAILED
        await self.item_repository.update_unsubscribe(item.id, status, link, unsubscribed=bool(succeeded))
        self.logger.info(f"구독 해지 결과: {item.id} -> {status.value}")
        return status

    async def _find_unsubscribe_link(self, item: ProcessedItem) -> Optional[str]:
        """저장된 링크, 분류 서비스, 본문 패턴 순으로 링크를 찾습니다."""
        if item.unsubscribe_link:
            return item.unsubscribe_link

        if not item.original_content:
            return None

        try:
            link = await self.classifier.extract_unsubscribe_link(item.original_content)
            if link and link.startswith("http"):
                return link
        except (QuotaExceededError, ClassificationError) as e:
            self.logger.warning(f"분류 서비스로 링크 추출 실패, 패턴 검색 사용: {item.id} ({str(e)})")

        return find_unsubscribe_url(item.original_content)

    async def _owned_accounts(self, owner_id: str) -> Dict[UUID, Account]:
        """소유자의 계정을 ID별로 조회합니다."""
        accounts = await self.account_repository.list_by_owner(owner_id)
        return {account.id: account for account in accounts}

    async def _get_owned_item(
        self,
        item_id: UUID,
        accounts: Dict[UUID, Account],
    ) -> Optional[ProcessedItem]:
        """소유자 계정에 속한 항목만 반환합니다."""
        item = await self.item_repository.get_by_id(item_id)
        if item is None or item.account_id not in accounts:
            return None
        return item
