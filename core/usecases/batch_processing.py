"""
배치 처리 유즈케이스

조회된 메시지를 배치 단위로 분류, 저장, 보관 처리합니다.
한 항목의 실패가 나머지 항목 처리에 영향을 주지 않으며,
분류 할당량이 소진되면 "Unsorted Emails" 카테고리로 저장합니다.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from ..domain.entities import (
    UNSORTED_CATEGORY_DESCRIPTION,
    UNSORTED_CATEGORY_NAME,
    Account,
    BatchResult,
    Category,
    MailboxItem,
    ProcessedItem,
    SyncOptions,
    utcnow,
)
from ..domain.exceptions import DuplicateItemError, QuotaExceededError
from ..domain.ports import (
    AccountRepositoryPort,
    CategoryRepositoryPort,
    ClassifierPort,
    LoggerPort,
    MailboxClientPort,
    ProcessedItemRepositoryPort,
)

PROCESSED = "processed"
SKIPPED = "skipped"
FAILED = "failed"

UNMATCHED_SUMMARY = "AI classified as '{label}' but no matching category found. Click to view original content."
QUOTA_SUMMARY = "AI processing skipped due to quota limit. Click to view original content."
ERROR_SUMMARY = "Email processing failed: {error}. Click to view original content."


class BatchProcessor:
    """배치 처리기"""

    def __init__(
        self,
        mailbox_client: MailboxClientPort,
        classifier: ClassifierPort,
        account_repository: AccountRepositoryPort,
        category_repository: CategoryRepositoryPort,
        item_repository: ProcessedItemRepositoryPort,
        logger: LoggerPort,
        options: Optional[SyncOptions] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.mailbox_client = mailbox_client
        self.classifier = classifier
        self.account_repository = account_repository
        self.category_repository = category_repository
        self.item_repository = item_repository
        self.logger = logger
        self.options = options or SyncOptions()
        self.sleep = sleep
        self.clock = clock or utcnow

    async def process(
        self,
        account: Account,
        items: List[MailboxItem],
        access_token: str,
        lease_check: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> BatchResult:
        """
        메시지 목록을 배치 단위로 처리합니다.

        모든 배치가 끝난 뒤 조회된 메시지가 하나라도 있으면 커서를 전진시킵니다.
        처리 도중 중단되면 커서는 이전 값으로 남아 다음 주기에 다시 조회됩니다.

        Args:
            account: 대상 계정
            items: 제공자 순서의 메시지 목록
            access_token: 복호화된 액세스 토큰
            lease_check: 커서 저장 직전에 락 보유 여부를 확인하는 함수

        Returns:
            처리 결과
        """
        result = BatchResult(fetched=len(items))
        batch_size = self.options.batch_size

        for start in range(0, len(items), batch_size):
            chunk = items[start:start + batch_size]
            self.logger.debug(
                f"배치 처리: {account.email}, {start + 1}-{start + len(chunk)}/{len(items)}"
            )

            for item in chunk:
                await self.sleep(self.options.inter_item_delay)
                outcome = await self._process_item(account, item, access_token)
                if outcome == PROCESSED:
                    result.processed += 1
                elif outcome == SKIPPED:
                    result.skipped += 1
                else:
                    result.failed += 1

            await self.sleep(self.options.inter_chunk_delay)

        if items:
            if lease_check is not None and not await lease_check():
                self.logger.warning(f"락을 잃어 커서를 갱신하지 않음: {account.email}")
            else:
                result.cursor_advanced = await self._advance_cursor(account, access_token)

        self.logger.info(
            f"배치 처리 완료: {account.email}, 처리 {result.processed}, "
            f"건너뜀 {result.skipped}, 실패 {result.failed}"
        )
        return result

    async def _process_item(self, account: Account, item: MailboxItem, access_token: str) -> str:
        """단일 메시지를 처리하고 결과 종류를 반환합니다."""
        if await self.item_repository.exists(account.id, item.external_id):
            self.logger.debug(f"이미 처리된 메시지: {item.external_id}")
            return SKIPPED

        content: Optional[str] = None
        try:
            content = self.mailbox_client.extract_content(item)

            categories = await self.category_repository.list_by_account(account.id)
            if not categories:
                self.logger.warning(f"카테고리가 없어 건너뜀: {account.email}")
                return SKIPPED

            try:
                label = await self.classifier.classify(content, categories)
                category = next((c for c in categories if c.matches(label)), None)

                if category is None:
                    self.logger.warning(
                        f"분류 결과 '{label}'와 일치하는 카테고리 없음: {item.external_id}"
                    )
                    category = await self._get_unsorted_category(account.id)
                    summary = UNMATCHED_SUMMARY.format(label=label)
                else:
                    summary = await self.classifier.summarize(content)

            except QuotaExceededError as e:
                self.logger.warning(f"분류 할당량 초과, Unsorted로 저장: {item.external_id} ({str(e)})")
                category = await self._get_unsorted_category(account.id)
                summary = QUOTA_SUMMARY

            await self.item_repository.create(
                ProcessedItem(
                    account_id=account.id,
                    external_id=item.external_id,
                    category_id=category.id,
                    summary=summary,
                    original_content=content,
                )
            )

        except DuplicateItemError:
            self.logger.debug(f"동시 처리로 이미 저장된 메시지: {item.external_id}")
            return SKIPPED

        except Exception as e:
            self.logger.error(f"메시지 처리 실패: {item.external_id}, 오류: {str(e)}")
            await self._save_error_fallback(account, item, content, e)
            return FAILED

        await self._archive(account, item, access_token)
        return PROCESSED

    async def _save_error_fallback(
        self,
        account: Account,
        item: MailboxItem,
        content: Optional[str],
        error: Exception,
    ) -> None:
        """처리 실패 항목을 Unsorted 카테고리로 저장합니다. (실패 시 로그만 남김)"""
        try:
            category = await self._get_unsorted_category(account.id)
            await self.item_repository.create(
                ProcessedItem(
                    account_id=account.id,
                    external_id=item.external_id,
                    category_id=category.id,
                    summary=ERROR_SUMMARY.format(error=str(error)),
                    original_content=content,
                )
            )
            self.logger.warning(f"처리 실패 메시지를 Unsorted로 저장: {item.external_id}")
        except Exception as save_error:
            self.logger.error(
                f"처리 실패 메시지 저장 실패: {item.external_id}, 오류: {str(save_error)}"
            )

    async def _archive(self, account: Account, item: MailboxItem, access_token: str) -> None:
        """메시지를 보관 처리합니다. 실패해도 저장된 기록은 유지됩니다."""
        try:
            await self.mailbox_client.archive(access_token, account.email, item.external_id)
        except Exception as e:
            self.logger.error(f"메시지 보관 실패: {item.external_id}, 오류: {str(e)}")

    async def _get_unsorted_category(self, account_id) -> Category:
        """Unsorted 카테고리를 조회하거나 생성합니다."""
        category = await self.category_repository.get_by_name(account_id, UNSORTED_CATEGORY_NAME)
        if category is not None:
            return category

        self.logger.info(f"'{UNSORTED_CATEGORY_NAME}' 카테고리 생성: {account_id}")
        try:
            return await self.category_repository.create(
                Category(
                    account_id=account_id,
                    name=UNSORTED_CATEGORY_NAME,
                    description=UNSORTED_CATEGORY_DESCRIPTION,
                )
            )
        except DuplicateItemError:
            # 다른 작업이 먼저 생성함
            category = await self.category_repository.get_by_name(account_id, UNSORTED_CATEGORY_NAME)
            if category is None:
                raise
            return category

    async def _advance_cursor(self, account: Account, access_token: str) -> bool:
        """제공자의 현재 커서를 저장합니다. 실패 시 이전 커서를 유지합니다."""
        try:
            cursor = await self.mailbox_client.current_cursor(access_token, account.email)
            if not cursor:
                self.logger.warning(f"현재 커서를 가져오지 못함: {account.email}")
                return False

            await self.account_repository.update_cursor(account.id, cursor, self.clock())
            self.logger.debug(f"커서 갱신: {account.email} -> {cursor}")
            return True

        except Exception as e:
            self.logger.error(f"커서 갱신 실패: {account.email}, 오류: {str(e)}")
            return False
