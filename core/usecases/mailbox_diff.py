"""
메일함 증분 조회 유즈케이스

커서 기반 증분 조회 계약을 감쌉니다. 제공자가 커서를 거부하면
커서 없이 한 번만 다시 조회합니다 (최근 미보관 메일로 제한).
"""

from typing import List, Optional

from ..domain.entities import MailboxItem
from ..domain.exceptions import CursorInvalidError
from ..domain.ports import LoggerPort, MailboxClientPort


class MailboxDiffReader:
    """메일함 증분 조회기"""

    def __init__(
        self,
        mailbox_client: MailboxClientPort,
        logger: LoggerPort,
        full_resync_limit: int = 50,
    ):
        self.mailbox_client = mailbox_client
        self.logger = logger
        self.full_resync_limit = full_resync_limit

    async def fetch(
        self,
        access_token: str,
        mailbox_id: str,
        cursor: Optional[str],
    ) -> List[MailboxItem]:
        """
        커서 이후의 신규 메시지를 조회합니다.

        Raises:
            UnauthorizedError: 제공자가 401을 반환한 경우
        """
        try:
            items = await self.mailbox_client.fetch_changes(
                access_token, mailbox_id, cursor, self.full_resync_limit
            )
        except CursorInvalidError:
            if cursor is None:
                raise
            self.logger.warning(f"커서가 거부되어 전체 재동기화: {mailbox_id} (cursor={cursor})")
            items = await self.mailbox_client.fetch_changes(
                access_token, mailbox_id, None, self.full_resync_limit
            )

        self.logger.debug(f"신규 메시지 조회: {mailbox_id}, {len(items)}개")
        return items
