"""
Gmail API 클라이언트 어댑터

Gmail REST API와의 통신을 담당하는 어댑터입니다.
히스토리 ID를 증분 동기화 커서로 사용합니다.
"""

import base64
import html
from typing import Dict, List, Optional
from urllib.parse import quote

import httpx

from core.domain.entities import MailboxItem
from core.domain.exceptions import CursorInvalidError, MailSyncError, UnauthorizedError
from core.domain.ports import LoggerPort, MailboxClientPort

FULL_RESYNC_QUERY = "is:unread -in:archive"


class GmailApiClientAdapter(MailboxClientPort):
    """Gmail API 클라이언트 어댑터"""

    def __init__(
        self,
        logger: LoggerPort,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.logger = logger
        self.base_url = "https://gmail.googleapis.com/gmail/v1/users"
        self.timeout = 30.0
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _user_url(self, mailbox_id: str) -> str:
        return f"{self.base_url}/{quote(mailbox_id, safe='@')}"

    def _headers(self, access_token: str) -> Dict[str, str]:
        return {"Authorization": f"Bearer {access_token}"}

    def _check_response(
        self,
        response: httpx.Response,
        operation: str,
        cursor: Optional[str] = None,
    ) -> None:
        """응답 상태를 도메인 예외로 변환합니다."""
        if response.status_code == 200:
            return

        if response.status_code == 401:
            self.logger.warning(f"{operation} 실패: 401 인증 만료")
            raise UnauthorizedError(f"{operation} 실패: 401")

        if cursor is not None and response.status_code in (400, 404):
            raise CursorInvalidError(f"{operation} 실패: 커서 거부 ({cursor})")

        error_msg = f"{operation} 실패: {response.status_code} - {response.text}"
        self.logger.error(error_msg)
        raise MailSyncError(error_msg)

    async def fetch_changes(
        self,
        access_token: str,
        mailbox_id: str,
        cursor: Optional[str],
        limit: int = 50,
    ) -> List[MailboxItem]:
        """히스토리 ID 이후 추가된 메시지를 조회합니다."""
        async with self._client() as client:
            if cursor is None:
                message_ids = await self._list_unread_ids(client, access_token, mailbox_id, limit)
            else:
                message_ids = await self._list_history_ids(client, access_token, mailbox_id, cursor, limit)

            items = []
            for message_id in message_ids:
                item = await self._get_message(client, access_token, mailbox_id, message_id)
                if item is not None:
                    items.append(item)

        self.logger.debug(f"메시지 조회 완료: {mailbox_id}, {len(items)}개 (cursor={cursor})")
        return items

    async def _list_history_ids(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        mailbox_id: str,
        cursor: str,
        page_size: int,
    ) -> List[str]:
        """히스토리에서 추가된 메시지 ID를 순서대로 수집합니다. (모든 페이지)"""
        message_ids: List[str] = []
        page_token: Optional[str] = None

        while True:
            params = {
                "startHistoryId": cursor,
                "maxResults": page_size,
                "historyTypes": "messageAdded",
            }
            if page_token:
                params["pageToken"] = page_token

            response = await client.get(
                f"{self._user_url(mailbox_id)}/history",
                params=params,
                headers=self._headers(access_token),
            )
            self._check_response(response, "히스토리 조회", cursor=cursor)

            data = response.json()
            for history in data.get("history", []):
                for added in history.get("messagesAdded", []):
                    message_id = added.get("message", {}).get("id")
                    if message_id and message_id not in message_ids:
                        message_ids.append(message_id)

            page_token = data.get("nextPageToken")
            if not page_token:
                return message_ids

    async def _list_unread_ids(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        mailbox_id: str,
        limit: int,
    ) -> List[str]:
        """최근 미보관 안 읽은 메시지 ID를 조회합니다."""
        response = await client.get(
            f"{self._user_url(mailbox_id)}/messages",
            params={"q": FULL_RESYNC_QUERY, "maxResults": limit},
            headers=self._headers(access_token),
        )
        self._check_response(response, "메시지 목록 조회")
        return [message["id"] for message in response.json().get("messages", [])]

    async def _get_message(
        self,
        client: httpx.AsyncClient,
        access_token: str,
        mailbox_id: str,
        message_id: str,
    ) -> Optional[MailboxItem]:
        """메시지 전체를 조회합니다. 그 사이 삭제된 메시지는 None."""
        response = await client.get(
            f"{self._user_url(mailbox_id)}/messages/{message_id}",
            params={"format": "full"},
            headers=self._headers(access_token),
        )
        if response.status_code == 404:
            self.logger.debug(f"메시지가 이미 삭제됨: {message_id}")
            return None

        self._check_response(response, "메시지 조회")
        return MailboxItem(external_id=message_id, payload=response.json())

    async def current_cursor(self, access_token: str, mailbox_id: str) -> Optional[str]:
        """프로필의 현재 히스토리 ID를 조회합니다."""
        async with self._client() as client:
            response = await client.get(
                f"{self._user_url(mailbox_id)}/profile",
                headers=self._headers(access_token),
            )
            self._check_response(response, "프로필 조회")

        history_id = response.json().get("historyId")
        return str(history_id) if history_id is not None else None

    async def archive(self, access_token: str, mailbox_id: str, external_id: str) -> None:
        """INBOX 라벨을 제거해 메시지를 보관합니다."""
        async with self._client() as client:
            response = await client.post(
                f"{self._user_url(mailbox_id)}/messages/{external_id}/modify",
                json={"removeLabelIds": ["INBOX"]},
                headers=self._headers(access_token),
            )
            self._check_response(response, "메시지 보관")

        self.logger.debug(f"메시지 보관 완료: {external_id}")

    async def delete(self, access_token: str, mailbox_id: str, external_id: str) -> None:
        """메시지를 휴지통으로 이동합니다."""
        async with self._client() as client:
            response = await client.post(
                f"{self._user_url(mailbox_id)}/messages/{external_id}/trash",
                headers=self._headers(access_token),
            )
            self._check_response(response, "메시지 삭제")

        self.logger.debug(f"메시지 삭제 완료: {external_id}")

    def extract_content(self, item: MailboxItem) -> str:
        """
        헤더(Subject/From/Date)와 본문을 추출합니다.

        HTML 본문이 있으면 HTML 형식으로, 없으면 일반 텍스트로 구성합니다.
        """
        payload = item.payload.get("payload") or {}
        if not payload:
            return ""

        headers = {"subject": "", "from": "", "date": ""}
        for header in payload.get("headers", []):
            name = (header.get("name") or "").lower()
            if name in headers:
                headers[name] = header.get("value") or ""

        bodies: Dict[str, str] = {}
        self._collect_bodies(payload, bodies)
        html_body = bodies.get("text/html")
        plain_body = bodies.get("text/plain", "")

        if html_body:
            return (
                "<div style='font-family: Arial, sans-serif; padding: 10px; "
                "border-bottom: 1px solid #ddd; margin-bottom: 10px;'>"
                f"<strong>Subject:</strong> {html.escape(headers['subject'])}<br>"
                f"<strong>From:</strong> {html.escape(headers['from'])}<br>"
                f"<strong>Date:</strong> {html.escape(headers['date'])}"
                "</div>"
                f"<div style='font-family: Arial, sans-serif;'>{html_body}</div>"
            )

        return (
            f"Subject: {headers['subject']}\n"
            f"From: {headers['from']}\n"
            f"Date: {headers['date']}\n\n"
            f"{plain_body}"
        )

    def _collect_bodies(self, part: dict, bodies: Dict[str, str]) -> None:
        """MIME 파트를 재귀적으로 돌며 text/html, text/plain 본문을 모읍니다."""
        mime_type = part.get("mimeType")
        data = (part.get("body") or {}).get("data")

        if data and mime_type in ("text/plain", "text/html") and mime_type not in bodies:
            decoded = self._decode_body(data)
            if decoded is not None:
                bodies[mime_type] = decoded

        for child in part.get("parts") or []:
            self._collect_bodies(child, bodies)

    def _decode_body(self, data: str) -> Optional[str]:
        """URL-safe Base64 본문을 디코딩합니다. (패딩 보정)"""
        try:
            padded = data + "=" * (-len(data) % 4)
            return base64.urlsafe_b64decode(padded.encode()).decode("utf-8", errors="replace")
        except (ValueError, TypeError) as e:
            self.logger.warning(f"본문 디코딩 실패: {str(e)}")
            return None
