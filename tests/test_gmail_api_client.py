"""
Gmail API 클라이언트 어댑터 테스트

httpx.MockTransport로 Gmail REST 응답을 흉내냅니다.
"""

import base64
import json

import httpx
import pytest

from core.domain.entities import MailboxItem
from core.domain.exceptions import CursorInvalidError, MailSyncError, UnauthorizedError
from adapters.external.gmail_api_client import FULL_RESYNC_QUERY, GmailApiClientAdapter


def encode(text):
    """Gmail 방식의 패딩 없는 URL-safe Base64"""
    return base64.urlsafe_b64encode(text.encode()).decode().rstrip("=")


def message_payload(message_id):
    return {"id": message_id, "payload": {"mimeType": "text/plain", "headers": []}}


class RecordingHandler:
    """요청을 기록하고 경로별 응답을 돌려주는 핸들러"""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        for suffix, response in self.routes.items():
            if request.url.path.endswith(suffix):
                if callable(response):
                    return response(request)
                return response
        return httpx.Response(404, json={"error": "not found"})


def make_client(handler, logger):
    return GmailApiClientAdapter(logger, transport=httpx.MockTransport(handler))


class TestFetchChanges:
    """증분 조회"""

    @pytest.mark.asyncio
    async def test_history_ids_are_deduplicated_in_order(self, logger):
        handler = RecordingHandler({
            "/history": httpx.Response(200, json={
                "history": [
                    {"messagesAdded": [{"message": {"id": "a"}}, {"message": {"id": "b"}}]},
                    {"messagesAdded": [{"message": {"id": "a"}}, {"message": {"id": "c"}}]},
                ]
            }),
            "/messages/a": httpx.Response(200, json=message_payload("a")),
            "/messages/b": httpx.Response(200, json=message_payload("b")),
            "/messages/c": httpx.Response(200, json=message_payload("c")),
        })
        client = make_client(handler, logger)

        items = await client.fetch_changes("token", "user@gmail.com", "100", limit=50)

        assert [item.external_id for item in items] == ["a", "b", "c"]
        history_request = handler.requests[0]
        assert history_request.url.params["startHistoryId"] == "100"
        assert history_request.url.params["historyTypes"] == "messageAdded"
        assert history_request.headers["Authorization"] == "Bearer token"

    @pytest.mark.asyncio
    async def test_history_pages_are_followed(self, logger):
        def history(request):
            if request.url.params.get("pageToken") == "p2":
                return httpx.Response(200, json={
                    "history": [{"messagesAdded": [{"message": {"id": "m51"}}]}]
                })
            return httpx.Response(200, json={
                "history": [
                    {"messagesAdded": [{"message": {"id": f"m{i}"}}]} for i in range(1, 51)
                ],
                "nextPageToken": "p2",
            })

        routes = {"/history": history}
        routes.update({
            f"/messages/m{i}": httpx.Response(200, json=message_payload(f"m{i}")) for i in range(1, 52)
        })
        handler = RecordingHandler(routes)
        client = make_client(handler, logger)

        items = await client.fetch_changes("token", "user@gmail.com", "100", limit=50)

        assert len(items) == 51
        assert items[-1].external_id == "m51"
        history_requests = [r for r in handler.requests if r.url.path.endswith("/history")]
        assert len(history_requests) == 2
        assert "pageToken" not in history_requests[0].url.params
        assert history_requests[1].url.params["startHistoryId"] == "100"

    @pytest.mark.asyncio
    async def test_missing_cursor_lists_unread_inbox(self, logger):
        handler = RecordingHandler({
            "/messages": httpx.Response(200, json={"messages": [{"id": "x"}]}),
            "/messages/x": httpx.Response(200, json=message_payload("x")),
        })
        client = make_client(handler, logger)

        items = await client.fetch_changes("token", "user@gmail.com", None, limit=50)

        assert [item.external_id for item in items] == ["x"]
        list_request = handler.requests[0]
        assert list_request.url.params["q"] == FULL_RESYNC_QUERY
        assert list_request.url.params["maxResults"] == "50"

    @pytest.mark.asyncio
    async def test_message_deleted_meanwhile_is_skipped(self, logger):
        handler = RecordingHandler({
            "/history": httpx.Response(200, json={
                "history": [{"messagesAdded": [{"message": {"id": "gone"}}, {"message": {"id": "ok"}}]}]
            }),
            "/messages/gone": httpx.Response(404, json={"error": "not found"}),
            "/messages/ok": httpx.Response(200, json=message_payload("ok")),
        })
        client = make_client(handler, logger)

        items = await client.fetch_changes("token", "user@gmail.com", "100")

        assert [item.external_id for item in items] == ["ok"]

    @pytest.mark.asyncio
    async def test_unauthorized(self, logger):
        handler = RecordingHandler({"/history": httpx.Response(401, json={"error": "expired"})})

        with pytest.raises(UnauthorizedError):
            await make_client(handler, logger).fetch_changes("token", "user@gmail.com", "100")

    @pytest.mark.asyncio
    async def test_rejected_cursor(self, logger):
        handler = RecordingHandler({"/history": httpx.Response(404, json={"error": "history too old"})})

        with pytest.raises(CursorInvalidError):
            await make_client(handler, logger).fetch_changes("token", "user@gmail.com", "1")

    @pytest.mark.asyncio
    async def test_server_error(self, logger):
        handler = RecordingHandler({"/messages": httpx.Response(500, text="backend error")})

        with pytest.raises(MailSyncError):
            await make_client(handler, logger).fetch_changes("token", "user@gmail.com", None)


class TestMailboxOperations:
    """커서 조회, 보관, 삭제"""

    @pytest.mark.asyncio
    async def test_current_cursor_reads_profile_history_id(self, logger):
        handler = RecordingHandler({"/profile": httpx.Response(200, json={"historyId": 12345})})

        assert await make_client(handler, logger).current_cursor("token", "user@gmail.com") == "12345"

    @pytest.mark.asyncio
    async def test_archive_removes_inbox_label(self, logger):
        handler = RecordingHandler({"/messages/m1/modify": httpx.Response(200, json={"id": "m1"})})

        await make_client(handler, logger).archive("token", "user@gmail.com", "m1")

        request = handler.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"removeLabelIds": ["INBOX"]}

    @pytest.mark.asyncio
    async def test_delete_moves_to_trash(self, logger):
        handler = RecordingHandler({"/messages/m1/trash": httpx.Response(200, json={"id": "m1"})})

        await make_client(handler, logger).delete("token", "user@gmail.com", "m1")

        assert handler.requests[0].url.path.endswith("/messages/m1/trash")

    @pytest.mark.asyncio
    async def test_archive_unauthorized(self, logger):
        handler = RecordingHandler({"/messages/m1/modify": httpx.Response(401)})

        with pytest.raises(UnauthorizedError):
            await make_client(handler, logger).archive("token", "user@gmail.com", "m1")


class TestExtractContent:
    """본문 추출"""

    def headers(self):
        return [
            {"name": "Subject", "value": "Weekly <News>"},
            {"name": "From", "value": "news@example.com"},
            {"name": "Date", "value": "Mon, 15 Jan 2024 12:00:00 +0000"},
        ]

    def test_html_part_is_preferred(self, logger):
        item = MailboxItem(external_id="m1", payload={"payload": {
            "mimeType": "multipart/alternative",
            "headers": self.headers(),
            "parts": [
                {"mimeType": "text/plain", "body": {"data": encode("plain body")}},
                {"mimeType": "text/html", "body": {"data": encode("<p>html body</p>")}},
            ],
        }})

        content = GmailApiClientAdapter(logger).extract_content(item)

        assert "<p>html body</p>" in content
        assert "Weekly &lt;News&gt;" in content
        assert "plain body" not in content

    def test_plain_text_fallback(self, logger):
        item = MailboxItem(external_id="m1", payload={"payload": {
            "mimeType": "multipart/mixed",
            "headers": self.headers(),
            "parts": [
                {"mimeType": "multipart/alternative", "parts": [
                    {"mimeType": "text/plain", "body": {"data": encode("nested plain")}},
                ]},
            ],
        }})

        content = GmailApiClientAdapter(logger).extract_content(item)

        assert content.startswith("Subject: Weekly <News>\nFrom: news@example.com\n")
        assert content.endswith("nested plain")

    def test_empty_payload(self, logger):
        assert GmailApiClientAdapter(logger).extract_content(MailboxItem(external_id="m1")) == ""
