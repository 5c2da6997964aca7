"""
동기화 웹 라우터 테스트
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.domain.entities import BulkActionResult, CycleReport, UnsubscribeStatus
from adapters.db.database import get_db_session
from adapters.web.sync_routes import router


async def _no_session():
    yield None


@pytest.fixture
def orchestrator():
    orchestrator = AsyncMock()
    orchestrator.process_owner_now.return_value = CycleReport(dispatched=2, succeeded=1, skipped=1)
    orchestrator.run_cycle.return_value = CycleReport(dispatched=3, succeeded=3)
    return orchestrator


@pytest.fixture
def mail_actions():
    return AsyncMock()


@pytest.fixture
def client(orchestrator, mail_actions):
    app = FastAPI()
    app.include_router(router)
    app.state.orchestrator = orchestrator
    app.dependency_overrides[get_db_session] = _no_session

    factory = MagicMock()
    factory.create_mail_action_usecase.return_value = mail_actions
    with patch("adapters.web.sync_routes.get_adapter_factory", return_value=factory):
        yield TestClient(app)


class TestWebhooks:

    def test_process_owner(self, client, orchestrator):
        response = client.post("/api/webhooks/process-emails/owner-1")

        assert response.status_code == 200
        assert response.json()["succeeded"] == 1
        assert response.json()["skipped"] == 1
        orchestrator.process_owner_now.assert_awaited_once_with("owner-1")

    def test_owner_without_accounts(self, client, orchestrator):
        orchestrator.process_owner_now.return_value = CycleReport()

        response = client.post("/api/webhooks/process-emails/nobody")

        assert response.status_code == 404

    def test_process_all(self, client, orchestrator):
        response = client.post("/api/webhooks/process-emails")

        assert response.status_code == 200
        assert response.json()["dispatched"] == 3

    def test_orchestrator_not_ready(self):
        app = FastAPI()
        app.include_router(router)

        response = TestClient(app).post("/api/webhooks/process-emails")

        assert response.status_code == 503


class TestBulkItems:

    def test_delete(self, client, mail_actions):
        item_id = uuid4()
        mail_actions.delete_items.return_value = BulkActionResult(succeeded=[item_id])

        response = client.post(
            "/api/items/delete",
            json={"owner_id": "owner-1", "item_ids": [str(item_id)]},
        )

        assert response.status_code == 200
        assert response.json()["succeeded"] == [str(item_id)]
        mail_actions.delete_items.assert_awaited_once_with("owner-1", [item_id])

    def test_unsubscribe(self, client, mail_actions):
        item_id = uuid4()
        mail_actions.unsubscribe_items.return_value = {str(item_id): UnsubscribeStatus.NOT_FOUND}

        response = client.post(
            "/api/items/unsubscribe",
            json={"owner_id": "owner-1", "item_ids": [str(item_id)]},
        )

        assert response.status_code == 200
        assert response.json()["results"] == {str(item_id): "not_found"}

    def test_empty_item_list_is_rejected(self, client, mail_actions):
        response = client.post("/api/items/delete", json={"owner_id": "owner-1", "item_ids": []})

        assert response.status_code == 422
        mail_actions.delete_items.assert_not_awaited()
