"""
FastAPI 동기화 라우터

즉시 동기화 트리거(웹훅)와 처리된 메일의 일괄 삭제/구독 해지 API를 제공합니다.
"""

from typing import Dict, List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.entities import BulkActionResult, CycleReport, UnsubscribeStatus
from core.usecases.orchestrator import SyncOrchestrator
from adapters.db.database import get_db_session
from adapters.factory import get_adapter_factory
from adapters.logger import create_logger

router = APIRouter(prefix="/api", tags=["sync"])
logger = create_logger("sync_router")


class BulkItemRequest(BaseModel):
    """일괄 작업 요청 본문"""

    owner_id: str = Field(..., min_length=1, description="소유자 ID")
    item_ids: List[UUID] = Field(..., min_length=1, description="처리할 항목 ID 목록")


class UnsubscribeResponse(BaseModel):
    """일괄 구독 해지 응답"""

    results: Dict[str, UnsubscribeStatus] = Field(default_factory=dict)


def get_orchestrator(request: Request) -> SyncOrchestrator:
    """앱 상태에 등록된 오케스트레이터를 반환합니다."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="동기화 서비스가 준비되지 않았습니다")
    return orchestrator


@router.post("/webhooks/process-emails/{owner_id}", response_model=CycleReport)
async def process_owner_emails(
    owner_id: str,
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """소유자의 모든 계정을 즉시 동기화합니다."""
    logger.info(f"즉시 동기화 웹훅 수신: {owner_id}")

    report = await orchestrator.process_owner_now(owner_id)
    if report.dispatched == 0:
        raise HTTPException(status_code=404, detail="동기화할 계정이 없습니다")
    return report


@router.post("/webhooks/process-emails", response_model=CycleReport)
async def process_all_emails(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
):
    """모든 계정에 대해 동기화 사이클을 실행합니다."""
    logger.info("전체 동기화 웹훅 수신")
    return await orchestrator.run_cycle()


@router.post("/items/delete", response_model=BulkActionResult)
async def delete_items(
    body: BulkItemRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """처리된 메일을 제공자와 저장소에서 삭제합니다."""
    usecase = get_adapter_factory().create_mail_action_usecase(session)
    return await usecase.delete_items(body.owner_id, body.item_ids)


@router.post("/items/unsubscribe", response_model=UnsubscribeResponse)
async def unsubscribe_items(
    body: BulkItemRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """처리된 메일의 발신처에서 구독을 해지합니다."""
    usecase = get_adapter_factory().create_mail_action_usecase(session)
    results = await usecase.unsubscribe_items(body.owner_id, body.item_ids)
    return UnsubscribeResponse(results=results)
