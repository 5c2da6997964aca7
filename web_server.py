"""
FastAPI 웹 서버

즉시 동기화 웹훅과 메일 일괄 작업 API를 제공하고,
설정에 따라 주기 동기화 스케줄러를 함께 실행합니다.
"""

import asyncio
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.web.sync_routes import router as sync_router
from adapters.db.database import get_database_adapter, initialize_database
from adapters.factory import initialize_adapter_factory
from adapters.logger import create_logger
from config.adapters import get_config

# FastAPI 앱 생성
app = FastAPI(
    title="메일함 동기화 서비스",
    description="메일함 동기화 트리거 및 메일 일괄 작업 API",
    version="1.0.0",
)

# CORS 설정
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 로거 설정
logger = create_logger("web_server")

# 라우터 등록
app.include_router(sync_router)


@app.on_event("startup")
async def startup_event():
    """서버 시작 시 실행되는 이벤트"""
    logger.info("FastAPI 웹 서버 시작")

    config = get_config()
    db_adapter = initialize_database(config)
    await db_adapter.initialize()
    await db_adapter.create_tables()

    factory = initialize_adapter_factory(config)
    orchestrator = factory.create_orchestrator(db_adapter)
    app.state.orchestrator = orchestrator
    app.state.scheduler_task = None

    if config.is_scheduler_enabled():
        app.state.scheduler_task = asyncio.create_task(orchestrator.run_forever())
        logger.info(f"스케줄러 활성화 (노드: {config.get_node_id()})")

    logger.info(f"환경: {config.get_environment()}")
    logger.info(f"데이터베이스: {config.get_database_url()}")
    logger.info("웹 서버 준비 완료")


@app.on_event("shutdown")
async def shutdown_event():
    """서버 종료 시 실행되는 이벤트"""
    logger.info("FastAPI 웹 서버 종료")

    orchestrator = getattr(app.state, "orchestrator", None)
    scheduler_task = getattr(app.state, "scheduler_task", None)
    if orchestrator is not None:
        orchestrator.stop()
    if scheduler_task is not None:
        try:
            await asyncio.wait_for(scheduler_task, timeout=10)
        except asyncio.TimeoutError:
            scheduler_task.cancel()
            logger.warning("스케줄러가 제한 시간 내 종료되지 않아 취소했습니다")

    db_adapter = get_database_adapter()
    if db_adapter:
        await db_adapter.close()


@app.get("/")
async def root():
    """서비스 상태"""
    config = get_config()
    return {
        "service": "mailsync",
        "environment": config.get_environment(),
        "node_id": config.get_node_id(),
        "scheduler_enabled": config.is_scheduler_enabled(),
    }


if __name__ == "__main__":
    config = get_config()

    uvicorn.run(
        "web_server:app",
        host=config.get_web_host(),
        port=config.get_web_port(),
        reload=config.is_debug(),
        log_level=config.get_log_level().lower(),
    )
