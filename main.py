"""
메일함 동기화 및 분류 파이프라인

메인 진입점 파일입니다.
"""

import asyncio
import typer
from rich.console import Console

from adapters.cli.account_commands import app as account_app
from adapters.cli.category_commands import app as category_app
from adapters.cli.db_commands import app as db_app
from adapters.cli.sync_commands import app as sync_app
from adapters.db.database import initialize_database
from config.adapters import get_config

# 메인 CLI 앱
app = typer.Typer(
    name="mailsync",
    help="메일함 동기화 및 분류 파이프라인",
    no_args_is_help=True,
)

# 서브 명령어 추가
app.add_typer(account_app, name="account")
app.add_typer(category_app, name="category")
app.add_typer(sync_app, name="sync")
app.add_typer(db_app, name="db")

console = Console()


@app.command("init-db")
def init_database(
    drop_existing: bool = typer.Option(False, "--drop", help="기존 테이블을 삭제하고 재생성"),
):
    """데이터베이스를 초기화합니다."""

    async def _init_db():
        try:
            config = get_config()
            console.print(f"[blue]환경: {config.get_environment()}[/blue]")
            console.print(f"[blue]데이터베이스: {config.get_database_url()}[/blue]")

            db_adapter = initialize_database(config)
            await db_adapter.initialize()

            if drop_existing:
                console.print("[yellow]기존 테이블을 삭제하는 중...[/yellow]")
                await db_adapter.drop_tables()

            console.print("[blue]데이터베이스 테이블을 생성하는 중...[/blue]")
            await db_adapter.create_tables()

            console.print("[green]✓ 데이터베이스가 초기화되었습니다![/green]")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_init_db())


@app.command("version")
def show_version():
    """버전 정보를 표시합니다."""
    console.print("[bold]메일함 동기화 및 분류 파이프라인[/bold]")
    console.print("버전: 1.0.0")


@app.command("config")
def show_config():
    """현재 설정을 표시합니다."""
    try:
        config = get_config()
        options = config.get_sync_options()

        console.print("[bold]현재 설정[/bold]")
        console.print(f"환경: {config.get_environment()}")
        console.print(f"디버그 모드: {config.is_debug()}")
        console.print(f"데이터베이스 URL: {config.get_database_url()}")
        console.print(f"노드 ID: {config.get_node_id()}")
        console.print(f"Gemini 모델: {config.get_gemini_model()}")
        console.print(f"웹 서버: {config.get_web_host()}:{config.get_web_port()}")
        console.print(f"로그 레벨: {config.get_log_level()}")
        console.print(f"스케줄러 사용: {config.is_scheduler_enabled()}")
        console.print(f"동시 처리 계정 수: {options.worker_concurrency}")
        console.print(f"배치 크기: {options.batch_size}")
        console.print(f"항목 간 지연(초): {options.inter_item_delay}")
        console.print(f"락 임대 기간: {options.lease_ttl}")
        console.print(f"토큰 선제 갱신 기준: {options.refresh_lookahead}")
        console.print(f"사이클 제한 시간(초): {options.cycle_timeout}")
        console.print(f"동기화 간격(초): {options.sync_interval}")

    except Exception as e:
        console.print(f"[red]오류: {str(e)}[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
