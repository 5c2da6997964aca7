"""
메일함 동기화 CLI 명령어

동기화 사이클의 단발 실행, 소유자 즉시 동기화, 주기 실행 스케줄러를 제공합니다.
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from core.domain.entities import CycleReport
from adapters.db.database import initialize_database
from adapters.factory import AdapterFactory
from config.adapters import get_config

app = typer.Typer(name="sync", help="메일함 동기화 명령어")
console = Console()


def _print_cycle_report(report: CycleReport) -> None:
    """사이클 결과를 표로 출력합니다."""
    console.print(
        f"[bold]대상 {report.dispatched}개[/bold] | "
        f"[green]성공 {report.succeeded}[/green] | "
        f"[yellow]건너뜀 {report.skipped}[/yellow] | "
        f"[red]실패 {report.failed}[/red] | "
        f"진행 중 {report.pending}"
    )

    if not report.reports:
        return

    table = Table(title="계정별 동기화 결과")
    table.add_column("계정 ID", style="cyan")
    table.add_column("단계", style="blue")
    table.add_column("처리", style="green")
    table.add_column("건너뜀", style="yellow")
    table.add_column("실패", style="red")
    table.add_column("비고", style="dim")

    for sync_report in report.reports:
        table.add_row(
            str(sync_report.account_id),
            sync_report.state.value,
            str(sync_report.processed),
            str(sync_report.skipped),
            str(sync_report.failed),
            sync_report.error or sync_report.skipped_reason or "-",
        )

    console.print(table)


async def _run_cycle(owner_id: Optional[str]) -> CycleReport:
    config = get_config()
    db_adapter = initialize_database(config)
    await db_adapter.initialize()
    factory = AdapterFactory(config)
    orchestrator = factory.create_orchestrator(db_adapter)

    try:
        if owner_id:
            report = await orchestrator.process_owner_now(owner_id)
        else:
            report = await orchestrator.run_cycle()

        if report.pending:
            console.print(f"[yellow]진행 중인 계정 작업 {report.pending}개를 기다립니다...[/yellow]")
            await orchestrator.wait_background()
        return report
    finally:
        await db_adapter.close()


@app.command("run-once")
def run_once():
    """모든 계정에 대해 동기화 사이클을 한 번 실행합니다."""

    async def _run_once():
        try:
            console.print("[blue]동기화 사이클 실행 중...[/blue]")
            report = await _run_cycle(None)
            _print_cycle_report(report)
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_run_once())


@app.command("now")
def sync_now(
    owner_id: str = typer.Option(..., "--owner", help="소유자 ID"),
):
    """소유자의 모든 계정을 즉시 동기화합니다."""

    async def _sync_now():
        try:
            console.print(f"[blue]즉시 동기화 실행 중: {owner_id}[/blue]")
            report = await _run_cycle(owner_id)
            if report.dispatched == 0:
                console.print("[yellow]동기화할 계정이 없습니다.[/yellow]")
                return
            _print_cycle_report(report)
        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_sync_now())


@app.command("serve")
def serve(
    interval: Optional[float] = typer.Option(None, help="동기화 간격 (초), 기본값은 설정값"),
):
    """주기적으로 동기화 사이클을 실행하는 스케줄러를 시작합니다."""

    async def _serve():
        config = get_config()
        db_adapter = initialize_database(config)
        await db_adapter.initialize()
        await db_adapter.create_tables()
        factory = AdapterFactory(config)
        orchestrator = factory.create_orchestrator(db_adapter)
        if interval:
            orchestrator.options = orchestrator.options.model_copy(update={"sync_interval": interval})

        console.print(
            f"[green]스케줄러 시작 (노드: {config.get_node_id()}, "
            f"간격: {orchestrator.options.sync_interval}초)[/green]"
        )
        try:
            await orchestrator.run_forever()
        finally:
            orchestrator.stop()
            await db_adapter.close()

    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        console.print("[yellow]스케줄러가 중지되었습니다.[/yellow]")


if __name__ == "__main__":
    app()
