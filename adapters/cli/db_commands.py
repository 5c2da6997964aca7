"""
데이터베이스 관리 CLI 명령어

데이터베이스 초기화와 분산 락 테이블 점검을 위한 CLI 명령어입니다.
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from core.domain.entities import utcnow
from adapters.db.database import initialize_database
from adapters.factory import AdapterFactory
from config.adapters import get_config

# CLI 앱 생성
app = typer.Typer(name="db", help="데이터베이스 관리 명령어")
console = Console()


@app.command("init")
def init_database():
    """데이터베이스 테이블을 생성합니다."""

    async def _init():
        try:
            console.print("[blue]데이터베이스 초기화 시작...[/blue]")

            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            await db_adapter.create_tables()

            console.print("[green]✓ 데이터베이스 초기화가 완료되었습니다![/green]")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_init())


@app.command("reset")
def reset_database():
    """데이터베이스를 리셋합니다. (모든 데이터 삭제)"""

    confirm = typer.confirm("모든 데이터가 삭제됩니다. 계속하시겠습니까?")
    if not confirm:
        console.print("[yellow]취소되었습니다.[/yellow]")
        return

    async def _reset():
        try:
            console.print("[blue]데이터베이스 리셋 시작...[/blue]")

            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            await db_adapter.reset()

            console.print("[green]✓ 데이터베이스 리셋이 완료되었습니다![/green]")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_reset())


@app.command("locks")
def show_locks():
    """계정 락 테이블의 내용을 조회합니다."""

    async def _show_locks():
        try:
            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            factory = AdapterFactory(config)

            async with db_adapter.get_session() as session:
                leases = await factory.create_lock_store(session).list_all()

            await db_adapter.close()

            if not leases:
                console.print("[yellow]보유 중인 락이 없습니다.[/yellow]")
                return

            now = utcnow()
            table = Table(title="계정 락")
            table.add_column("계정 ID", style="cyan")
            table.add_column("보유 노드", style="green")
            table.add_column("획득 시간", style="blue")
            table.add_column("만료 시간", style="yellow")
            table.add_column("상태", style="magenta")

            for lease in leases:
                table.add_row(
                    lease.account_key,
                    lease.holder_id,
                    str(lease.acquired_at),
                    str(lease.expires_at),
                    "만료" if lease.is_expired(now) else "유효",
                )

            console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_show_locks())


@app.command("cleanup-locks")
def cleanup_locks():
    """만료된 계정 락을 정리합니다."""

    async def _cleanup():
        try:
            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            factory = AdapterFactory(config)

            async with db_adapter.get_session() as session:
                deleted = await factory.create_lock_manager(session).cleanup_expired()

            console.print(f"[green]✓ 만료된 락 {deleted}개를 정리했습니다.[/green]")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_cleanup())


if __name__ == "__main__":
    app()
