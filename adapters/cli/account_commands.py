"""
계정 관리 CLI 명령어

AccountManagementUseCase를 CLI 명령으로 노출하는 어댑터입니다.
"""

import asyncio
from typing import List, Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from adapters.db.database import initialize_database
from adapters.factory import AdapterFactory
from config.adapters import get_config

# CLI 앱 생성
app = typer.Typer(name="account", help="계정 관리 명령어")
console = Console()


def _parse_account_id(account_id: str) -> UUID:
    try:
        return UUID(account_id)
    except ValueError:
        console.print("[red]오류: 잘못된 계정 ID 형식입니다.[/red]")
        raise typer.Exit(1)


@app.command("register")
def register_account(
    owner_id: str = typer.Argument(..., help="소유자 ID"),
    email: str = typer.Argument(..., help="Gmail 메일함 주소"),
    access_token: str = typer.Option(..., help="OAuth 액세스 토큰"),
    refresh_token: Optional[str] = typer.Option(None, help="OAuth 리프레시 토큰"),
    expires_in: Optional[int] = typer.Option(None, help="액세스 토큰 유효 기간 (초)"),
    scopes: Optional[List[str]] = typer.Option(None, "--scope", help="허용된 권한 범위 (여러 번 지정 가능)"),
):
    """메일함 계정을 등록하거나 재인증합니다."""

    async def _register():
        try:
            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            factory = AdapterFactory(config)

            async with db_adapter.get_session() as session:
                usecase = factory.create_account_management_usecase(session)
                account = await usecase.register_account(
                    owner_id=owner_id,
                    email=email,
                    access_token=access_token,
                    refresh_token=refresh_token,
                    expires_in=expires_in,
                    scopes=scopes,
                )

                console.print("[green]✓ 계정이 등록되었습니다![/green]")
                console.print(f"계정 ID: {account.id}")
                console.print(f"이메일: {account.email}")
                console.print(f"대표 계정: {'예' if account.is_primary else '아니오'}")
                console.print(f"상태: {account.status.value}")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_register())


@app.command("list")
def list_accounts(
    owner_id: Optional[str] = typer.Option(None, "--owner", help="소유자 ID 필터"),
):
    """등록된 계정 목록을 조회합니다."""

    async def _list():
        try:
            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            factory = AdapterFactory(config)

            async with db_adapter.get_session() as session:
                usecase = factory.create_account_management_usecase(session)
                accounts = await usecase.list_accounts(owner_id)

            await db_adapter.close()

            if not accounts:
                console.print("[yellow]등록된 계정이 없습니다.[/yellow]")
                return

            table = Table(title="등록된 계정 목록")
            table.add_column("ID", style="cyan")
            table.add_column("소유자", style="blue")
            table.add_column("이메일", style="green")
            table.add_column("대표", style="magenta")
            table.add_column("상태", style="yellow")
            table.add_column("마지막 동기화", style="dim")

            for account in accounts:
                table.add_row(
                    str(account.id),
                    account.owner_id,
                    account.email,
                    "✓" if account.is_primary else "",
                    account.status.value,
                    account.last_sync_at.strftime("%Y-%m-%d %H:%M") if account.last_sync_at else "-",
                )

            console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_list())


@app.command("set-primary")
def set_primary(
    account_id: str = typer.Argument(..., help="계정 ID"),
):
    """대표 계정을 지정합니다."""
    account_uuid = _parse_account_id(account_id)

    async def _set_primary():
        try:
            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            factory = AdapterFactory(config)

            async with db_adapter.get_session() as session:
                usecase = factory.create_account_management_usecase(session)
                account = await usecase.set_primary(account_uuid)
                console.print(f"[green]✓ 대표 계정이 지정되었습니다: {account.email}[/green]")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_set_primary())


@app.command("delete")
def delete_account(
    account_id: str = typer.Argument(..., help="계정 ID"),
    force: bool = typer.Option(False, "--force", "-f", help="확인 없이 강제 삭제"),
):
    """계정과 처리 기록을 삭제합니다."""
    account_uuid = _parse_account_id(account_id)

    if not force:
        confirm = typer.confirm(f"계정 {account_id}와 처리 기록이 삭제됩니다. 계속하시겠습니까?")
        if not confirm:
            console.print("[yellow]취소되었습니다.[/yellow]")
            return

    async def _delete():
        try:
            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            factory = AdapterFactory(config)

            async with db_adapter.get_session() as session:
                usecase = factory.create_account_management_usecase(session)
                deleted = await usecase.delete_account(account_uuid)

            await db_adapter.close()

            if deleted:
                console.print("[green]✓ 계정이 삭제되었습니다.[/green]")
            else:
                console.print("[yellow]계정을 찾을 수 없습니다.[/yellow]")

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_delete())


if __name__ == "__main__":
    app()
