"""
카테고리 관리 CLI 명령어
"""

import asyncio
from typing import Optional
from uuid import UUID

import typer
from rich.console import Console
from rich.table import Table

from adapters.db.database import initialize_database
from adapters.factory import AdapterFactory
from config.adapters import get_config

app = typer.Typer(name="category", help="분류 카테고리 관리 명령어")
console = Console()


@app.command("add")
def add_category(
    account_id: str = typer.Argument(..., help="계정 ID"),
    name: str = typer.Argument(..., help="카테고리 이름"),
    description: Optional[str] = typer.Option(None, help="분류 기준 설명"),
):
    """계정에 분류 카테고리를 추가합니다."""

    async def _add():
        try:
            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            factory = AdapterFactory(config)

            async with db_adapter.get_session() as session:
                usecase = factory.create_account_management_usecase(session)
                category = await usecase.add_category(UUID(account_id), name, description)
                console.print(f"[green]✓ 카테고리가 추가되었습니다: {category.name} ({category.id})[/green]")

            await db_adapter.close()

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_add())


@app.command("list")
def list_categories(
    account_id: str = typer.Argument(..., help="계정 ID"),
):
    """계정의 분류 카테고리 목록을 조회합니다."""

    async def _list():
        try:
            config = get_config()
            db_adapter = initialize_database(config)
            await db_adapter.initialize()
            factory = AdapterFactory(config)

            async with db_adapter.get_session() as session:
                usecase = factory.create_account_management_usecase(session)
                categories = await usecase.list_categories(UUID(account_id))

            await db_adapter.close()

            if not categories:
                console.print("[yellow]등록된 카테고리가 없습니다.[/yellow]")
                return

            table = Table(title="분류 카테고리")
            table.add_column("ID", style="cyan")
            table.add_column("이름", style="green")
            table.add_column("설명", style="blue")

            for category in categories:
                table.add_row(str(category.id), category.name, category.description or "-")

            console.print(table)

        except Exception as e:
            console.print(f"[red]오류: {str(e)}[/red]")
            raise typer.Exit(1)

    asyncio.run(_list())


if __name__ == "__main__":
    app()
