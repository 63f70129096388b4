# usim_hub/cli/db.py
"""处理数据库相关操作的 CLI 命令。"""

import asyncio
from pathlib import Path

import structlog
import typer
from rich.console import Console

from usim_hub.cli.state import State
from usim_hub.core.exceptions import UsimHubError
from usim_hub.persistence import create_content_store

logger = structlog.get_logger(__name__)
console = Console()
db_app = typer.Typer(help="数据库管理命令")


async def _init_schema(state: State) -> None:
    store = create_content_store(state.config)
    await store.connect()
    try:
        await store.create_schema()
    finally:
        await store.close()


@db_app.command("init")
def db_init(ctx: typer.Context) -> None:
    """按当前模型创建所有数据表（已存在的表保持不变）。"""
    state: State = ctx.obj
    if state.config.is_sqlite:
        db_path = state.config.db_path
        if db_path == ":memory:":
            console.print("[yellow]警告：内存数据库无法持久化数据表。[/yellow]")
            raise typer.Exit()
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        console.print(f"数据库路径: [cyan]{Path(db_path).resolve()}[/cyan]")

    try:
        asyncio.run(_init_schema(state))
    except UsimHubError as e:
        logger.error("初始化数据库失败", error=str(e))
        console.print("[bold red]❌ 数据库初始化失败！请检查日志获取详细信息。[/bold red]")
        raise typer.Exit(code=1) from e
    console.print("[bold green]✅ 数据表已就绪。[/bold green]")
