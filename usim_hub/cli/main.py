# usim_hub/cli/main.py
"""usim-hub CLI 的主入口点。"""

from typing import Annotated

import typer
from rich.console import Console

import usim_hub
from usim_hub.cli.db import db_app
from usim_hub.cli.plans import plans_app
from usim_hub.cli.state import State
from usim_hub.cli.tips import tips_app
from usim_hub.config import UsimHubConfig
from usim_hub.engine_registry import discover_engines
from usim_hub.logging_config import setup_logging

app = typer.Typer(
    name="usim-hub",
    help="🌏 usim-hub: USIM 指南站点的多语言内容流水线。",
    add_completion=False,
    no_args_is_help=True,
)

app.add_typer(db_app, name="db")
app.add_typer(tips_app, name="tips")
app.add_typer(plans_app, name="plans")

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"usim-hub [bold cyan]v{usim_hub.__version__}[/bold cyan]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="显示版本信息并退出。",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    主回调函数，在任何子命令执行前运行。

    日志必须先于引擎发现配置好，否则发现阶段的日志会以默认格式输出。
    """
    try:
        config = UsimHubConfig()
        setup_logging(log_level=config.logging.level, log_format=config.logging.format)
        discover_engines()
        ctx.obj = State(config=config)
    except Exception as e:
        console.print("[bold red]❌ 启动失败：无法加载配置或初始化日志。[/bold red]")
        console.print(f"[dim]{e}[/dim]")
        raise typer.Exit(code=1) from e


@app.command("serve")
def serve(
    ctx: typer.Context,
    host: Annotated[str | None, typer.Option("--host", help="监听地址。")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="监听端口。")] = None,
) -> None:
    """启动批次触发接口（FastAPI + uvicorn）。"""
    import uvicorn

    from usim_hub.api import create_app

    state: State = ctx.obj
    server = state.config.server
    uvicorn.run(
        create_app(state.config),
        host=host or server.host,
        port=port or server.port,
        log_config=None,
    )
