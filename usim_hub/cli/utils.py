# usim_hub/cli/utils.py
"""CLI 命令共享的工具函数。"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
import typer
from rich.console import Console

from usim_hub.config import UsimHubConfig
from usim_hub.coordinator import Coordinator
from usim_hub.core.exceptions import UsimHubError
from usim_hub.persistence import create_content_store

T = TypeVar("T")

logger = structlog.get_logger(__name__)
console = Console()


def create_coordinator(config: UsimHubConfig) -> Coordinator:
    """根据配置创建一个未初始化的 Coordinator。"""
    return Coordinator(config, create_content_store(config))


def run_with_coordinator(
    config: UsimHubConfig,
    func: Callable[[Coordinator], Awaitable[T]],
    load_engine: bool = True,
) -> T:
    """
    在新的事件循环中初始化协调器、执行 `func`，并保证协调器被关闭。

    任何 usim-hub 错误都会以红色提示输出，并以退出码 1 结束命令。
    """
    coordinator = create_coordinator(config)

    async def _run() -> T:
        await coordinator.initialize(load_engine=load_engine)
        try:
            return await func(coordinator)
        finally:
            await coordinator.close()

    try:
        return asyncio.run(_run())
    except UsimHubError as e:
        logger.error("命令执行失败", error=str(e))
        console.print(f"[bold red]❌ 执行失败: {e}[/bold red]")
        raise typer.Exit(code=1) from e
