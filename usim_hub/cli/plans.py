# usim_hub/cli/plans.py
"""套餐描述的翻译、重置与导入命令。"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import questionary
import typer
from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from usim_hub.cli.state import State
from usim_hub.cli.utils import run_with_coordinator
from usim_hub.coordinator import Coordinator
from usim_hub.core.types import NewPlan, TranslationStatusReport
from usim_hub.driver import BatchTranslationDriver, DriverSummary

console = Console()
plans_app = typer.Typer(help="套餐描述的多语言维护")


@plans_app.command("translate-batch")
def plans_translate_batch(
    ctx: typer.Context,
    skip: Annotated[int, typer.Option("--skip", min=0, help="跳过的套餐数量。")] = 0,
    batch_size: Annotated[
        int | None, typer.Option("--batch-size", "-b", min=1, help="本批处理的套餐数量。")
    ] = None,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="重新翻译已有译文的语言。")
    ] = False,
) -> None:
    """在本进程内处理一批套餐，输出与批次接口相同的报告。"""
    state: State = ctx.obj
    report = run_with_coordinator(
        state.config, lambda c: c.translate_plans(skip, batch_size, force=force)
    )
    console.print(f"[bold]{report.message}[/bold]")
    stats = report.stats
    console.print(
        f"进度: {stats.processed}/{stats.total_plans}，剩余 {stats.remaining}，失败 {stats.failed}"
    )
    for error in report.errors:
        console.print(f"[red]  {error}[/red]")
    if report.pagination.has_more:
        console.print(f"[dim]下一批: --skip {report.pagination.next_skip}[/dim]")


def _print_summary(summary: DriverSummary) -> None:
    table = Table(title="批次驱动结果", show_header=True, header_style="bold cyan")
    table.add_column("指标", style="cyan")
    table.add_column("值", style="magenta", justify="right")
    table.add_row("请求批次", str(summary.batches))
    table.add_row("已翻译套餐", str(summary.translated))
    table.add_row("失败套餐", str(summary.failed))
    table.add_row("重试恢复的批次", str(len(summary.recovered_batches)))
    table.add_row("仍失败的批次", str(len(summary.failed_batches)))
    console.print(table)
    for failure in summary.failed_batches:
        console.print(f"[red]  skip={failure.skip}: {failure.error}[/red]")


@plans_app.command("translate-all")
def plans_translate_all(
    ctx: typer.Context,
    start_from: Annotated[
        int, typer.Option("--start-from", min=0, help="起始游标。")
    ] = 0,
    base_url: Annotated[
        str | None, typer.Option("--base-url", help="批次接口所在服务的地址。")
    ] = None,
    batch_size: Annotated[
        int | None, typer.Option("--batch-size", "-b", min=1, help="每次请求的套餐数量。")
    ] = None,
    force: Annotated[bool, typer.Option("--force", "-f")] = False,
) -> None:
    """通过 HTTP 批次接口驱动全部套餐的翻译，失败批次会在最后重试。"""
    state: State = ctx.obj
    updates: dict[str, Any] = {}
    if base_url:
        updates["base_url"] = base_url
    if batch_size:
        updates["batch_size"] = batch_size
    driver = BatchTranslationDriver(
        state.config.driver.model_copy(update=updates), force=force
    )
    summary = asyncio.run(driver.run(start_from))
    _print_summary(summary)
    if not summary.is_complete:
        raise typer.Exit(code=1)


@plans_app.command("reset")
def plans_reset(
    ctx: typer.Context,
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="跳过确认提示，直接删除。")
    ] = False,
) -> None:
    """删除所有启用中套餐的译文，以便重新生成。"""
    state: State = ctx.obj

    async def _run(coordinator: Coordinator) -> int | None:
        status = await coordinator.translation_status()
        existing = sum(status.plan_counts.values())
        if existing == 0:
            console.print("[green]当前没有任何套餐译文。[/green]")
            return 0
        console.print(f"将删除 {status.total_plans} 个套餐的 {existing} 条译文。")
        if not yes:
            proceed = await questionary.confirm(
                "这是一个破坏性操作，是否继续？", default=False
            ).ask_async()
            if not proceed:
                return None
        return await coordinator.reset_plan_translations()

    deleted = run_with_coordinator(state.config, _run, load_engine=False)
    if deleted is None:
        console.print("[red]操作已取消。[/red]")
        return
    console.print(f"[bold green]✅ 已删除 {deleted} 条套餐译文。[/bold green]")


def _print_status(status: TranslationStatusReport) -> None:
    table = Table(title="翻译覆盖情况", show_header=True, header_style="bold cyan")
    table.add_column("语言", style="cyan")
    table.add_column(f"tip 译本 / {status.total_originals}", justify="right")
    table.add_column(f"套餐译文 / {status.total_plans}", justify="right")
    for language, tip_count in status.tip_counts.items():
        table.add_row(language, str(tip_count), str(status.plan_counts.get(language, 0)))
    console.print(table)


@plans_app.command("status")
def plans_status(ctx: typer.Context) -> None:
    """按语言显示 tip 与套餐的翻译覆盖情况。"""
    state: State = ctx.obj
    status = run_with_coordinator(
        state.config, lambda c: c.translation_status(), load_engine=False
    )
    _print_status(status)


@plans_app.command("import")
def plans_import(
    ctx: typer.Context,
    path: Annotated[
        Path, typer.Argument(exists=True, dir_okay=False, help="套餐列表 JSON 文件。")
    ],
) -> None:
    """用 JSON 文件中的套餐整体替换套餐表（单个事务）。"""
    try:
        plans = TypeAdapter(list[NewPlan]).validate_python(
            json.loads(path.read_text(encoding="utf-8"))
        )
    except (json.JSONDecodeError, ValidationError) as e:
        console.print(f"[bold red]❌ 套餐文件格式错误: {e}[/bold red]")
        raise typer.Exit(code=1) from e

    state: State = ctx.obj
    count = run_with_coordinator(
        state.config, lambda c: c.replace_all_plans(plans), load_engine=False
    )
    console.print(f"[bold green]✅ 已导入 {count} 个套餐。[/bold green]")
