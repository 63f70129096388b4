# usim_hub/cli/tips.py
"""tip 内容的翻译、质量与一致性命令。"""

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from usim_hub.cli.state import State
from usim_hub.cli.utils import run_with_coordinator
from usim_hub.coordinator import Coordinator
from usim_hub.core.types import (
    AssetReport,
    IntegrityIssue,
    QualityReport,
    TipBatchReport,
)
from usim_hub.utils import truncate

console = Console()
tips_app = typer.Typer(help="tip 内容的翻译与维护")


def _print_batch(report: TipBatchReport) -> None:
    table = Table(title=report.message, show_header=True, header_style="bold cyan")
    table.add_column("原文", style="cyan", max_width=40)
    table.add_column("结果", style="magenta")
    table.add_column("新增语言")
    table.add_column("失败语言", style="red")
    for item in report.items:
        table.add_row(
            truncate(item.title, 40),
            item.outcome.value,
            ", ".join(item.created_languages) or "-",
            ", ".join(item.failed_languages) or "-",
        )
    console.print(table)
    stats = report.stats
    console.print(
        f"进度: {stats.processed}/{stats.total_originals}，剩余 {stats.remaining}，"
        f"新增译本 {stats.created}，失败 {stats.failed}"
    )


def _print_issues(title: str, issues: list[IntegrityIssue]) -> None:
    if not issues:
        console.print(f"[green]✅ {title}：未发现问题。[/green]")
        return
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("类型", style="yellow")
    table.add_column("内容项 ID", style="cyan")
    table.add_column("语言")
    table.add_column("详情")
    for issue in issues:
        table.add_row(issue.kind, issue.item_id, issue.language or "-", issue.detail)
    console.print(table)


def _print_quality(report: QualityReport) -> None:
    console.print(f"共扫描 {report.scanned} 个字段。")
    if report.is_clean:
        console.print("[green]✅ 未发现源语言残留。[/green]")
        return
    table = Table(title="被标记的译文", show_header=True, header_style="bold cyan")
    table.add_column("语言", style="cyan")
    table.add_column("数量", style="magenta", justify="right")
    for language, count in sorted(report.by_language().items()):
        table.add_row(language, str(count))
    console.print(table)


def _print_assets(report: AssetReport) -> None:
    console.print(
        f"翻译组 {report.groups} 个，修复原文缩略图 {report.repaired_originals} 个，"
        f"更新译本 {report.updated} 个。"
    )


@tips_app.command("translate")
def tips_translate(
    ctx: typer.Context,
    skip: Annotated[int, typer.Option("--skip", min=0, help="跳过的原文数量。")] = 0,
    batch_size: Annotated[
        int | None, typer.Option("--batch-size", "-b", min=1, help="每批处理的原文数量。")
    ] = None,
    all_batches: Annotated[
        bool, typer.Option("--all", help="从头处理全部原文，直到没有更多批次。")
    ] = False,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="即使翻译组已完整也重新检查。")
    ] = False,
) -> None:
    """为原文补齐缺失语言的译本。"""
    state: State = ctx.obj

    async def _run(coordinator: Coordinator) -> list[TipBatchReport]:
        if all_batches:
            return await coordinator.translate_all_tips(batch_size, force=force)
        return [await coordinator.translate_tips(skip, batch_size, force=force)]

    for report in run_with_coordinator(state.config, _run):
        _print_batch(report)
        for error in report.errors:
            console.print(f"[red]  {error}[/red]")


@tips_app.command("check-quality")
def tips_check_quality(ctx: typer.Context) -> None:
    """扫描译文中残留的韩文（只读）。"""
    state: State = ctx.obj
    report = run_with_coordinator(state.config, lambda c: c.check_quality())
    _print_quality(report)


@tips_app.command("fix-quality")
def tips_fix_quality(ctx: typer.Context) -> None:
    """重新翻译所有被标记的译文。"""
    state: State = ctx.obj

    async def _run(coordinator: Coordinator):
        report = await coordinator.check_quality()
        _print_quality(report)
        return await coordinator.fix_quality(report)

    result = run_with_coordinator(state.config, _run)
    console.print(
        f"[bold green]修复 {result.fixed} 项[/bold green]，[red]失败 {result.failed} 项[/red]"
    )
    for error in result.errors:
        console.print(f"[red]  {error}[/red]")


@tips_app.command("unify-images")
def tips_unify_images(ctx: typer.Context) -> None:
    """让每个翻译组的译本使用原文的缩略图。"""
    state: State = ctx.obj
    report = run_with_coordinator(
        state.config, lambda c: c.unify_thumbnails(), load_engine=False
    )
    _print_assets(report)


@tips_app.command("fix-images")
def tips_fix_images(ctx: typer.Context) -> None:
    """替换失效或占位的原文缩略图，然后统一翻译组。"""
    state: State = ctx.obj
    report = run_with_coordinator(
        state.config, lambda c: c.repair_broken_thumbnails(), load_engine=False
    )
    _print_assets(report)


@tips_app.command("audit")
def tips_audit(ctx: typer.Context) -> None:
    """检查翻译组结构（孤立译本、嵌套、slug 冲突等）。"""
    state: State = ctx.obj
    issues = run_with_coordinator(
        state.config, lambda c: c.audit_groups(), load_engine=False
    )
    _print_issues("翻译组审计", issues)


@tips_app.command("check-links")
def tips_check_links(
    ctx: typer.Context,
    language: Annotated[
        str | None, typer.Option("--lang", "-l", help="只检查该语言的内容。")
    ] = None,
) -> None:
    """查找指向不存在或未发布内容的站内链接。"""
    state: State = ctx.obj
    issues = run_with_coordinator(
        state.config, lambda c: c.check_links(language), load_engine=False
    )
    _print_issues("站内链接检查", issues)


@tips_app.command("link")
def tips_link(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="要插入站内链接的内容项 ID。")],
    keyword: Annotated[str, typer.Option("--keyword", "-k", help="主关键词。")],
    related: Annotated[
        list[str] | None, typer.Option("--related", "-r", help="附加关键词，可重复。")
    ] = None,
) -> None:
    """为一篇内容插入相关文章链接与“相关文章”区块。"""
    state: State = ctx.obj
    linked = run_with_coordinator(
        state.config,
        lambda c: c.link_related(item_id, keyword, related or []),
        load_engine=False,
    )
    if not linked:
        console.print("[yellow]没有找到相关内容，正文保持不变。[/yellow]")
        return
    table = Table(title="已关联的内容", show_header=True, header_style="bold cyan")
    table.add_column("slug", style="cyan")
    table.add_column("标题")
    table.add_column("浏览量", justify="right")
    for item in linked:
        table.add_row(item.slug, item.title, str(item.view_count))
    console.print(table)
