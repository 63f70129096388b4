# usim_hub/logging_config.py
"""
本模块负责集中配置项目的日志系统。

console 格式通过 Rich 渲染为信息块式的面板（DEBUG 级别为单行），
json 格式输出机器可读的单行 JSON，适合在 cron / 容器中运行批处理时收集。
"""

import logging
from collections.abc import MutableMapping
from typing import Any, Literal

import structlog
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from structlog.typing import Processor

APP_LOGGER_NAME = "usim_hub"


class PanelRenderer:
    """将 structlog 事件渲染为 Rich 面板的处理器；键值上下文以对齐的表格展示。"""

    _LEVEL_STYLES = {
        "debug": ("blue", "DEBUG   "),
        "info": ("green", "INFO    "),
        "warning": ("yellow", "WARNING "),
        "error": ("bold red", "ERROR   "),
        "critical": ("bold magenta", "CRITICAL"),
    }

    def __init__(
        self,
        kv_truncate_at: int = 120,
        show_timestamp: bool = True,
        show_logger_name: bool = True,
        kv_key_width: int = 15,
        panel_levels: frozenset[str] = frozenset({"info", "warning", "error", "critical"}),
    ):
        self._console = Console()
        self._kv_truncate_at = kv_truncate_at
        self._show_timestamp = show_timestamp
        self._show_logger_name = show_logger_name
        self._kv_key_width = kv_key_width
        self._panel_levels = panel_levels

    def __call__(
        self, logger: Any, name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        event = str(event_dict.pop("event", "")).strip()
        if not event:
            return ""

        timestamp = str(event_dict.pop("timestamp", ""))
        level = str(event_dict.pop("level", "info")).lower()
        logger_name = str(event_dict.pop("logger", "unknown"))
        style, level_text = self._LEVEL_STYLES.get(level, ("default", level.upper()))

        if level in self._panel_levels:
            renderable: RenderableType = self._panel(
                timestamp, level_text, style, logger_name, event, event_dict
            )
        else:
            renderable = self._line(timestamp, level_text, style, logger_name, event)

        with self._console.capture() as capture:
            self._console.print(renderable)
        return capture.get().rstrip()

    def _format_value(self, value: Any) -> str:
        value_repr = repr(value)
        if len(value_repr) > self._kv_truncate_at:
            value_repr = value_repr[: self._kv_truncate_at - 1] + "…"
        return value_repr

    def _panel(
        self,
        timestamp: str,
        level_text: str,
        border_style: str,
        logger_name: str,
        event: str,
        kv: MutableMapping[str, Any],
    ) -> Panel:
        title_parts = [f"[{border_style}]{level_text}[/]"]
        if self._show_logger_name:
            title_parts.append(f"[cyan dim]({logger_name})[/]")

        renderables: list[RenderableType] = [Text(event)]
        if kv:
            kv_table = Table(show_header=False, show_edge=False, box=None, padding=(0, 1))
            kv_table.add_column(style="dim", justify="right", width=self._kv_key_width)
            kv_table.add_column(style="bright_white", overflow="fold")
            for key, value in sorted(kv.items()):
                kv_table.add_row(f"{key} :", Text(self._format_value(value)))
            renderables.append(kv_table)

        return Panel(
            Group(*renderables),
            title=Text.from_markup(" ".join(title_parts)),
            title_align="left",
            border_style=border_style,
            subtitle=Text(timestamp, style="dim") if self._show_timestamp and timestamp else None,
            subtitle_align="right",
            expand=False,
        )

    def _line(
        self, timestamp: str, level_text: str, style: str, logger_name: str, event: str
    ) -> Text:
        line = Text()
        if self._show_timestamp and timestamp:
            line.append(timestamp, style="dim")
            line.append(" ")
        line.append(level_text, style=style)
        line.append(" ")
        line.append(event)
        if self._show_logger_name:
            line.append(f" ({logger_name})", style="cyan dim")
        return line


def setup_logging(
    log_level: str = "INFO",
    log_format: Literal["json", "console"] = "console",
    show_timestamp: bool = True,
    show_logger_name: bool = True,
) -> None:
    """
    配置全局的 structlog 日志系统。这是整个应用的日志配置入口。

    Args:
        log_level: 本项目日志记录器的最低级别 (DEBUG, INFO, WARNING, ERROR, CRITICAL)。
        log_format: 'console' 用于终端交互，'json' 用于生产环境的日志采集。
        show_timestamp: 是否在日志中包含时间戳。
        show_logger_name: 是否在日志中包含记录器的名称 (例如 'usim_hub.orchestrator')。

    """
    timestamper = (
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False)
        if log_format == "console"
        else structlog.processors.TimeStamper(fmt="iso", utc=True)
    )
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        timestamper,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if log_format == "console":
        processors.append(
            PanelRenderer(show_timestamp=show_timestamp, show_logger_name=show_logger_name)
        )
    else:
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()

    class PassthroughFormatter(logging.Formatter):
        """直接输出 structlog 已经渲染好的字符串。"""

        def format(self, record: logging.LogRecord) -> str:
            return str(record.getMessage())

    handler.setFormatter(PassthroughFormatter())

    root_logger = logging.getLogger()
    if root_logger.hasHandlers():
        root_logger.handlers.clear()
    root_logger.addHandler(handler)
    # 第三方库（httpx、sqlalchemy）只输出警告以上
    root_logger.setLevel(logging.WARNING)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.setLevel(log_level.upper())
    app_logger.propagate = True

    structlog.get_logger(f"{APP_LOGGER_NAME}.logging_config").debug(
        "日志系统已配置完成。", log_format=log_format, app_log_level=log_level.upper()
    )
