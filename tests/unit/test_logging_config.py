# tests/unit/test_logging_config.py
"""针对 `usim_hub.logging_config` 的单元测试。"""

import json
import logging
from collections.abc import Generator

import pytest
import structlog

from usim_hub.logging_config import APP_LOGGER_NAME, PanelRenderer, setup_logging


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def test_json_format_emits_one_json_object_per_event(
    capsys: pytest.CaptureFixture[str],
) -> None:
    setup_logging(log_level="DEBUG", log_format="json")

    structlog.get_logger(f"{APP_LOGGER_NAME}.tests").info("批次完成", translated=2, language="vi")

    lines = [line for line in capsys.readouterr().err.splitlines() if line.startswith("{")]
    events = [json.loads(line) for line in lines]
    record = next(e for e in events if e["event"] == "批次完成")
    assert record["translated"] == 2
    assert record["level"] == "info"
    assert record["logger"] == "usim_hub.tests"
    assert "timestamp" in record


def test_app_level_is_applied_to_app_logger_only() -> None:
    setup_logging(log_level="debug", log_format="json")

    assert logging.getLogger(APP_LOGGER_NAME).level == logging.DEBUG
    assert logging.getLogger().level == logging.WARNING


def test_panel_renderer_renders_event_and_context() -> None:
    renderer = PanelRenderer(show_timestamp=False)

    output = renderer(
        None,
        "info",
        {"event": "译本已创建", "level": "info", "logger": "usim_hub.orchestrator", "language": "en"},
    )

    assert "译本已创建" in output
    assert "INFO" in output
    assert "language" in output and "'en'" in output


def test_panel_renderer_uses_single_line_for_debug() -> None:
    renderer = PanelRenderer(show_timestamp=False, show_logger_name=False)

    output = renderer(None, "debug", {"event": "缓存命中", "level": "debug"})

    assert output.strip() == "DEBUG    缓存命中"


def test_panel_renderer_skips_empty_events() -> None:
    assert PanelRenderer()(None, "info", {"event": "", "level": "info"}) == ""
