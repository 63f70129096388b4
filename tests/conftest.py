# tests/conftest.py
"""项目全局共享的测试 Fixtures。"""

from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio
from pytest_mock import MockerFixture
from rich.console import Console

from tests.helpers.fakes import InMemoryContentStore, RecordingSleep
from usim_hub.config import EngineName, UsimHubConfig
from usim_hub.engines.debug import DebugEngine, DebugEngineConfig
from usim_hub.gateway import TranslationGateway
from usim_hub.orchestrator import TranslationOrchestrator
from usim_hub.policies.retry import RetryPolicy

TARGET_LANGS = ["en", "vi"]


@pytest.fixture(scope="session", autouse=True)
def disable_rich_colors_for_tests(
    session_mocker: MockerFixture,
) -> Generator[None, None, None]:
    """全局禁用 rich 库的颜色输出，以确保测试结果的确定性。"""
    original_init = Console.__init__

    def new_init(self: Console, *args: Any, **kwargs: Any) -> None:
        kwargs["force_terminal"] = False
        kwargs["color_system"] = None
        original_init(self, *args, **kwargs)

    session_mocker.patch("rich.console.Console.__init__", new=new_init)
    yield


@pytest.fixture
def test_config() -> UsimHubConfig:
    """使用内存数据库与调试引擎的配置，不读取任何外部凭据。"""
    return UsimHubConfig(
        database_url="sqlite+aiosqlite:///:memory:",
        active_engine=EngineName.DEBUG,
        target_langs=TARGET_LANGS,
        cache_config={"enabled": False},
        retry_policy={"max_attempts": 3, "backoff_base": 1.0, "call_delay": 0.25},
    )


@pytest.fixture
def store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def debug_engine() -> DebugEngine:
    return DebugEngine(DebugEngineConfig())


@pytest.fixture
def gateway(debug_engine: DebugEngine, sleep: RecordingSleep) -> TranslationGateway:
    policy = RetryPolicy(max_attempts=3, backoff_base=1.0, call_delay=0.25, sleep=sleep)
    return TranslationGateway(debug_engine, policy, source_lang="ko")


@pytest.fixture
def orchestrator(
    store: InMemoryContentStore, gateway: TranslationGateway
) -> TranslationOrchestrator:
    return TranslationOrchestrator(store, gateway, target_langs=TARGET_LANGS)


@pytest_asyncio.fixture
async def initialized_debug_engine(
    debug_engine: DebugEngine,
) -> AsyncGenerator[DebugEngine, None]:
    await debug_engine.initialize()
    yield debug_engine
    await debug_engine.close()
