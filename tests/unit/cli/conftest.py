# tests/unit/cli/conftest.py
"""CLI 测试共享的 Fixtures：每个测试使用 tmp_path 下独立的 SQLite 文件。"""

import asyncio
from collections.abc import Callable, Coroutine
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from usim_hub.cli import app
from usim_hub.config import UsimHubConfig
from usim_hub.core.interfaces import ContentStore
from usim_hub.persistence import create_content_store


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'data' / 'hub.db'}"


@pytest.fixture
def cli_env(db_url: str) -> dict[str, str]:
    return {
        "UH_DATABASE_URL": db_url,
        "UH_ACTIVE_ENGINE": "debug",
        "UH_TARGET_LANGS": '["en", "vi"]',
        "UH_RETRY_POLICY__CALL_DELAY": "0",
        "UH_LOGGING__LEVEL": "WARNING",
    }


@pytest.fixture
def invoke(cli_env: dict[str, str]) -> Callable[..., Any]:
    runner = CliRunner()

    def _invoke(*args: str, env: dict[str, str] | None = None, **kwargs: Any) -> Any:
        return runner.invoke(app, list(args), env={**cli_env, **(env or {})}, **kwargs)

    return _invoke


@pytest.fixture
def seed(db_url: str, invoke: Callable[..., Any]) -> Callable[..., Any]:
    """先通过 `db init` 建表，再在同一个数据库文件上执行任意异步写入。"""
    result = invoke("db", "init")
    assert result.exit_code == 0, result.output

    def _seed(action: Callable[[ContentStore], Coroutine[Any, Any, Any]]) -> Any:
        async def _run() -> Any:
            store = create_content_store(UsimHubConfig(_env_file=None, database_url=db_url))
            await store.connect()
            try:
                return await action(store)
            finally:
                await store.close()

        return asyncio.run(_run())

    return _seed
