# tests/integration/conftest.py
"""
集成测试的共享 Fixtures。

内容存储测试默认跑在内存 SQLite 上；设置 `UH_TEST_DATABASE_URL`
（指向一个可随意清空的 PostgreSQL 测试库）后，同一组用例也会在 PostgreSQL 上运行。
"""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from dotenv import load_dotenv
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from tests.helpers.fakes import RecordingSleep
from usim_hub.config import UsimHubConfig
from usim_hub.coordinator import Coordinator
from usim_hub.db.schema import Base
from usim_hub.engines.debug import DebugEngine, DebugEngineConfig
from usim_hub.logging_config import setup_logging
from usim_hub.persistence import SQLAlchemyContentStore

# ---- 全局初始化 ----
load_dotenv()
setup_logging(log_level=os.getenv("TEST_LOG_LEVEL", "WARNING"), log_format="console")

PG_DATABASE_URL = os.getenv("UH_TEST_DATABASE_URL", "")


@pytest_asyncio.fixture(params=["sqlite", pytest.param("postgres", marks=pytest.mark.db)])
async def content_store(
    request: pytest.FixtureRequest,
) -> AsyncGenerator[SQLAlchemyContentStore, None]:
    """为每个测试提供一个已建表的空内容存储，测试结束后删除所有表。"""
    if request.param == "postgres":
        if not PG_DATABASE_URL.startswith("postgresql"):
            pytest.skip("PostgreSQL 集成测试需要 UH_TEST_DATABASE_URL 环境变量。")
        engine = create_async_engine(PG_DATABASE_URL)
        store = SQLAlchemyContentStore(engine)
    else:
        engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        store = SQLAlchemyContentStore(engine, db_path=":memory:")

    await store.connect()
    await store.create_schema()
    try:
        yield store
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await store.close()


@pytest_asyncio.fixture
async def coordinator(
    test_config: UsimHubConfig, content_store: SQLAlchemyContentStore
) -> AsyncGenerator[Coordinator, None]:
    """提供一个已初始化的、使用调试引擎与真实数据库的协调器。"""
    coord = Coordinator(
        test_config,
        content_store,
        engine=DebugEngine(DebugEngineConfig()),
        sleep=RecordingSleep(),
    )
    await coord.initialize()
    yield coord
    await coord.close()
