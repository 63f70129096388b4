# usim_hub/persistence/__init__.py
"""本模块作为持久化层的公共入口，导出内容存储的工厂函数。"""

from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from usim_hub.config import UsimHubConfig
from usim_hub.core.exceptions import ConfigurationError
from usim_hub.core.interfaces import ContentStore

from .store import SQLAlchemyContentStore


def create_content_store(config: UsimHubConfig) -> ContentStore:
    """
    根据配置创建并返回一个内容存储实例。
    这是实例化持久化层的唯一入口。
    """
    db_url = config.database_url

    if config.is_sqlite:
        db_path = config.db_path
        if db_path == ":memory:":
            # 内存库必须共享同一个连接，否则每个会话都会看到一个空库
            engine = create_async_engine(
                db_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_async_engine(db_url)
        return SQLAlchemyContentStore(engine, db_path=db_path)

    if db_url.startswith("postgresql"):
        try:
            import asyncpg  # noqa: F401
        except ImportError as e:
            raise ConfigurationError(
                "要使用 PostgreSQL, 请安装 'asyncpg' 驱动: "
                'pip install "usim-hub[postgres]"'
            ) from e
        engine = create_async_engine(db_url, pool_size=10, max_overflow=5)
        return SQLAlchemyContentStore(engine)

    raise ConfigurationError(f"不支持的数据库类型或驱动: '{db_url}'")


__all__ = [
    "create_content_store",
    "ContentStore",
    "SQLAlchemyContentStore",
]
