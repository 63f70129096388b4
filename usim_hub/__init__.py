# usim_hub/__init__.py
"""usim-hub: 韩国 USIM 指南站点的多语言内容流水线。

提供翻译编排、译文质量校验以及链接与资源一致性检查，
通过 `Coordinator` 统一管理内容存储与翻译引擎的生命周期。
"""

__version__ = "1.0.0"

from .config import EngineName, UsimHubConfig
from .coordinator import Coordinator
from .persistence import SQLAlchemyContentStore, create_content_store

__all__ = [
    "__version__",
    "Coordinator",
    "UsimHubConfig",
    "EngineName",
    "SQLAlchemyContentStore",
    "create_content_store",
]
