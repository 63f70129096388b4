# usim_hub/core/__init__.py
"""
本核心包定义了 usim-hub 系统中最基础、最稳定的构建块。

这里包含了系统的核心数据类型、语言表、接口协议和自定义异常，它们共同构成了
整个应用的"契约"。所有其他模块都依赖于此核心包，但本包不依赖于
项目中的任何其他模块。
"""

from .exceptions import (
    APIError,
    ConfigurationError,
    DatabaseError,
    DataIntegrityError,
    EngineNotFoundError,
    TranslationFailedError,
    UsimHubError,
)
from .interfaces import ContentStore
from .languages import (
    DEFAULT_TARGET_CODES,
    SOURCE_LANGUAGE,
    TARGET_LANGUAGES,
    Language,
    get_language,
)
from .types import (
    ContentItem,
    EngineError,
    EngineResult,
    EngineSuccess,
    ItemFilter,
    ItemKind,
    PlanRecord,
    TranslationGroup,
)

__all__ = [
    # from exceptions.py
    "UsimHubError",
    "ConfigurationError",
    "EngineNotFoundError",
    "DatabaseError",
    "APIError",
    "TranslationFailedError",
    "DataIntegrityError",
    # from interfaces.py
    "ContentStore",
    # from languages.py
    "Language",
    "SOURCE_LANGUAGE",
    "TARGET_LANGUAGES",
    "DEFAULT_TARGET_CODES",
    "get_language",
    # from types.py
    "ContentItem",
    "ItemFilter",
    "ItemKind",
    "TranslationGroup",
    "PlanRecord",
    "EngineSuccess",
    "EngineError",
    "EngineResult",
]
