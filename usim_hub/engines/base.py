# usim_hub/engines/base.py
"""
本模块定义了所有翻译引擎插件必须继承的抽象基类（ABC）。

引擎只负责"把一段文本翻译成目标语言"这一件事，并以 `EngineSuccess` /
`EngineError` 值的形式返回结果，从不向调用方抛出服务端错误。
重试、节流与缓存都由上层的翻译网关负责。
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

import structlog
from pydantic import BaseModel, Field

from usim_hub.core.types import EngineError, EngineResult, EngineSuccess
from usim_hub.rate_limiter import RateLimiter

_ConfigType = TypeVar("_ConfigType", bound="BaseEngineConfig")

logger = structlog.get_logger(__name__)


class BaseEngineConfig(BaseModel):
    """所有引擎配置模型的基类，提供了通用的速率控制选项。"""

    rpm: int | None = Field(
        default=None, description="每分钟最大请求数 (Requests Per Minute)", gt=0
    )
    rps: int | None = Field(
        default=None, description="每秒最大请求数 (Requests Per Second)", gt=0
    )


class BaseTranslationEngine(ABC, Generic[_ConfigType]):
    """翻译引擎的纯异步抽象基类，内置令牌桶速率限制。"""

    CONFIG_MODEL: type[_ConfigType]
    VERSION: str = "1.0.0"

    def __init__(self, config: _ConfigType):
        self.config = config
        self._rate_limiter: RateLimiter | None = None
        self.initialized: bool = False

        if config.rpm:
            self._rate_limiter = RateLimiter.per_minute(config.rpm)
        elif config.rps:
            self._rate_limiter = RateLimiter.per_second(config.rps)

    @property
    def name(self) -> str:
        """从类名自动推断引擎的名称。"""
        return self.__class__.__name__.replace("Engine", "").lower()

    async def initialize(self) -> None:
        """引擎的异步初始化钩子，用于建立 HTTP 客户端等。"""
        self.initialized = True

    async def close(self) -> None:
        """引擎的异步关闭钩子，用于安全释放资源。"""
        self.initialized = False

    @abstractmethod
    async def _execute_translation(
        self, text: str, target_lang: str, source_lang: str
    ) -> EngineResult:
        """[子类实现] 真正执行单次翻译的逻辑。`target_lang` 已是翻译服务的语言代码。"""
        ...

    async def atranslate(
        self, text: str, target_lang: str, source_lang: str
    ) -> EngineResult:
        """[模板方法] 执行单次翻译，应用速率限制，并把意外异常转换为可重试的错误。"""
        if self._rate_limiter:
            await self._rate_limiter.acquire()
        try:
            result = await self._execute_translation(text, target_lang, source_lang)
        except Exception as e:
            logger.warning(
                "引擎执行时出现未处理的异常", engine=self.name, error=str(e)
            )
            return EngineError(
                error_message=f"引擎执行异常: {e.__class__.__name__}: {e}",
                is_retryable=True,
            )
        if isinstance(result, EngineSuccess) and not result.translated_text.strip():
            return EngineError(error_message="翻译服务返回了空内容。", is_retryable=True)
        return result
