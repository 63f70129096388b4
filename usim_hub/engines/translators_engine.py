# usim_hub/engines/translators_engine.py
"""提供一个使用 `translators` 库（免费公共翻译服务）的翻译引擎，适合小规模或演示环境。"""

import asyncio
from typing import Any

import structlog

from usim_hub.core.exceptions import APIError
from usim_hub.core.types import EngineError, EngineResult, EngineSuccess
from usim_hub.engines.base import BaseEngineConfig, BaseTranslationEngine

logger = structlog.get_logger(__name__)


class TranslatorsEngineConfig(BaseEngineConfig):
    """Translators 引擎的配置。"""

    provider: str = "google"


class TranslatorsEngine(BaseTranslationEngine[TranslatorsEngineConfig]):
    """一个使用 `translators` 库的异步引擎，同步调用在线程池中执行。"""

    CONFIG_MODEL = TranslatorsEngineConfig
    VERSION = "1.0.0"

    def __init__(self, config: TranslatorsEngineConfig):
        super().__init__(config)
        self.ts_module: Any | None = None

    async def initialize(self) -> None:
        # 'translators' 在导入时会访问网络，惰性加载
        if self.ts_module is None:
            try:
                import translators as ts
            except ImportError as e:
                raise ImportError(
                    "要使用 TranslatorsEngine, 请安装 'translators' 库: "
                    'pip install "usim-hub[translators]"'
                ) from e
            except Exception as e:
                raise APIError(f"Translators 库初始化失败: {e}") from e
            self.ts_module = ts
            logger.info("'translators' 库加载成功。", provider=self.config.provider)
        await super().initialize()

    async def _execute_translation(
        self, text: str, target_lang: str, source_lang: str
    ) -> EngineResult:
        if self.ts_module is None:
            await self.initialize()
        ts_lib = self.ts_module
        provider = self.config.provider

        def _translate_sync() -> str:
            return str(
                ts_lib.translate_text(
                    query_text=text,
                    translator=provider,
                    from_language=source_lang,
                    to_language=target_lang,
                )
            )

        try:
            translated_text = await asyncio.to_thread(_translate_sync)
        except Exception as e:
            return EngineError(
                error_message=f"Translators({provider}) Error: {e}", is_retryable=True
            )
        return EngineSuccess(translated_text=translated_text)
