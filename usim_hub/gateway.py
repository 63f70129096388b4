# usim_hub/gateway.py
"""
翻译网关：`(text, source, target) -> translated_text`。

网关是外部翻译服务的唯一入口，负责：
- 空白文本直接原样返回，不发起调用；
- 把数据库语言代码映射为翻译服务的语言代码（如 zh -> zh-CN）；
- 进程内缓存；
- 通过 `RetryPolicy` 节流与重试，耗尽后抛出 `TranslationFailedError`。

网关从不把原文当作译文返回。
"""

from typing import Any

import structlog

from usim_hub.cache import TranslationCache
from usim_hub.core.exceptions import APIError, TranslationFailedError
from usim_hub.core.languages import translate_code_for
from usim_hub.core.types import EngineError
from usim_hub.engines.base import BaseTranslationEngine
from usim_hub.policies.retry import RetryExhaustedError, RetryPolicy
from usim_hub.utils import is_blank, truncate

logger = structlog.get_logger(__name__)


class TranslationGateway:
    def __init__(
        self,
        engine: BaseTranslationEngine[Any],
        policy: RetryPolicy,
        source_lang: str = "ko",
        cache: TranslationCache | None = None,
    ):
        self.engine = engine
        self.policy = policy
        self.source_lang = source_lang
        self.cache = cache
        self.calls_made = 0

    async def translate(
        self, text: str, target_lang: str, source_lang: str | None = None
    ) -> str:
        """
        翻译一段文本。

        Raises:
            TranslationFailedError: 重试耗尽或遇到不可重试的服务端错误。
        """
        if is_blank(text):
            return text

        source = source_lang or self.source_lang
        api_target = translate_code_for(target_lang)
        api_source = translate_code_for(source)

        if self.cache is not None:
            cached = await self.cache.get(text, api_source, api_target, self.engine.name)
            if cached is not None:
                return cached

        async def _attempt() -> str:
            self.calls_made += 1
            result = await self.engine.atranslate(text, api_target, api_source)
            if isinstance(result, EngineError):
                raise APIError(result.error_message, is_retryable=result.is_retryable)
            return result.translated_text

        try:
            translated = await self.policy.execute(
                _attempt, operation=f"translate:{source}->{target_lang}"
            )
        except RetryExhaustedError as e:
            logger.error(
                "翻译调用失败",
                target_lang=target_lang,
                attempts=e.attempts,
                text=truncate(text),
                error=str(e.last_error),
            )
            raise TranslationFailedError(
                str(e.last_error), target_lang=target_lang, attempts=e.attempts
            ) from e

        if self.cache is not None:
            await self.cache.put(text, api_source, api_target, self.engine.name, translated)
        return translated
