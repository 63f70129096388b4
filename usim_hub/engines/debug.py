# usim_hub/engines/debug.py
"""提供一个用于开发、测试与演练（dry run）的确定性调试翻译引擎。"""

import hashlib
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from usim_hub.core.types import EngineError, EngineResult, EngineSuccess
from usim_hub.engines.base import BaseEngineConfig, BaseTranslationEngine


class DebugEngineConfig(BaseSettings, BaseEngineConfig):
    """Debug 引擎的配置模型。"""

    model_config = SettingsConfigDict(env_prefix="UH_DEBUG_", extra="ignore")

    mode: Literal["SUCCESS", "FAIL", "ECHO"] = Field(
        default="SUCCESS", description="ECHO 原样返回原文，用于模拟源语言泄漏"
    )
    fail_on_text: str | None = None
    fail_times: int = Field(default=0, ge=0, description="前 N 次调用失败，之后成功")
    fail_is_retryable: bool = True
    translation_map: dict[str, str] = Field(default_factory=dict)


class DebugEngine(BaseTranslationEngine[DebugEngineConfig]):
    """
    一个简单的调试翻译引擎实现。

    默认输出形如 `[en] 3f2a9c01d4` 的文本：不含任何韩文字符，
    对同一 (文本, 语言) 总是返回相同结果。
    """

    CONFIG_MODEL = DebugEngineConfig
    VERSION = "1.0.0"

    def __init__(self, config: DebugEngineConfig):
        super().__init__(config)
        self.calls: list[tuple[str, str]] = []

    async def _execute_translation(
        self, text: str, target_lang: str, source_lang: str
    ) -> EngineResult:
        self.calls.append((text, target_lang))

        if self.config.mode == "FAIL":
            return EngineError(
                error_message="DebugEngine is in FAIL mode.",
                is_retryable=self.config.fail_is_retryable,
            )
        if len(self.calls) <= self.config.fail_times:
            return EngineError(
                error_message=f"模拟失败：第 {len(self.calls)} 次调用",
                is_retryable=self.config.fail_is_retryable,
            )
        if self.config.fail_on_text and self.config.fail_on_text in text:
            return EngineError(
                error_message=f"模拟失败：检测到配置的文本 '{self.config.fail_on_text}'",
                is_retryable=self.config.fail_is_retryable,
            )
        if self.config.mode == "ECHO":
            return EngineSuccess(translated_text=text)

        if text in self.config.translation_map:
            return EngineSuccess(translated_text=self.config.translation_map[text])
        digest = hashlib.sha1(f"{target_lang}|{text}".encode("utf-8")).hexdigest()[:10]
        return EngineSuccess(translated_text=f"[{target_lang}] {digest}")
