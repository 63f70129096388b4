# usim_hub/engines/openai.py
"""提供一个使用 OpenAI Chat Completions API 的翻译引擎。"""

from typing import Any

import httpx
import structlog
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from usim_hub.core.exceptions import ConfigurationError
from usim_hub.core.languages import LANGUAGES_BY_CODE
from usim_hub.core.types import EngineError, EngineResult, EngineSuccess
from usim_hub.engines.base import BaseEngineConfig, BaseTranslationEngine

_AsyncOpenAIClient: type | None = None
try:
    from openai import (
        APIConnectionError,
        APIStatusError,
        AsyncOpenAI,
        InternalServerError,
        RateLimitError,
    )

    _AsyncOpenAIClient = AsyncOpenAI
except ImportError:
    pass

logger = structlog.get_logger(__name__)


class OpenAIEngineConfig(BaseSettings, BaseEngineConfig):
    """OpenAI 引擎的配置模型。"""

    model_config = SettingsConfigDict(env_prefix="UH_OPENAI_", extra="ignore")

    api_key: SecretStr | None = None
    endpoint: str = "https://api.openai.com/v1"
    model: str = "gpt-4o-mini"
    temperature: float = 0.1
    system_prompt: str = (
        "You are a professional translator for a website that helps foreign "
        "residents in Korea choose SIM cards and mobile plans. Keep HTML tags, "
        "URLs, numbers and prices unchanged."
    )
    prompt_template: str = (
        "Translate the following text from {source_lang} to {target_lang}. "
        "Return only the translated text, without any additional explanations "
        "or quotes.\n\n{text}"
    )
    timeout_total: float = Field(default=60.0, gt=0)
    timeout_connect: float = Field(default=5.0, gt=0)


def _language_name(code: str) -> str:
    lang = LANGUAGES_BY_CODE.get(code.split("-")[0])
    return lang.name if lang else code


class OpenAIEngine(BaseTranslationEngine[OpenAIEngineConfig]):
    """使用 OpenAI API 的翻译引擎实现。SDK 自身的重试被关闭，由翻译网关统一重试。"""

    CONFIG_MODEL = OpenAIEngineConfig
    VERSION = "1.0.0"

    def __init__(self, config: OpenAIEngineConfig):
        super().__init__(config)
        if _AsyncOpenAIClient is None:
            raise ImportError(
                "要使用 OpenAIEngine, 请安装 'openai' 库: "
                'pip install "usim-hub[openai]"'
            )
        if not config.api_key:
            raise ConfigurationError(
                "OpenAI 引擎配置错误: 缺少 API 密钥 (UH_OPENAI_API_KEY)。"
            )
        self.client = _AsyncOpenAIClient(
            api_key=config.api_key.get_secret_value(),
            base_url=config.endpoint,
            timeout=httpx.Timeout(config.timeout_total, connect=config.timeout_connect),
            max_retries=0,
        )

    async def close(self) -> None:
        await self.client.close()
        await super().close()

    async def _execute_translation(
        self, text: str, target_lang: str, source_lang: str
    ) -> EngineResult:
        prompt = self.config.prompt_template.format(
            text=text,
            source_lang=_language_name(source_lang),
            target_lang=_language_name(target_lang),
        )
        messages: list[dict[str, Any]] = [
            {"role": "system", "content": self.config.system_prompt},
            {"role": "user", "content": prompt},
        ]
        try:
            response = await self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                temperature=self.config.temperature,
            )
        except (RateLimitError, InternalServerError, APIConnectionError) as e:
            return EngineError(error_message=str(e), is_retryable=True)
        except APIStatusError as e:
            return EngineError(error_message=f"API Error: {e}", is_retryable=False)

        if not response.choices:
            return EngineError(
                error_message="API 返回了空的 'choices' 列表。", is_retryable=True
            )
        content = response.choices[0].message.content or ""
        return EngineSuccess(translated_text=content.strip().strip('"'))
