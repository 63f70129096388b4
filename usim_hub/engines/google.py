# usim_hub/engines/google.py
"""提供一个通过 httpx 调用 Google Cloud Translation v2 REST 接口的翻译引擎。"""

import re
from typing import Any

import httpx
import structlog
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from usim_hub.core.exceptions import ConfigurationError
from usim_hub.core.types import EngineError, EngineResult, EngineSuccess
from usim_hub.engines.base import BaseEngineConfig, BaseTranslationEngine

logger = structlog.get_logger(__name__)

_HTML_TAG = re.compile(r"<[a-zA-Z/][^>]*>")
# 429 与 5xx 视为瞬时错误
_RETRYABLE_STATUS = {408, 429, 500, 502, 503, 504}


class GoogleEngineConfig(BaseSettings, BaseEngineConfig):
    """Google 翻译引擎的配置模型。"""

    model_config = SettingsConfigDict(env_prefix="UH_GOOGLE_", extra="ignore")

    api_key: SecretStr | None = None
    endpoint: str = "https://translation.googleapis.com/language/translate/v2"
    timeout_total: float = Field(default=30.0, gt=0)
    timeout_connect: float = Field(default=5.0, gt=0)


class GoogleEngine(BaseTranslationEngine[GoogleEngineConfig]):
    """Google Cloud Translation (v2, API Key 认证) 引擎。"""

    CONFIG_MODEL = GoogleEngineConfig
    VERSION = "1.0.0"

    def __init__(
        self,
        config: GoogleEngineConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config)
        if not config.api_key or not config.api_key.get_secret_value().strip():
            raise ConfigurationError(
                "Google 引擎配置错误: 缺少 API 密钥 (UH_GOOGLE_API_KEY)。"
            )
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_total, connect=config.timeout_connect),
            transport=transport,
        )

    async def close(self) -> None:
        if not self.client.is_closed:
            await self.client.aclose()
            logger.info("Google 引擎的 HTTP 客户端已关闭。")
        await super().close()

    @staticmethod
    def detect_format(text: str) -> str:
        """含有 HTML 标签的文本以 html 模式提交，保留标签结构。"""
        return "html" if _HTML_TAG.search(text) else "text"

    async def _execute_translation(
        self, text: str, target_lang: str, source_lang: str
    ) -> EngineResult:
        assert self.config.api_key is not None
        payload: dict[str, Any] = {
            "q": text,
            "source": source_lang,
            "target": target_lang,
            "format": self.detect_format(text),
        }
        try:
            response = await self.client.post(
                self.config.endpoint,
                params={"key": self.config.api_key.get_secret_value()},
                json=payload,
            )
        except httpx.HTTPError as e:
            return EngineError(error_message=f"网络错误: {e}", is_retryable=True)

        if response.status_code != 200:
            return EngineError(
                error_message=f"API Error {response.status_code}: {self._error_message(response)}",
                is_retryable=response.status_code in _RETRYABLE_STATUS,
            )

        try:
            translations = response.json()["data"]["translations"]
            translated_text = translations[0]["translatedText"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            return EngineError(
                error_message=f"无法解析翻译服务的响应: {e}", is_retryable=True
            )
        return EngineSuccess(translated_text=str(translated_text))

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            return str(body["error"].get("message", body["error"]))
        return str(body)[:200]
