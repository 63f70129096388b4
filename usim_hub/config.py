# usim_hub/config.py
"""
usim-hub 的集中配置。

所有配置项都可以通过 `UH_` 前缀的环境变量（或 .env 文件）覆盖，
嵌套配置使用 `__` 分隔，例如 `UH_RETRY_POLICY__MAX_ATTEMPTS=5`。
"""

import enum
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from usim_hub.cache import CacheConfig
from usim_hub.core.languages import DEFAULT_TARGET_CODES, order_languages
from usim_hub.utils import validate_lang_codes, validate_site_languages

FALLBACK_THUMBNAIL_URL = (
    "https://images.unsplash.com/photo-1551410224-699683e15636"
    "?w=1024&h=1024&fit=crop"
)


class EngineName(str, enum.Enum):
    DEBUG = "debug"
    GOOGLE = "google"
    OPENAI = "openai"
    TRANSLATORS = "translators"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: Literal["json", "console"] = "console"


class RetryPolicyConfig(BaseModel):
    """外部调用的重试与节流参数，翻译网关与批次驱动器共用。"""

    max_attempts: int = Field(default=3, gt=0)
    backoff_base: float = Field(default=1.0, ge=0)
    max_backoff: float = Field(default=30.0, ge=0)
    call_delay: float = Field(default=0.25, ge=0, description="相邻两次调用之间的固定间隔（秒）")

    @model_validator(mode="after")
    def check_backoff_consistency(self) -> "RetryPolicyConfig":
        if self.max_backoff < self.backoff_base:
            raise ValueError("max_backoff 必须大于或等于 backoff_base")
        return self


class QualityConfig(BaseModel):
    tip_fields: list[str] = Field(default_factory=lambda: ["title", "excerpt"])
    min_length_ratio: float | None = Field(default=None, gt=0)
    max_length_ratio: float | None = Field(default=None, gt=0)
    # 文本中出现的非拉丁文字体系与目标语言的预期不一致时标记
    check_script: bool = True

    @model_validator(mode="after")
    def check_ratio_bounds(self) -> "QualityConfig":
        if (
            self.min_length_ratio is not None
            and self.max_length_ratio is not None
            and self.min_length_ratio > self.max_length_ratio
        ):
            raise ValueError("min_length_ratio 不能大于 max_length_ratio")
        return self

    @property
    def length_check_enabled(self) -> bool:
        return self.min_length_ratio is not None or self.max_length_ratio is not None


class AssetConfig(BaseModel):
    fallback_thumbnail_url: str = FALLBACK_THUMBNAIL_URL
    placeholder_markers: list[str] = Field(
        default_factory=lambda: ["placeholder", "placehold"]
    )


class LinkingConfig(BaseModel):
    max_related: int = Field(default=5, gt=0)
    path_prefix: str = "/tips/"
    link_class: str = "internal-link"
    section_class: str = "related-posts"
    item_class: str = "related-link"


class DriverConfig(BaseModel):
    """外部批次驱动器的参数。"""

    base_url: str = "http://127.0.0.1:8000"
    endpoint: str = "/api/translate/plans"
    batch_size: int = Field(default=2, gt=0)
    batch_delay: float = Field(default=2.0, ge=0)
    request_timeout: float = Field(default=240.0, gt=0)
    max_retry_rounds: int = Field(default=2, ge=0)


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = Field(default=8000, gt=0, lt=65536)


class UsimHubConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="UH_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = "sqlite+aiosqlite:///usim_hub.db"
    active_engine: EngineName = EngineName.GOOGLE
    source_lang: str = "ko"
    target_langs: list[str] = Field(default_factory=lambda: list(DEFAULT_TARGET_CODES))
    batch_size: int = Field(default=10, gt=0)

    cache_config: CacheConfig = Field(default_factory=CacheConfig)
    engine_configs: dict[str, Any] = Field(default_factory=dict)
    retry_policy: RetryPolicyConfig = Field(default_factory=RetryPolicyConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    assets: AssetConfig = Field(default_factory=AssetConfig)
    linking: LinkingConfig = Field(default_factory=LinkingConfig)
    driver: DriverConfig = Field(default_factory=DriverConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("source_lang")
    @classmethod
    def validate_source_lang_code(cls, v: str) -> str:
        validate_lang_codes([v])
        return v

    @field_validator("target_langs")
    @classmethod
    def validate_target_lang_codes(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("target_langs 不能为空")
        validate_site_languages(v)
        return order_languages(set(v))

    @model_validator(mode="after")
    def check_source_not_in_targets(self) -> "UsimHubConfig":
        if self.source_lang in self.target_langs:
            raise ValueError(f"源语言 '{self.source_lang}' 不能同时作为目标语言")
        return self

    @property
    def is_sqlite(self) -> bool:
        return urlparse(self.database_url).scheme.startswith("sqlite")

    @property
    def db_path(self) -> str:
        if not self.is_sqlite:
            raise ValueError("db_path 属性仅在 database_url 为 sqlite 类型时可用。")
        path = urlparse(self.database_url).path
        if path in ("", "/") or path.endswith(":memory:"):
            return ":memory:"
        # '///rel.db' -> 'rel.db'，'////abs/x.db' -> '/abs/x.db'
        return path[1:]
