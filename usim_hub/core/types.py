# usim_hub/core/types.py
"""
本模块定义了 usim-hub 系统的核心数据类型。

内容图谱只有两类实体：
- ContentItem（"tip"）：原文（original_id 为空，语言固定为 ko）与译本；
- PlanRecord：套餐及其按语言归一化存储的译文。
翻译组、宽表视图等都由这两类实体派生，不单独存储。
"""

from __future__ import annotations

import uuid
from collections import Counter
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# 引擎结果
# ---------------------------------------------------------------------------


class EngineSuccess(BaseModel):
    """代表从翻译引擎成功返回的单次翻译结果。"""

    translated_text: str
    from_cache: bool = False


class EngineError(BaseModel):
    """代表从翻译引擎返回的单次失败结果，并指明是否可重试。"""

    error_message: str
    is_retryable: bool


EngineResult = Union[EngineSuccess, EngineError]


# ---------------------------------------------------------------------------
# 内容项（tips）
# ---------------------------------------------------------------------------


class ItemKind(str, Enum):
    """内容项在翻译组中的角色。"""

    ORIGINAL = "original"
    VARIANT = "variant"


class ContentItem(BaseModel):
    """一条 tip 记录：原文或某个语言的译本。"""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=_new_id)
    slug: str
    language: str
    title: str
    body: str = ""
    excerpt: str | None = None
    thumbnail_url: str | None = None
    category_id: str | None = None
    seo_meta: dict[str, Any] | None = None
    is_published: bool = False
    view_count: int = 0
    original_id: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    published_at: datetime | None = None

    @property
    def is_original(self) -> bool:
        return self.original_id is None

    @property
    def group_id(self) -> str:
        """所属翻译组的标识，即原文的 id。"""
        return self.original_id or self.id


class ItemFilter(BaseModel):
    """内容存储的查询条件，未设置的字段不参与过滤。"""

    language: str | None = None
    is_published: bool | None = None
    original_id: str | None = None
    kind: ItemKind | None = None


class TranslationGroup(BaseModel):
    """派生的翻译组：原文加上所有引用它的译本。"""

    original: ContentItem
    variants: list[ContentItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_membership(self) -> "TranslationGroup":
        for variant in self.variants:
            if variant.original_id != self.original.id:
                raise ValueError(
                    f"译本 {variant.id} 不属于原文 {self.original.id} 的翻译组"
                )
        return self

    @property
    def languages(self) -> set[str]:
        return {self.original.language} | {v.language for v in self.variants}

    def missing(self, required: list[str]) -> list[str]:
        """按 required 的顺序返回组内缺失的语言。"""
        present = self.languages
        return [lang for lang in required if lang not in present]

    def is_complete(self, required: list[str]) -> bool:
        return not self.missing(required)

    def variant_for(self, language: str) -> ContentItem | None:
        for variant in self.variants:
            if variant.language == language:
                return variant
        return None


# ---------------------------------------------------------------------------
# 套餐
# ---------------------------------------------------------------------------


class PlanTranslation(BaseModel):
    """套餐在单个语言下的译文。"""

    model_config = ConfigDict(from_attributes=True)

    plan_id: int
    language: str
    description: str | None = None
    features: list[str] = Field(default_factory=list)


class PlanRecord(BaseModel):
    """一条套餐记录及其各语言译文。"""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None
    features: list[str] = Field(default_factory=list)
    price: int | None = None
    data: str | None = None
    voice_minutes: str | None = None
    sms_count: str | None = None
    is_active: bool = True
    translations: dict[str, PlanTranslation] = Field(default_factory=dict)

    def missing_languages(self, required: list[str]) -> list[str]:
        return [lang for lang in required if lang not in self.translations]

    def to_wide_row(self, languages: list[str]) -> dict[str, Any]:
        """
        生成旧版宽表视图（description_<lang> / features_<lang>）。

        宽表只是归一化译文表的投影，新增语言不需要改动表结构。
        """
        row: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "features": list(self.features),
        }
        for lang in languages:
            translation = self.translations.get(lang)
            row[f"description_{lang}"] = translation.description if translation else None
            row[f"features_{lang}"] = list(translation.features) if translation else None
        return row


class NewPlan(BaseModel):
    """整体替换套餐表时的一条输入记录（来自爬虫的候选数据）。"""

    name: str
    price: int | None = None
    data: str | None = None
    voice_minutes: str | None = None
    sms_count: str | None = None
    features: list[str] = Field(default_factory=list)
    description: str | None = None

    def resolved_description(self) -> str:
        if self.description:
            return self.description
        return (
            f"{self.data or '-'} 데이터 / {self.voice_minutes or '-'} 통화 / "
            f"{self.sms_count or '-'} 문자"
        )


# ---------------------------------------------------------------------------
# 编排报告
# ---------------------------------------------------------------------------


class ItemOutcome(str, Enum):
    """单个原文 / 套餐在一次运行中的处理结果。"""

    CREATED = "created"
    SKIPPED = "skipped"
    PARTIAL = "partial"
    FAILED = "failed"


class Pagination(BaseModel):
    has_more: bool
    next_skip: int


def compute_cursor(skip: int, batch_len: int, total: int) -> tuple[int, int, Pagination]:
    """根据游标与本批大小计算 (processed, remaining, pagination)。"""
    processed = skip + batch_len
    remaining = max(total - processed, 0)
    return processed, remaining, Pagination(has_more=processed < total, next_skip=processed)


class OriginalReport(BaseModel):
    """一篇原文的翻译结果。"""

    original_id: str
    title: str
    outcome: ItemOutcome
    created_languages: list[str] = Field(default_factory=list)
    failed_languages: dict[str, str] = Field(default_factory=dict)
    message: str = ""


class TipBatchStats(BaseModel):
    created: int
    failed: int
    batch: int
    processed: int
    total_originals: int
    remaining: int


class TipBatchReport(BaseModel):
    """一次 tip 翻译批次的进度报告。"""

    message: str
    stats: TipBatchStats
    pagination: Pagination
    items: list[OriginalReport] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)


class PlanItemReport(BaseModel):
    plan_id: int
    name: str
    outcome: ItemOutcome
    translated_languages: list[str] = Field(default_factory=list)
    failed_languages: dict[str, str] = Field(default_factory=dict)


class PlanBatchStats(BaseModel):
    translated: int
    batch: int
    processed: int
    total_plans: int
    remaining: int
    failed: int


class PlanBatchReport(BaseModel):
    """批次触发接口的响应体，外部驱动器据此推进游标。"""

    message: str
    stats: PlanBatchStats
    pagination: Pagination
    errors: list[str] = Field(default_factory=list)
    items: list[PlanItemReport] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# 质量与一致性报告
# ---------------------------------------------------------------------------


class EntityKind(str, Enum):
    TIP = "tip"
    PLAN = "plan"


class QualityIssueKind(str, Enum):
    SOURCE_LEAKAGE = "source_leakage"
    LENGTH_ANOMALY = "length_anomaly"
    SCRIPT_MISMATCH = "script_mismatch"


class QualityFlag(BaseModel):
    """一条被标记的译文字段。"""

    entity: EntityKind
    item_id: str
    language: str
    field: str
    kind: QualityIssueKind = QualityIssueKind.SOURCE_LEAKAGE
    detected_script: str | None = None
    expected_script: str | None = None
    original_id: str | None = None


class QualityReport(BaseModel):
    """质量扫描结果。扫描本身从不修改数据。"""

    scanned: int = 0
    flags: list[QualityFlag] = Field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.flags

    def by_language(self) -> dict[str, int]:
        return dict(Counter(flag.language for flag in self.flags))

    def flagged_targets(self) -> list[tuple[EntityKind, str, str]]:
        """去重后的 (实体, id, 语言) 列表，保持首次出现的顺序。"""
        seen: dict[tuple[EntityKind, str, str], None] = {}
        for flag in self.flags:
            seen.setdefault((flag.entity, flag.item_id, flag.language), None)
        return list(seen)


class RepairReport(BaseModel):
    fixed: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)


class AssetReport(BaseModel):
    groups: int = 0
    repaired_originals: int = 0
    updated: int = 0
    updated_ids: list[str] = Field(default_factory=list)


class IntegrityIssue(BaseModel):
    kind: str
    item_id: str
    language: str | None = None
    detail: str = ""


class RelatedContent(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    slug: str
    title: str
    language: str
    view_count: int = 0


class TranslationStatusReport(BaseModel):
    """各语言的翻译覆盖情况。"""

    total_originals: int
    tip_counts: dict[str, int] = Field(default_factory=dict)
    total_plans: int
    plan_counts: dict[str, int] = Field(default_factory=dict)
    sample_plan: dict[str, Any] | None = None
