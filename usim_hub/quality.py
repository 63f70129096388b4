# usim_hub/quality.py
"""
译文质量校验。

外部翻译服务可能"成功"返回仍含韩文的文本（部分翻译或直接回显原文）。
本模块按 Unicode 区块识别文字体系，标记声明语言不是韩语却含有韩文的字段；
可选地，还可以按长度比例标记异常短或异常长的译文。

扫描只读不写；修复必须通过 `QualityValidator.repair()` 显式触发。
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

import structlog

from usim_hub.config import QualityConfig
from usim_hub.core.exceptions import (
    DatabaseError,
    DataIntegrityError,
    TranslationFailedError,
)
from usim_hub.core.interfaces import ContentStore
from usim_hub.core.languages import LANGUAGES_BY_CODE
from usim_hub.core.types import (
    ContentItem,
    EntityKind,
    ItemFilter,
    ItemKind,
    PlanTranslation,
    QualityFlag,
    QualityIssueKind,
    QualityReport,
    RepairReport,
)
from usim_hub.utils import is_blank

if TYPE_CHECKING:
    from usim_hub.orchestrator import TranslationOrchestrator

logger = structlog.get_logger(__name__)

# 韩文音节、韩文字母（Jamo）、兼容字母
_HANGUL = re.compile("[\uac00-\ud7a3\u1100-\u11ff\u3130-\u318f]")

# 检测顺序即优先级
_SCRIPT_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Korean", _HANGUL),
    ("Thai", re.compile("[\u0e00-\u0e7f]")),
    ("Tibetan", re.compile("[\u0f00-\u0fff]")),
    ("Cyrillic", re.compile("[\u0400-\u04ff]")),
    ("Chinese", re.compile("[\u4e00-\u9fff]")),
    ("Burmese", re.compile("[\u1000-\u109f]")),
    ("Devanagari", re.compile("[\u0900-\u097f]")),
)
LATIN_OR_OTHER = "Latin/Other"


def contains_hangul(text: str | None) -> bool:
    if not text:
        return False
    return _HANGUL.search(text) is not None


def detect_script(text: str | None) -> str:
    """返回文本中首个命中的文字体系，均未命中时为 'Latin/Other'。"""
    if not text:
        return LATIN_OR_OTHER
    for name, pattern in _SCRIPT_PATTERNS:
        if pattern.search(text):
            return name
    return LATIN_OR_OTHER


def is_source_leak(text: str | None, language: str, source_lang: str = "ko") -> bool:
    """声明语言不是源语言、文本非空且含有韩文时返回 True。"""
    if language == source_lang or is_blank(text):
        return False
    return contains_hangul(text)


def expected_script_for(language: str) -> str | None:
    lang = LANGUAGES_BY_CODE.get(language.split("-")[0])
    return lang.script if lang else None


class QualityValidator:
    def __init__(
        self,
        store: ContentStore,
        config: QualityConfig | None = None,
        source_lang: str = "ko",
    ):
        self.store = store
        self.config = config or QualityConfig()
        self.source_lang = source_lang

    def _length_flag_needed(self, translated: str | None, source: str | None) -> bool:
        if not self.config.length_check_enabled or is_blank(translated) or is_blank(source):
            return False
        assert translated is not None and source is not None
        ratio = len(translated.strip()) / len(source.strip())
        if self.config.min_length_ratio is not None and ratio < self.config.min_length_ratio:
            return True
        if self.config.max_length_ratio is not None and ratio > self.config.max_length_ratio:
            return True
        return False

    def _script_mismatch(self, text: str | None, language: str) -> bool:
        if not self.config.check_script or is_blank(text):
            return False
        detected = detect_script(text)
        expected = expected_script_for(language)
        # 拉丁字母、数字与品牌名在任何语言中都可能出现
        return expected is not None and detected not in (LATIN_OR_OTHER, expected)

    @staticmethod
    def _plan_fields(translation: PlanTranslation) -> list[tuple[str, str | None]]:
        fields: list[tuple[str, str | None]] = [("description", translation.description)]
        fields.extend(
            (f"features[{index}]", feature) for index, feature in enumerate(translation.features)
        )
        return fields

    def _check_field(
        self,
        flags: list[QualityFlag],
        *,
        entity: EntityKind,
        item_id: str,
        language: str,
        field: str,
        text: str | None,
        source_text: str | None,
        original_id: str | None = None,
    ) -> None:
        if is_source_leak(text, language, self.source_lang):
            flags.append(
                QualityFlag(
                    entity=entity,
                    item_id=item_id,
                    language=language,
                    field=field,
                    kind=QualityIssueKind.SOURCE_LEAKAGE,
                    detected_script=detect_script(text),
                    original_id=original_id,
                )
            )
        elif self._script_mismatch(text, language):
            flags.append(
                QualityFlag(
                    entity=entity,
                    item_id=item_id,
                    language=language,
                    field=field,
                    kind=QualityIssueKind.SCRIPT_MISMATCH,
                    detected_script=detect_script(text),
                    expected_script=expected_script_for(language),
                    original_id=original_id,
                )
            )
        elif self._length_flag_needed(text, source_text):
            flags.append(
                QualityFlag(
                    entity=entity,
                    item_id=item_id,
                    language=language,
                    field=field,
                    kind=QualityIssueKind.LENGTH_ANOMALY,
                    detected_script=detect_script(text),
                    original_id=original_id,
                )
            )

    async def scan(self) -> QualityReport:
        """扫描所有 tip 译本与套餐译文，返回被标记的字段列表。"""
        flags: list[QualityFlag] = []
        scanned = 0
        originals: dict[str, ContentItem | None] = {}

        variants = await self.store.query_items(ItemFilter(kind=ItemKind.VARIANT))
        for variant in variants:
            if variant.language == self.source_lang:
                continue
            scanned += 1
            original: ContentItem | None = None
            if self.config.length_check_enabled and variant.original_id:
                if variant.original_id not in originals:
                    originals[variant.original_id] = await self.store.get_item(
                        variant.original_id
                    )
                original = originals[variant.original_id]
            for field in self.config.tip_fields:
                self._check_field(
                    flags,
                    entity=EntityKind.TIP,
                    item_id=variant.id,
                    language=variant.language,
                    field=field,
                    text=getattr(variant, field, None),
                    source_text=getattr(original, field, None) if original else None,
                    original_id=variant.original_id,
                )

        for plan in await self.store.list_active_plans():
            for language, translation in plan.translations.items():
                if language == self.source_lang:
                    continue
                scanned += 1
                self._check_field(
                    flags,
                    entity=EntityKind.PLAN,
                    item_id=str(plan.id),
                    language=language,
                    field="description",
                    text=translation.description,
                    source_text=plan.description,
                )
                for index, feature in enumerate(translation.features):
                    source_feature = (
                        plan.features[index] if index < len(plan.features) else None
                    )
                    self._check_field(
                        flags,
                        entity=EntityKind.PLAN,
                        item_id=str(plan.id),
                        language=language,
                        field=f"features[{index}]",
                        text=feature,
                        source_text=source_feature,
                    )

        report = QualityReport(scanned=scanned, flags=flags)
        logger.info(
            "质量扫描完成",
            scanned=scanned,
            flagged=len(flags),
            by_language=report.by_language(),
        )
        return report

    async def repair(
        self, report: QualityReport, orchestrator: TranslationOrchestrator
    ) -> RepairReport:
        """
        只对报告中被标记的条目重新翻译并原地覆盖。

        原文缺失的译本记为数据完整性失败，不做修复。
        """
        result = RepairReport()
        for entity, item_id, language in report.flagged_targets():
            try:
                if entity is EntityKind.TIP:
                    await self._repair_tip(item_id, orchestrator)
                else:
                    await self._repair_plan(item_id, language, orchestrator)
            except (DataIntegrityError, DatabaseError, TranslationFailedError) as e:
                result.failed += 1
                result.errors.append(f"{entity.value}:{item_id} ({language}): {e}")
                logger.warning(
                    "修复失败", entity=entity.value, item_id=item_id, language=language, error=str(e)
                )
                continue
            result.fixed += 1
        logger.info("质量修复完成", fixed=result.fixed, failed=result.failed)
        return result

    async def _repair_tip(self, item_id: str, orchestrator: TranslationOrchestrator) -> None:
        variant = await self.store.get_item(item_id)
        if variant is None:
            raise DataIntegrityError(f"译本 '{item_id}' 不存在")
        repaired = await orchestrator.retranslate_variant(variant)
        leaked = [
            field
            for field in self.config.tip_fields
            if is_source_leak(getattr(repaired, field, None), repaired.language, self.source_lang)
        ]
        if leaked:
            raise TranslationFailedError(
                f"重新翻译后仍含有源语言文本: {', '.join(leaked)}",
                target_lang=repaired.language,
                attempts=1,
            )

    async def _repair_plan(
        self, item_id: str, language: str, orchestrator: TranslationOrchestrator
    ) -> None:
        plan = await self.store.get_plan(int(item_id))
        if plan is None:
            raise DataIntegrityError(f"套餐 '{item_id}' 不存在")
        await orchestrator.retranslate_plan_language(plan, language)
        refreshed = await self.store.get_plan(plan.id)
        translation = refreshed.translations.get(language) if refreshed else None
        if translation is None:
            raise DataIntegrityError(f"套餐 '{item_id}' 缺少 {language} 译文")
        leaked = [
            field
            for field, text in self._plan_fields(translation)
            if is_source_leak(text, language, self.source_lang)
        ]
        if leaked:
            raise TranslationFailedError(
                f"重新翻译后仍含有源语言文本: {', '.join(leaked)}",
                target_lang=language,
                attempts=1,
            )
