# usim_hub/orchestrator.py
"""
翻译编排器：为每篇原文 / 每个套餐补齐缺失语言的译文。

- 原文按 created_at 倒序处理，语言按声明顺序处理；
- 每个缺失语言对 title / excerpt / body 各发起一次网关调用，全部成功才写入译本；
- 单个语言失败只记录在报告中，不会中断该原文的其余语言或整个批次；
- 翻译组完整时直接跳过，不产生任何写入；
- 失败时绝不把原文当作译文写入。
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from usim_hub.core.exceptions import (
    DatabaseError,
    DataIntegrityError,
    TranslationFailedError,
    UsimHubError,
)
from usim_hub.core.interfaces import ContentStore
from usim_hub.core.types import (
    ContentItem,
    ItemFilter,
    ItemKind,
    ItemOutcome,
    OriginalReport,
    PlanBatchReport,
    PlanBatchStats,
    PlanItemReport,
    PlanRecord,
    TipBatchReport,
    TipBatchStats,
    TranslationGroup,
    compute_cursor,
)
from usim_hub.gateway import TranslationGateway

logger = structlog.get_logger(__name__)

ALL_TRANSLATIONS_EXIST = "all translations exist"


def _outcome(succeeded: list[str], failed: dict[str, str]) -> ItemOutcome:
    if failed and succeeded:
        return ItemOutcome.PARTIAL
    if failed:
        return ItemOutcome.FAILED
    return ItemOutcome.CREATED


class TranslationOrchestrator:
    def __init__(
        self,
        store: ContentStore,
        gateway: TranslationGateway,
        target_langs: list[str],
        source_lang: str = "ko",
    ):
        self.store = store
        self.gateway = gateway
        self.target_langs = list(target_langs)
        self.source_lang = source_lang

    # ------------------------------------------------------------------
    # tips
    # ------------------------------------------------------------------

    def _originals_filter(self) -> ItemFilter:
        return ItemFilter(kind=ItemKind.ORIGINAL, language=self.source_lang)

    async def load_group(self, original: ContentItem) -> TranslationGroup:
        variants = await self.store.query_items(ItemFilter(original_id=original.id))
        return TranslationGroup(original=original, variants=variants)

    async def _translate_tip_fields(
        self, original: ContentItem, language: str
    ) -> tuple[str, str | None, str]:
        title = await self.gateway.translate(original.title, language)
        excerpt = (
            await self.gateway.translate(original.excerpt, language)
            if original.excerpt is not None
            else None
        )
        body = await self.gateway.translate(original.body, language)
        return title, excerpt, body

    def _build_variant(
        self,
        original: ContentItem,
        language: str,
        title: str,
        excerpt: str | None,
        body: str,
    ) -> ContentItem:
        return ContentItem(
            slug=original.slug,
            language=language,
            title=title,
            excerpt=excerpt,
            body=body,
            thumbnail_url=original.thumbnail_url,
            category_id=original.category_id,
            seo_meta=dict(original.seo_meta) if original.seo_meta is not None else None,
            is_published=original.is_published,
            published_at=datetime.now(timezone.utc) if original.is_published else None,
            original_id=original.id,
        )

    async def translate_original(
        self, original: ContentItem, force: bool = False
    ) -> OriginalReport:
        """
        为一篇原文补齐缺失的语言。

        `force=True` 时对所有目标语言重新翻译，已存在的译本原地覆盖（id 与 slug 不变）。
        """
        log = logger.bind(original_id=original.id)
        if not original.is_original or original.language != self.source_lang:
            raise DataIntegrityError(
                f"内容项 '{original.id}' 不是 {self.source_lang} 原文，无法作为翻译源"
            )

        group = await self.load_group(original)
        languages = list(self.target_langs) if force else group.missing(self.target_langs)
        if not languages:
            log.debug("翻译组已完整，跳过")
            return OriginalReport(
                original_id=original.id,
                title=original.title,
                outcome=ItemOutcome.SKIPPED,
                message=ALL_TRANSLATIONS_EXIST,
            )

        created: list[str] = []
        failed: dict[str, str] = {}
        for language in languages:
            try:
                title, excerpt, body = await self._translate_tip_fields(original, language)
                existing = group.variant_for(language)
                if existing is not None:
                    await self.store.update_item_text(
                        existing.id, title=title, excerpt=excerpt, body=body
                    )
                else:
                    await self.store.insert_item(
                        self._build_variant(original, language, title, excerpt, body)
                    )
            except (TranslationFailedError, DatabaseError, DataIntegrityError) as e:
                failed[language] = str(e)
                log.warning("译本生成失败", language=language, error=str(e))
                continue
            created.append(language)
            log.info("译本已写入", language=language)

        return OriginalReport(
            original_id=original.id,
            title=original.title,
            outcome=_outcome(created, failed),
            created_languages=created,
            failed_languages=failed,
            message=f"{len(created)} created, {len(failed)} failed",
        )

    async def translate_tips_batch(
        self, skip: int = 0, batch_size: int = 10, force: bool = False
    ) -> TipBatchReport:
        """处理 [skip, skip + batch_size) 范围内的原文（最新优先）。"""
        total = await self.store.count_items(self._originals_filter())
        originals = await self.store.query_items(
            self._originals_filter(), skip=skip, limit=batch_size
        )
        logger.info(
            "开始处理 tip 批次", skip=skip, batch_size=batch_size, total_originals=total
        )

        items: list[OriginalReport] = []
        errors: list[str] = []
        for original in originals:
            try:
                report = await self.translate_original(original, force=force)
            except UsimHubError as e:
                report = OriginalReport(
                    original_id=original.id,
                    title=original.title,
                    outcome=ItemOutcome.FAILED,
                    message=str(e),
                )
                errors.append(f"{original.title}: {e}")
            else:
                errors.extend(
                    f"{original.title} ({lang}): {err}"
                    for lang, err in report.failed_languages.items()
                )
            items.append(report)

        processed, remaining, pagination = compute_cursor(skip, len(originals), total)
        created = sum(len(r.created_languages) for r in items)
        failed = sum(len(r.failed_languages) for r in items) + sum(
            1 for r in items if r.outcome is ItemOutcome.FAILED and not r.failed_languages
        )
        return TipBatchReport(
            message=f"Processed {len(originals)} originals: {created} variants created, {failed} failed",
            stats=TipBatchStats(
                created=created,
                failed=failed,
                batch=len(originals),
                processed=processed,
                total_originals=total,
                remaining=remaining,
            ),
            pagination=pagination,
            items=items,
            errors=errors,
        )

    async def translate_all_tips(
        self, batch_size: int = 10, force: bool = False
    ) -> list[TipBatchReport]:
        """从头到尾按批次处理全部原文。"""
        reports: list[TipBatchReport] = []
        skip = 0
        while True:
            report = await self.translate_tips_batch(skip, batch_size, force=force)
            reports.append(report)
            if not report.pagination.has_more or report.stats.batch == 0:
                return reports
            skip = report.pagination.next_skip

    async def retranslate_variant(self, variant: ContentItem) -> ContentItem:
        """
        用原文重新翻译一个已存在的译本并原地覆盖。

        Raises:
            DataIntegrityError: 译本的原文不存在或不是原文。
            TranslationFailedError: 翻译失败（译本保持原样）。
        """
        if variant.original_id is None:
            raise DataIntegrityError(f"内容项 '{variant.id}' 是原文，不能重新翻译")
        original = await self.store.get_item(variant.original_id)
        if original is None or not original.is_original:
            raise DataIntegrityError(
                f"译本 '{variant.id}' 引用的原文 '{variant.original_id}' 不存在"
            )
        title, excerpt, body = await self._translate_tip_fields(original, variant.language)
        await self.store.update_item_text(variant.id, title=title, excerpt=excerpt, body=body)
        logger.info("译本已重新翻译", item_id=variant.id, language=variant.language)
        return variant.model_copy(update={"title": title, "excerpt": excerpt, "body": body})

    # ------------------------------------------------------------------
    # plans
    # ------------------------------------------------------------------

    async def retranslate_plan_language(self, plan: PlanRecord, language: str) -> None:
        """翻译套餐的描述与全部特性并写入（覆盖）该语言的译文。"""
        description = (
            await self.gateway.translate(plan.description, language)
            if plan.description is not None
            else None
        )
        features = [await self.gateway.translate(f, language) for f in plan.features]
        await self.store.save_plan_translation(plan.id, language, description, features)

    async def translate_plan(self, plan: PlanRecord, force: bool = False) -> PlanItemReport:
        languages = (
            list(self.target_langs) if force else plan.missing_languages(self.target_langs)
        )
        if not languages:
            return PlanItemReport(plan_id=plan.id, name=plan.name, outcome=ItemOutcome.SKIPPED)

        translated: list[str] = []
        failed: dict[str, str] = {}
        for language in languages:
            try:
                await self.retranslate_plan_language(plan, language)
            except (TranslationFailedError, DatabaseError, DataIntegrityError) as e:
                failed[language] = str(e)
                logger.warning(
                    "套餐译文生成失败", plan_id=plan.id, language=language, error=str(e)
                )
                continue
            translated.append(language)

        return PlanItemReport(
            plan_id=plan.id,
            name=plan.name,
            outcome=_outcome(translated, failed),
            translated_languages=translated,
            failed_languages=failed,
        )

    async def translate_plans_batch(
        self, skip: int = 0, batch_size: int = 2, force: bool = False
    ) -> PlanBatchReport:
        """
        处理启用中套餐的一个批次，响应体即批次触发接口的返回值。

        没有任何语言失败的套餐计入 `translated`（包括无需翻译而跳过的套餐）。
        """
        total = await self.store.count_active_plans()
        plans = await self.store.list_active_plans(skip=skip, limit=batch_size)
        logger.info("开始处理套餐批次", skip=skip, batch_size=batch_size, total_plans=total)

        items: list[PlanItemReport] = []
        errors: list[str] = []
        for plan in plans:
            report = await self.translate_plan(plan, force=force)
            items.append(report)
            errors.extend(
                f"Failed to translate plan {plan.name} ({lang}): {err}"
                for lang, err in report.failed_languages.items()
            )

        translated = sum(1 for r in items if not r.failed_languages)
        processed, remaining, pagination = compute_cursor(skip, len(plans), total)
        return PlanBatchReport(
            message=f"Batch translation completed: {translated}/{len(plans)} plans translated",
            stats=PlanBatchStats(
                translated=translated,
                batch=len(plans),
                processed=processed,
                total_plans=total,
                remaining=remaining,
                failed=len(plans) - translated,
            ),
            pagination=pagination,
            errors=errors,
            items=items,
        )
