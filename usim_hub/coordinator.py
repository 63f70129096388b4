# usim_hub/coordinator.py
"""
本模块包含 usim-hub 的主协调器。

协调器是一次调用（CLI 命令、API 进程、测试）的生命周期对象：它持有内容存储
与翻译引擎，组装网关、编排器、质量校验器与一致性检查器，并保证在退出时
释放所有资源。推荐以 `async with Coordinator(...)` 的方式使用。
"""

from __future__ import annotations

import asyncio
from types import TracebackType
from typing import Any

import structlog

from usim_hub.cache import TranslationCache
from usim_hub.config import UsimHubConfig
from usim_hub.consistency import ConsistencyChecker
from usim_hub.core.exceptions import DataIntegrityError
from usim_hub.core.interfaces import ContentStore
from usim_hub.core.types import (
    AssetReport,
    ContentItem,
    IntegrityIssue,
    ItemFilter,
    ItemKind,
    NewPlan,
    PlanBatchReport,
    QualityReport,
    RelatedContent,
    RepairReport,
    TipBatchReport,
    TranslationStatusReport,
)
from usim_hub.engine_registry import create_engine
from usim_hub.engines.base import BaseTranslationEngine
from usim_hub.gateway import TranslationGateway
from usim_hub.linking import RelatedContentLinker
from usim_hub.orchestrator import TranslationOrchestrator
from usim_hub.policies.retry import RetryPolicy, SleepFunc
from usim_hub.quality import QualityValidator

logger = structlog.get_logger(__name__)


class Coordinator:
    """异步主协调器，是 usim-hub 各组件的装配点。"""

    def __init__(
        self,
        config: UsimHubConfig,
        store: ContentStore,
        engine: BaseTranslationEngine[Any] | None = None,
        sleep: SleepFunc | None = None,
    ):
        self.config = config
        self.store = store
        self._engine = engine
        self._sleep = sleep
        self.initialized = False

        # 不依赖翻译引擎的组件可以立即创建
        self.validator = QualityValidator(store, config.quality, config.source_lang)
        self.checker = ConsistencyChecker(
            store, config.assets, config.linking, config.source_lang
        )
        self.linker = RelatedContentLinker(store, config.linking)
        self._gateway: TranslationGateway | None = None
        self._orchestrator: TranslationOrchestrator | None = None

    async def initialize(self, load_engine: bool = True) -> None:
        """
        连接内容存储并初始化活动翻译引擎。

        只做读写维护（重置、统计、导入、缩略图等）的调用可以传入
        `load_engine=False`，此时不需要任何翻译引擎凭据。
        """
        if self.initialized:
            return
        logger.info(
            "协调器初始化开始...",
            engine=self.config.active_engine.value if load_engine else None,
        )
        await self.store.connect()
        if load_engine:
            try:
                await self._build_translation_stack()
            except BaseException:
                await self.store.close()
                raise
        self.initialized = True
        logger.info("协调器初始化完成。")

    async def _build_translation_stack(self) -> None:
        if self._engine is None:
            self._engine = create_engine(
                self.config.active_engine.value, self.config.engine_configs
            )
        if not self._engine.initialized:
            await self._engine.initialize()

        cache = (
            TranslationCache(self.config.cache_config)
            if self.config.cache_config.enabled
            else None
        )
        self._gateway = TranslationGateway(
            engine=self._engine,
            policy=RetryPolicy.from_config(self.config.retry_policy, sleep=self._sleep),
            source_lang=self.config.source_lang,
            cache=cache,
        )
        self._orchestrator = TranslationOrchestrator(
            store=self.store,
            gateway=self._gateway,
            target_langs=self.config.target_langs,
            source_lang=self.config.source_lang,
        )

    async def close(self) -> None:
        """关闭引擎与内容存储。重复调用是安全的。"""
        if not self.initialized:
            return
        logger.info("开始关闭协调器...")
        results = (
            await asyncio.gather(self._engine.close(), return_exceptions=True)
            if self._engine is not None
            else []
        )
        for result in results:
            if isinstance(result, Exception):
                logger.warning("关闭翻译引擎时出错", error=str(result))
        await self.store.close()
        self.initialized = False
        logger.info("协调器已关闭。")

    async def __aenter__(self) -> "Coordinator":
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def _require_initialized(self) -> None:
        if not self.initialized:
            raise RuntimeError("Coordinator is not initialized.")

    @property
    def gateway(self) -> TranslationGateway:
        self._require_initialized()
        if self._gateway is None:
            raise RuntimeError("Translation engine was not loaded for this coordinator.")
        return self._gateway

    @property
    def orchestrator(self) -> TranslationOrchestrator:
        self._require_initialized()
        if self._orchestrator is None:
            raise RuntimeError("Translation engine was not loaded for this coordinator.")
        return self._orchestrator

    # ------------------------------------------------------------------
    # 翻译
    # ------------------------------------------------------------------

    async def translate_tips(
        self, skip: int = 0, batch_size: int | None = None, force: bool = False
    ) -> TipBatchReport:
        return await self.orchestrator.translate_tips_batch(
            skip, batch_size or self.config.batch_size, force=force
        )

    async def translate_all_tips(
        self, batch_size: int | None = None, force: bool = False
    ) -> list[TipBatchReport]:
        return await self.orchestrator.translate_all_tips(
            batch_size or self.config.batch_size, force=force
        )

    async def translate_plans(
        self, skip: int = 0, batch_size: int | None = None, force: bool = False
    ) -> PlanBatchReport:
        return await self.orchestrator.translate_plans_batch(
            skip, batch_size or self.config.driver.batch_size, force=force
        )

    async def reset_plan_translations(self) -> int:
        """批量重置：清空所有启用中套餐的译文，以便重新生成。"""
        self._require_initialized()
        return await self.store.clear_plan_translations()

    async def replace_all_plans(self, plans: list[NewPlan]) -> int:
        self._require_initialized()
        return await self.store.replace_all_plans(plans)

    # ------------------------------------------------------------------
    # 质量
    # ------------------------------------------------------------------

    async def check_quality(self) -> QualityReport:
        self._require_initialized()
        return await self.validator.scan()

    async def fix_quality(self, report: QualityReport | None = None) -> RepairReport:
        report = report or await self.check_quality()
        if report.is_clean:
            return RepairReport()
        return await self.validator.repair(report, self.orchestrator)

    # ------------------------------------------------------------------
    # 一致性
    # ------------------------------------------------------------------

    async def validate_internal_links(self, content: str, language: str) -> bool:
        self._require_initialized()
        return await self.checker.validate_internal_links(content, language)

    async def check_links(self, language: str | None = None) -> list[IntegrityIssue]:
        self._require_initialized()
        return await self.checker.scan_links(language)

    async def unify_thumbnails(self) -> AssetReport:
        self._require_initialized()
        return await self.checker.unify_thumbnails()

    async def repair_broken_thumbnails(self) -> AssetReport:
        self._require_initialized()
        return await self.checker.repair_broken_thumbnails()

    async def audit_groups(self) -> list[IntegrityIssue]:
        self._require_initialized()
        return await self.checker.audit_groups()

    async def link_related(
        self, item_id: str, keyword: str, related_keywords: list[str] | None = None
    ) -> list[RelatedContent]:
        self._require_initialized()
        item = await self.store.get_item(item_id)
        if item is None:
            raise DataIntegrityError(f"内容项 '{item_id}' 不存在")
        return await self.linker.link_item(item, keyword, related_keywords)

    # ------------------------------------------------------------------
    # 状态
    # ------------------------------------------------------------------

    async def translation_status(self) -> TranslationStatusReport:
        self._require_initialized()
        total_originals = await self.store.count_items(
            ItemFilter(kind=ItemKind.ORIGINAL, language=self.config.source_lang)
        )
        tip_counts = {
            lang: await self.store.count_items(
                ItemFilter(kind=ItemKind.VARIANT, language=lang)
            )
            for lang in self.config.target_langs
        }
        plan_counts = await self.store.plan_translation_counts()
        sample = await self.store.list_active_plans(limit=1)
        return TranslationStatusReport(
            total_originals=total_originals,
            tip_counts=tip_counts,
            total_plans=await self.store.count_active_plans(),
            plan_counts={lang: plan_counts.get(lang, 0) for lang in self.config.target_langs},
            sample_plan=sample[0].to_wide_row(self.config.target_langs) if sample else None,
        )

    async def get_item(self, item_id: str) -> ContentItem | None:
        self._require_initialized()
        return await self.store.get_item(item_id)
