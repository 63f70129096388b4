# usim_hub/consistency.py
"""
链接与资源的一致性检查。

- 内部链接校验：文档中每个 `/tips/<slug>` 都必须指向同语言的已发布内容；
- 缩略图统一：原文的 thumbnail_url 为准，译本不一致时改为与原文相同；
- 损坏缩略图修复：原文缩略图为空或指向占位图服务时替换为备用图片；
- 翻译组审计：只报告孤儿译本、重复语言、slug 冲突等问题，不做修改。
"""

from __future__ import annotations

import re
from collections import Counter, defaultdict

import structlog

from usim_hub.config import AssetConfig, LinkingConfig
from usim_hub.core.interfaces import ContentStore
from usim_hub.core.types import (
    AssetReport,
    ContentItem,
    IntegrityIssue,
    ItemFilter,
    ItemKind,
)
from usim_hub.utils import is_blank

logger = structlog.get_logger(__name__)


def extract_internal_slugs(content: str, path_prefix: str = "/tips/") -> list[str]:
    """按出现顺序返回文档中所有内部链接的 slug（可能重复）。"""
    pattern = re.compile(r'href="' + re.escape(path_prefix) + r'([^"]+)"')
    return pattern.findall(content or "")


class ConsistencyChecker:
    def __init__(
        self,
        store: ContentStore,
        assets: AssetConfig | None = None,
        linking: LinkingConfig | None = None,
        source_lang: str = "ko",
    ):
        self.store = store
        self.assets = assets or AssetConfig()
        self.linking = linking or LinkingConfig()
        self.source_lang = source_lang

    # ---- (a) 内部链接 ----

    async def find_invalid_links(self, content: str, language: str) -> list[str]:
        slugs = extract_internal_slugs(content, self.linking.path_prefix)
        if not slugs:
            return []
        valid = await self.store.find_published_slugs(set(slugs), language)
        return list(dict.fromkeys(s for s in slugs if s not in valid))

    async def validate_internal_links(self, content: str, language: str) -> bool:
        """没有链接时通过；只要有一个链接无效，整篇文档就不通过。"""
        invalid = await self.find_invalid_links(content, language)
        for slug in invalid:
            logger.warning("无效的内部链接", href=f"{self.linking.path_prefix}{slug}", language=language)
        return not invalid

    async def scan_links(self, language: str | None = None) -> list[IntegrityIssue]:
        """检查所有已发布内容的内部链接。"""
        items = await self.store.query_items(ItemFilter(language=language, is_published=True))
        issues: list[IntegrityIssue] = []
        for item in items:
            for slug in await self.find_invalid_links(item.body, item.language):
                issues.append(
                    IntegrityIssue(
                        kind="broken_link",
                        item_id=item.id,
                        language=item.language,
                        detail=f"{self.linking.path_prefix}{slug}",
                    )
                )
        logger.info("内部链接检查完成", checked=len(items), broken=len(issues))
        return issues

    # ---- (b) 缩略图 ----

    def is_broken_thumbnail(self, url: str | None) -> bool:
        if is_blank(url):
            return True
        assert url is not None
        lowered = url.lower()
        return any(marker in lowered for marker in self.assets.placeholder_markers)

    async def _originals(self) -> list[ContentItem]:
        return await self.store.query_items(ItemFilter(kind=ItemKind.ORIGINAL))

    async def _unify_group(self, original: ContentItem, report: AssetReport) -> None:
        variants = await self.store.query_items(ItemFilter(original_id=original.id))
        for variant in variants:
            if variant.thumbnail_url != original.thumbnail_url:
                await self.store.update_thumbnail(variant.id, original.thumbnail_url)
                report.updated += 1
                report.updated_ids.append(variant.id)

    async def unify_thumbnails(self) -> AssetReport:
        """让每个译本的缩略图与其原文一致。重复执行不会产生新的更新。"""
        report = AssetReport()
        for original in await self._originals():
            report.groups += 1
            await self._unify_group(original, report)
        logger.info("缩略图统一完成", groups=report.groups, updated=report.updated)
        return report

    async def repair_broken_thumbnails(self) -> AssetReport:
        """为缩略图损坏的原文设置备用图片，然后同步到其译本。"""
        report = AssetReport()
        fallback = self.assets.fallback_thumbnail_url
        for original in await self._originals():
            report.groups += 1
            if self.is_broken_thumbnail(original.thumbnail_url):
                await self.store.update_thumbnail(original.id, fallback)
                logger.info(
                    "原文缩略图已替换",
                    item_id=original.id,
                    old=original.thumbnail_url,
                )
                original = original.model_copy(update={"thumbnail_url": fallback})
                report.repaired_originals += 1
                report.updated_ids.append(original.id)
            await self._unify_group(original, report)
        logger.info(
            "损坏缩略图修复完成",
            repaired_originals=report.repaired_originals,
            updated_variants=report.updated,
        )
        return report

    # ---- 翻译组审计 ----

    async def audit_groups(self) -> list[IntegrityIssue]:
        items = await self.store.query_items(ItemFilter())
        by_id = {item.id: item for item in items}
        issues: list[IntegrityIssue] = []

        for item in items:
            if item.is_original:
                if item.language != self.source_lang:
                    issues.append(
                        IntegrityIssue(
                            kind="original_not_source_language",
                            item_id=item.id,
                            language=item.language,
                        )
                    )
                continue

            original = by_id.get(item.original_id or "")
            if original is None:
                issues.append(
                    IntegrityIssue(
                        kind="orphan_variant",
                        item_id=item.id,
                        language=item.language,
                        detail=f"original_id={item.original_id}",
                    )
                )
            elif not original.is_original:
                issues.append(
                    IntegrityIssue(
                        kind="nested_variant",
                        item_id=item.id,
                        language=item.language,
                        detail=f"original_id={item.original_id} 本身也是译本",
                    )
                )
            elif original.slug != item.slug:
                issues.append(
                    IntegrityIssue(
                        kind="slug_mismatch",
                        item_id=item.id,
                        language=item.language,
                        detail=f"{item.slug} != {original.slug}",
                    )
                )
            if item.language == self.source_lang:
                issues.append(
                    IntegrityIssue(
                        kind="variant_in_source_language",
                        item_id=item.id,
                        language=item.language,
                    )
                )

        group_languages = Counter(
            (item.original_id, item.language) for item in items if not item.is_original
        )
        for (original_id, language), count in group_languages.items():
            if count > 1:
                issues.append(
                    IntegrityIssue(
                        kind="duplicate_language",
                        item_id=str(original_id),
                        language=language,
                        detail=f"{count} 个译本",
                    )
                )

        slugs: dict[tuple[str, str], list[str]] = defaultdict(list)
        for item in items:
            slugs[(item.slug, item.language)].append(item.id)
        for (slug, language), ids in slugs.items():
            if len(ids) > 1:
                issues.append(
                    IntegrityIssue(
                        kind="slug_collision",
                        item_id=ids[0],
                        language=language,
                        detail=f"slug '{slug}' 被 {len(ids)} 条内容使用",
                    )
                )

        logger.info("翻译组审计完成", items=len(items), issues=len(issues))
        return issues
