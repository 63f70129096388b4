# usim_hub/linking.py
"""
相关内容的内部链接。

为一篇 tip 找到同语言、按浏览量排序的相关内容，在正文中把每个相关标题的
首次出现替换为指向 `/tips/<slug>` 的链接，并在文末追加"相关文章"区块。

标题匹配只发生在可见文本节点上：已有链接、脚本、样式、代码块以及标签属性
中的文本永远不会被改写。
"""

from __future__ import annotations

import html
import re

import structlog
from bs4 import BeautifulSoup, NavigableString

from usim_hub.config import LinkingConfig
from usim_hub.core.interfaces import ContentStore
from usim_hub.core.languages import LANGUAGES_BY_CODE, SOURCE_LANGUAGE
from usim_hub.core.types import ContentItem, RelatedContent

logger = structlog.get_logger(__name__)

_SKIP_PARENTS = frozenset({"a", "script", "style", "code", "pre", "textarea", "head", "title"})
_BODY_CLOSE = re.compile(r"</body\s*>", re.IGNORECASE)


def related_heading_for(language: str) -> str:
    return LANGUAGES_BY_CODE.get(language, SOURCE_LANGUAGE).related_heading


class RelatedContentLinker:
    def __init__(self, store: ContentStore, config: LinkingConfig | None = None):
        self.store = store
        self.config = config or LinkingConfig()

    def href_for(self, slug: str) -> str:
        return f"{self.config.path_prefix}{slug}"

    async def find_related_content(
        self,
        keyword: str,
        related_keywords: list[str] | None = None,
        language: str = "ko",
        exclude_id: str | None = None,
    ) -> list[RelatedContent]:
        """在同语言已发布内容中查找标题或正文包含任一关键词的条目（最多 max_related 条）。"""
        keywords = [keyword, *(related_keywords or [])]
        return await self.store.search_published(
            language, keywords, limit=self.config.max_related, exclude_id=exclude_id
        )

    def _link_first_occurrence(self, soup: BeautifulSoup, related: RelatedContent) -> bool:
        if not related.title.strip():
            return False
        pattern = re.compile(re.escape(related.title), re.IGNORECASE)
        for node in soup.find_all(string=True):
            # Comment、CData 等子类不是可见文本
            if type(node) is not NavigableString:
                continue
            if any(parent.name in _SKIP_PARENTS for parent in node.parents):
                continue
            text = str(node)
            match = pattern.search(text)
            if match is None:
                continue

            link = soup.new_tag(
                "a",
                href=self.href_for(related.slug),
                attrs={"class": self.config.link_class, "title": related.title},
            )
            link.string = match.group(0)
            pieces = [
                NavigableString(text[: match.start()]),
                link,
                NavigableString(text[match.end() :]),
            ]
            node.replace_with(*[p for p in pieces if p != ""])
            return True
        return False

    def render_related_section(self, related: list[RelatedContent], language: str) -> str:
        items = "\n".join(
            f'    <li><a href="{html.escape(self.href_for(r.slug))}" '
            f'class="{self.config.item_class}">{html.escape(r.title)}</a></li>'
            for r in related
        )
        return (
            f"<h2>{html.escape(related_heading_for(language))}</h2>\n"
            f'<div class="{self.config.section_class}">\n'
            f"  <ul>\n{items}\n  </ul>\n"
            f"</div>\n"
        )

    def insert_internal_links(
        self, content: str, related: list[RelatedContent], language: str = "ko"
    ) -> str:
        """
        为每个相关条目链接其标题在正文中的首次出现，并追加相关文章区块。

        没有相关条目时原样返回；已含相关文章区块的文档不会重复追加。
        """
        if not related:
            return content

        soup = BeautifulSoup(content, "html.parser")
        linked = [r for r in related if self._link_first_occurrence(soup, r)]
        updated = str(soup) if linked else content
        for r in linked:
            logger.debug("已插入内部链接", slug=r.slug, language=language)

        if f'class="{self.config.section_class}"' in updated:
            return updated

        section = self.render_related_section(related, language)
        closings = list(_BODY_CLOSE.finditer(updated))
        if closings:
            at = closings[-1].start()
            return updated[:at] + section + updated[at:]
        return updated + "\n" + section

    async def link_item(
        self, item: ContentItem, keyword: str, related_keywords: list[str] | None = None
    ) -> list[RelatedContent]:
        """为单个内容项插入内部链接并写回正文，返回使用的相关条目。"""
        related = await self.find_related_content(
            keyword, related_keywords, language=item.language, exclude_id=item.id
        )
        if not related:
            logger.info("未找到相关内容", item_id=item.id, keyword=keyword)
            return []
        body = self.insert_internal_links(item.body, related, item.language)
        if body != item.body:
            await self.store.update_item_text(
                item.id, title=item.title, excerpt=item.excerpt, body=body
            )
        logger.info("内部链接已更新", item_id=item.id, related=len(related))
        return related
