# usim_hub/core/interfaces.py
"""定义内容存储层的纯异步接口协议。"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from usim_hub.core.types import (
        ContentItem,
        ItemFilter,
        NewPlan,
        PlanRecord,
        RelatedContent,
    )


class ContentStore(Protocol):
    """
    内容存储的协议。

    翻译组只通过 `original_id` + `language` 表达，存储层不维护额外的分组结构。
    所有底层驱动异常都必须包装为 `DatabaseError` 抛出。
    """

    async def connect(self) -> None:
        """建立与数据库的连接。"""
        ...

    async def close(self) -> None:
        """关闭与数据库的连接并释放连接池。"""
        ...

    async def create_schema(self) -> None:
        """创建所有数据表（已存在则跳过）。"""
        ...

    # ---- tips ----

    async def query_items(
        self, item_filter: ItemFilter, skip: int = 0, limit: int | None = None
    ) -> list[ContentItem]:
        """按条件查询内容项，结果按 created_at 倒序（最新优先）。"""
        ...

    async def count_items(self, item_filter: ItemFilter) -> int: ...

    async def get_item(self, item_id: str) -> ContentItem | None: ...

    async def insert_item(self, item: ContentItem) -> ContentItem:
        """插入一条内容项。违反唯一约束时抛出 `DatabaseError`。"""
        ...

    async def update_item_text(
        self, item_id: str, *, title: str, excerpt: str | None, body: str
    ) -> None:
        """原地覆盖一条内容项的文本字段，id 与 slug 保持不变。"""
        ...

    async def update_thumbnail(self, item_id: str, thumbnail_url: str | None) -> None: ...

    async def find_published_slugs(self, slugs: set[str], language: str) -> set[str]:
        """返回 slugs 中在该语言下存在已发布内容的子集。"""
        ...

    async def search_published(
        self,
        language: str,
        keywords: list[str],
        limit: int = 5,
        exclude_id: str | None = None,
    ) -> list[RelatedContent]:
        """
        在同语言已发布内容的标题与正文中做不区分大小写的关键词匹配，
        按 view_count 倒序返回。
        """
        ...

    # ---- plans ----

    async def count_active_plans(self) -> int: ...

    async def list_active_plans(
        self, skip: int = 0, limit: int | None = None
    ) -> list[PlanRecord]:
        """按 id 升序返回启用中的套餐（含已有译文）。"""
        ...

    async def get_plan(self, plan_id: int) -> PlanRecord | None: ...

    async def save_plan_translation(
        self, plan_id: int, language: str, description: str | None, features: list[str]
    ) -> None:
        """写入（或覆盖）套餐在某语言下的译文。"""
        ...

    async def clear_plan_translations(self) -> int:
        """删除所有启用中套餐的译文，返回删除的行数。"""
        ...

    async def replace_all_plans(self, plans: list[NewPlan]) -> int:
        """在单个事务内清空并重建套餐表；任何失败都会整体回滚。"""
        ...

    async def plan_translation_counts(self) -> dict[str, int]:
        """按语言统计启用中套餐的译文数量。"""
        ...
