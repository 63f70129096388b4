# usim_hub/persistence/store.py
"""`ContentStore` 协议基于 SQLAlchemy 异步 ORM 的实现（SQLite / PostgreSQL 通用）。"""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import delete, func, or_, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from usim_hub.core.exceptions import DatabaseError, DataIntegrityError
from usim_hub.core.types import (
    ContentItem,
    ItemFilter,
    ItemKind,
    NewPlan,
    PlanRecord,
    PlanTranslation,
    RelatedContent,
)
from usim_hub.db.schema import Base, UhPlan, UhPlanTranslation, UhTip

logger = structlog.get_logger(__name__)


def _escape_like(keyword: str) -> str:
    return keyword.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _filter_clauses(item_filter: ItemFilter) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if item_filter.language is not None:
        clauses.append(UhTip.language == item_filter.language)
    if item_filter.is_published is not None:
        clauses.append(UhTip.is_published.is_(item_filter.is_published))
    if item_filter.original_id is not None:
        clauses.append(UhTip.original_id == item_filter.original_id)
    if item_filter.kind is ItemKind.ORIGINAL:
        clauses.append(UhTip.original_id.is_(None))
    elif item_filter.kind is ItemKind.VARIANT:
        clauses.append(UhTip.original_id.is_not(None))
    return clauses


def _to_plan(row: UhPlan) -> PlanRecord:
    return PlanRecord(
        id=row.id,
        name=row.name,
        description=row.description,
        features=list(row.features or []),
        price=row.price,
        data=row.data,
        voice_minutes=row.voice_minutes,
        sms_count=row.sms_count,
        is_active=row.is_active,
        translations={
            t.language: PlanTranslation(
                plan_id=row.id,
                language=t.language,
                description=t.description,
                features=list(t.features or []),
            )
            for t in row.translations
        },
    )


class SQLAlchemyContentStore:
    """基于 SQLAlchemy ORM Session 的内容存储。"""

    def __init__(self, engine: AsyncEngine, db_path: str | None = None):
        self._engine = engine
        self._sessionmaker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            engine, expire_on_commit=False
        )
        self._is_sqlite = engine.dialect.name == "sqlite"
        self.db_path = db_path

    async def connect(self) -> None:
        """建立连接；SQLite 下额外设置必要的 PRAGMA。"""
        try:
            async with self._engine.begin() as conn:
                if self._is_sqlite:
                    await conn.execute(text("PRAGMA foreign_keys = ON;"))
                    if self.db_path and self.db_path != ":memory:":
                        await conn.execute(text("PRAGMA journal_mode=WAL;"))
                else:
                    await conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise DatabaseError(f"数据库连接失败: {e}") from e
        logger.info("内容存储连接已建立", dialect=self._engine.dialect.name)

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("内容存储引擎已关闭。")

    async def create_schema(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise DatabaseError(f"创建数据表失败: {e}") from e

    # ------------------------------------------------------------------
    # tips
    # ------------------------------------------------------------------

    async def query_items(
        self, item_filter: ItemFilter, skip: int = 0, limit: int | None = None
    ) -> list[ContentItem]:
        stmt = (
            select(UhTip)
            .where(*_filter_clauses(item_filter))
            .order_by(UhTip.created_at.desc(), UhTip.id.desc())
            .offset(skip)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            async with self._sessionmaker() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseError(f"查询内容项失败: {e}") from e
        return [ContentItem.model_validate(row) for row in rows]

    async def count_items(self, item_filter: ItemFilter) -> int:
        stmt = select(func.count()).select_from(UhTip).where(*_filter_clauses(item_filter))
        try:
            async with self._sessionmaker() as session:
                return int((await session.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            raise DatabaseError(f"统计内容项失败: {e}") from e

    async def get_item(self, item_id: str) -> ContentItem | None:
        try:
            async with self._sessionmaker() as session:
                row = await session.get(UhTip, item_id)
        except SQLAlchemyError as e:
            raise DatabaseError(f"读取内容项失败: {e}") from e
        return ContentItem.model_validate(row) if row else None

    async def insert_item(self, item: ContentItem) -> ContentItem:
        try:
            async with self._sessionmaker.begin() as session:
                session.add(UhTip(**item.model_dump()))
        except IntegrityError as e:
            raise DataIntegrityError(
                f"内容项 (slug={item.slug}, language={item.language}) 违反唯一约束: {e.orig}"
            ) from e
        except SQLAlchemyError as e:
            raise DatabaseError(f"插入内容项失败: {e}") from e
        return item

    async def _update_tip(self, item_id: str, values: dict[str, Any]) -> None:
        stmt = (
            update(UhTip)
            .where(UhTip.id == item_id)
            .values(**values, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._sessionmaker.begin() as session:
                result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise DatabaseError(f"更新内容项失败: {e}") from e
        if result.rowcount == 0:
            raise DataIntegrityError(f"内容项 '{item_id}' 不存在")

    async def update_item_text(
        self, item_id: str, *, title: str, excerpt: str | None, body: str
    ) -> None:
        await self._update_tip(item_id, {"title": title, "excerpt": excerpt, "body": body})

    async def update_thumbnail(self, item_id: str, thumbnail_url: str | None) -> None:
        await self._update_tip(item_id, {"thumbnail_url": thumbnail_url})

    async def find_published_slugs(self, slugs: set[str], language: str) -> set[str]:
        if not slugs:
            return set()
        stmt = select(UhTip.slug).where(
            UhTip.slug.in_(slugs),
            UhTip.language == language,
            UhTip.is_published.is_(True),
        )
        try:
            async with self._sessionmaker() as session:
                return set((await session.execute(stmt)).scalars().all())
        except SQLAlchemyError as e:
            raise DatabaseError(f"查询已发布 slug 失败: {e}") from e

    async def search_published(
        self,
        language: str,
        keywords: list[str],
        limit: int = 5,
        exclude_id: str | None = None,
    ) -> list[RelatedContent]:
        terms = [kw.strip() for kw in keywords if kw and kw.strip()]
        if not terms:
            return []
        matches = []
        for term in terms:
            pattern = f"%{_escape_like(term)}%"
            matches.append(UhTip.title.ilike(pattern, escape="\\"))
            matches.append(UhTip.body.ilike(pattern, escape="\\"))
        stmt = (
            select(UhTip)
            .where(
                UhTip.language == language,
                UhTip.is_published.is_(True),
                or_(*matches),
            )
            .order_by(UhTip.view_count.desc(), UhTip.created_at.desc())
            .limit(limit)
        )
        if exclude_id is not None:
            stmt = stmt.where(UhTip.id != exclude_id)
        try:
            async with self._sessionmaker() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseError(f"搜索相关内容失败: {e}") from e
        return [RelatedContent.model_validate(row) for row in rows]

    # ------------------------------------------------------------------
    # plans
    # ------------------------------------------------------------------

    async def count_active_plans(self) -> int:
        stmt = select(func.count()).select_from(UhPlan).where(UhPlan.is_active.is_(True))
        try:
            async with self._sessionmaker() as session:
                return int((await session.execute(stmt)).scalar_one())
        except SQLAlchemyError as e:
            raise DatabaseError(f"统计套餐失败: {e}") from e

    async def list_active_plans(
        self, skip: int = 0, limit: int | None = None
    ) -> list[PlanRecord]:
        stmt = (
            select(UhPlan)
            .where(UhPlan.is_active.is_(True))
            .order_by(UhPlan.id)
            .offset(skip)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            async with self._sessionmaker() as session:
                rows = (await session.execute(stmt)).scalars().all()
                return [_to_plan(row) for row in rows]
        except SQLAlchemyError as e:
            raise DatabaseError(f"查询套餐失败: {e}") from e

    async def get_plan(self, plan_id: int) -> PlanRecord | None:
        try:
            async with self._sessionmaker() as session:
                row = await session.get(UhPlan, plan_id)
                return _to_plan(row) if row else None
        except SQLAlchemyError as e:
            raise DatabaseError(f"读取套餐失败: {e}") from e

    async def save_plan_translation(
        self, plan_id: int, language: str, description: str | None, features: list[str]
    ) -> None:
        try:
            async with self._sessionmaker.begin() as session:
                if await session.get(UhPlan, plan_id) is None:
                    raise DataIntegrityError(f"套餐 '{plan_id}' 不存在")
                existing = (
                    await session.execute(
                        select(UhPlanTranslation).where(
                            UhPlanTranslation.plan_id == plan_id,
                            UhPlanTranslation.language == language,
                        )
                    )
                ).scalar_one_or_none()
                if existing is None:
                    session.add(
                        UhPlanTranslation(
                            plan_id=plan_id,
                            language=language,
                            description=description,
                            features=list(features),
                        )
                    )
                else:
                    existing.description = description
                    existing.features = list(features)
        except SQLAlchemyError as e:
            raise DatabaseError(f"保存套餐译文失败: {e}") from e

    async def clear_plan_translations(self) -> int:
        active_ids = select(UhPlan.id).where(UhPlan.is_active.is_(True))
        stmt = (
            delete(UhPlanTranslation)
            .where(UhPlanTranslation.plan_id.in_(active_ids))
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._sessionmaker.begin() as session:
                result = await session.execute(stmt)
        except SQLAlchemyError as e:
            raise DatabaseError(f"清空套餐译文失败: {e}") from e
        logger.warning("已清空所有启用中套餐的译文", deleted=result.rowcount)
        return int(result.rowcount or 0)

    async def replace_all_plans(self, plans: list[NewPlan]) -> int:
        try:
            async with self._sessionmaker.begin() as session:
                await session.execute(delete(UhPlanTranslation))
                await session.execute(delete(UhPlan))
                session.add_all(
                    UhPlan(
                        name=plan.name,
                        description=plan.resolved_description(),
                        features=list(plan.features),
                        price=plan.price,
                        data=plan.data,
                        voice_minutes=plan.voice_minutes,
                        sms_count=plan.sms_count,
                        is_active=True,
                    )
                    for plan in plans
                )
        except SQLAlchemyError as e:
            raise DatabaseError(f"替换套餐表失败，已回滚: {e}") from e
        logger.info("套餐表已整体替换", count=len(plans))
        return len(plans)

    async def plan_translation_counts(self) -> dict[str, int]:
        stmt = (
            select(UhPlanTranslation.language, func.count())
            .join(UhPlan, UhPlan.id == UhPlanTranslation.plan_id)
            .where(UhPlan.is_active.is_(True))
            .group_by(UhPlanTranslation.language)
        )
        try:
            async with self._sessionmaker() as session:
                rows = (await session.execute(stmt)).all()
        except SQLAlchemyError as e:
            raise DatabaseError(f"统计套餐译文失败: {e}") from e
        return {language: int(count) for language, count in rows}
