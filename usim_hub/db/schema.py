# usim_hub/db/schema.py
"""
内容图谱的 ORM 模型。

- `tips`：原文与译本共用一张表，`original_id` 为空即原文；
- `plans` / `plan_translations`：套餐与其按语言归一化的译文。
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    pass


class UhTip(Base):
    """tip 表：原文与各语言译本"""

    __tablename__ = "tips"
    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    slug: Mapped[str] = mapped_column(String, nullable=False)
    language: Mapped[str] = mapped_column(String(8), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False, default="")
    excerpt: Mapped[str | None] = mapped_column(Text)
    thumbnail_url: Mapped[str | None] = mapped_column(Text)
    category_id: Mapped[str | None] = mapped_column(String)
    seo_meta: Mapped[dict[str, Any] | None] = mapped_column(JSON)
    is_published: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="0", default=False
    )
    view_count: Mapped[int] = mapped_column(
        Integer, nullable=False, server_default="0", default=0
    )
    # 不声明外键：原文被外部删除后，孤儿译本需要能被审计出来
    original_id: Mapped[str | None] = mapped_column(String, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("slug", "language", name="uq_tips_slug_language"),
        UniqueConstraint("original_id", "language", name="uq_tips_original_language"),
        Index("ix_tips_language_published", "language", "is_published"),
    )


class UhPlan(Base):
    """套餐表（韩文原文）"""

    __tablename__ = "plans"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    price: Mapped[int | None] = mapped_column(Integer)
    data: Mapped[str | None] = mapped_column(String)
    voice_minutes: Mapped[str | None] = mapped_column(String)
    sms_count: Mapped[str | None] = mapped_column(String)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default="1", default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    translations: Mapped[list[UhPlanTranslation]] = relationship(
        back_populates="plan", cascade="all, delete-orphan", lazy="selectin"
    )


class UhPlanTranslation(Base):
    """套餐译文表，每个 (plan_id, language) 一行"""

    __tablename__ = "plan_translations"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[int] = mapped_column(
        ForeignKey("plans.id", ondelete="CASCADE"), nullable=False
    )
    language: Mapped[str] = mapped_column(String(8), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    features: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    plan: Mapped[UhPlan] = relationship(back_populates="translations")

    __table_args__ = (
        UniqueConstraint("plan_id", "language", name="uq_plan_translations_plan_language"),
    )
