# tests/helpers/factories.py
"""
提供用于创建一致、可预测的测试数据的工厂函数。
所有参数都有合理默认值，测试用例只需要覆盖它关心的字段。
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from usim_hub.core.types import ContentItem, PlanRecord, PlanTranslation

SOURCE_LANG = "ko"
KOREAN_TITLE = "외국인을 위한 유심 개통 가이드"
KOREAN_EXCERPT = "한국에서 유심을 개통하는 방법"
KOREAN_BODY = "<p>여권과 외국인등록증을 준비하세요.</p>"
THUMBNAIL = "https://cdn.example.com/tips/usim-guide.jpg"


def make_original(
    *,
    slug: str | None = None,
    title: str = KOREAN_TITLE,
    excerpt: str | None = KOREAN_EXCERPT,
    body: str = KOREAN_BODY,
    thumbnail_url: str | None = THUMBNAIL,
    is_published: bool = True,
    created_at: datetime | None = None,
    **overrides: Any,
) -> ContentItem:
    """创建一篇韩文原文。slug 默认唯一，避免测试之间冲突。"""
    return ContentItem(
        slug=slug or f"usim-guide-{uuid.uuid4().hex[:8]}",
        language=SOURCE_LANG,
        title=title,
        excerpt=excerpt,
        body=body,
        thumbnail_url=thumbnail_url,
        is_published=is_published,
        created_at=created_at or datetime.now(timezone.utc),
        **overrides,
    )


def make_variant(
    original: ContentItem,
    language: str,
    *,
    title: str | None = None,
    excerpt: str | None = None,
    body: str | None = None,
    **overrides: Any,
) -> ContentItem:
    """创建原文在某语言下的译本，默认使用不含韩文的占位译文。"""
    fields: dict[str, Any] = {
        "slug": original.slug,
        "language": language,
        "title": title if title is not None else f"[{language}] USIM activation guide",
        "excerpt": excerpt if excerpt is not None else f"[{language}] How to activate",
        "body": body if body is not None else f"<p>[{language}] Prepare your passport.</p>",
        "thumbnail_url": original.thumbnail_url,
        "is_published": original.is_published,
        "original_id": original.id,
    }
    fields.update(overrides)
    return ContentItem(**fields)


def make_plan(
    plan_id: int,
    *,
    name: str | None = None,
    description: str | None = "무제한 데이터 요금제",
    features: list[str] | None = None,
    translations: dict[str, dict[str, Any]] | None = None,
    is_active: bool = True,
) -> PlanRecord:
    return PlanRecord(
        id=plan_id,
        name=name or f"플랜 {plan_id}",
        description=description,
        features=features if features is not None else ["무제한 통화", "5G 지원"],
        price=33000,
        data="무제한",
        voice_minutes="무제한",
        sms_count="무제한",
        is_active=is_active,
        translations={
            lang: PlanTranslation(plan_id=plan_id, language=lang, **values)
            for lang, values in (translations or {}).items()
        },
    )
