# tests/unit/test_consistency.py
"""针对 `usim_hub.consistency.ConsistencyChecker` 的单元测试。"""

import pytest

from tests.helpers.factories import make_original, make_variant
from tests.helpers.fakes import InMemoryContentStore
from usim_hub.config import FALLBACK_THUMBNAIL_URL
from usim_hub.consistency import ConsistencyChecker, extract_internal_slugs


@pytest.fixture
def checker(store: InMemoryContentStore) -> ConsistencyChecker:
    return ConsistencyChecker(store)


def test_extract_internal_slugs_keeps_order_and_ignores_other_paths() -> None:
    content = (
        '<a href="/tips/esim-guide">a</a> <a href="/plans/1">b</a> '
        '<a href="https://example.com/tips/x">c</a> <a href="/tips/usim-guide">d</a>'
    )
    assert extract_internal_slugs(content) == ["esim-guide", "usim-guide"]


@pytest.mark.asyncio
async def test_document_without_links_passes(checker: ConsistencyChecker) -> None:
    assert await checker.validate_internal_links("<p>링크 없음</p>", "ko") is True


@pytest.mark.asyncio
async def test_links_must_target_published_content_in_same_language(
    store: InMemoryContentStore, checker: ConsistencyChecker
) -> None:
    store.add(make_original(slug="esim-guide"))
    store.add(make_original(slug="draft-guide", is_published=False))

    ok = '<a href="/tips/esim-guide">eSIM</a>'
    assert await checker.validate_internal_links(ok, "ko") is True
    # 同一个 slug 在英文下不存在
    assert await checker.validate_internal_links(ok, "en") is False

    mixed = ok + '<a href="/tips/draft-guide">draft</a>'
    assert await checker.validate_internal_links(mixed, "ko") is False
    assert await checker.find_invalid_links(mixed, "ko") == ["draft-guide"]


@pytest.mark.asyncio
async def test_scan_links_reports_each_broken_link(
    store: InMemoryContentStore, checker: ConsistencyChecker
) -> None:
    store.add(make_original(slug="target"))
    source = store.add(
        make_original(body='<a href="/tips/target">ok</a><a href="/tips/gone">x</a>')
    )

    issues = await checker.scan_links("ko")

    assert [(i.kind, i.item_id, i.detail) for i in issues] == [
        ("broken_link", source.id, "/tips/gone")
    ]


@pytest.mark.asyncio
async def test_unify_makes_variants_match_original_and_is_idempotent(
    store: InMemoryContentStore, checker: ConsistencyChecker
) -> None:
    original = store.add(make_original(thumbnail_url="https://cdn.example.com/a.jpg"))
    drifted = store.add(make_variant(original, "en", thumbnail_url="https://cdn.example.com/old.jpg"))
    aligned = store.add(make_variant(original, "vi"))

    first = await checker.unify_thumbnails()

    assert first.groups == 1
    assert first.updated_ids == [drifted.id]
    assert store.items[drifted.id].thumbnail_url == original.thumbnail_url
    assert store.items[aligned.id].thumbnail_url == original.thumbnail_url

    second = await checker.unify_thumbnails()
    assert second.updated == 0


@pytest.mark.asyncio
async def test_unify_mirrors_missing_original_thumbnail(
    store: InMemoryContentStore, checker: ConsistencyChecker
) -> None:
    original = store.add(make_original(thumbnail_url=None))
    variant = store.add(make_variant(original, "en", thumbnail_url="https://cdn.example.com/x.jpg"))

    await checker.unify_thumbnails()

    assert store.items[variant.id].thumbnail_url is None


@pytest.mark.parametrize(
    "url, broken",
    [
        (None, True),
        ("", True),
        ("https://via.placeholder.com/600x400", True),
        ("https://placehold.co/600x400", True),
        ("https://images.unsplash.com/photo-1", False),
    ],
)
def test_is_broken_thumbnail(checker: ConsistencyChecker, url: str | None, broken: bool) -> None:
    assert checker.is_broken_thumbnail(url) is broken


@pytest.mark.asyncio
async def test_repair_replaces_broken_original_and_propagates(
    store: InMemoryContentStore, checker: ConsistencyChecker
) -> None:
    original = store.add(make_original(thumbnail_url="https://via.placeholder.com/1"))
    variant = store.add(make_variant(original, "en"))
    healthy = store.add(make_original(thumbnail_url="https://cdn.example.com/ok.jpg"))

    report = await checker.repair_broken_thumbnails()

    assert report.repaired_originals == 1
    assert store.items[original.id].thumbnail_url == FALLBACK_THUMBNAIL_URL
    assert store.items[variant.id].thumbnail_url == FALLBACK_THUMBNAIL_URL
    assert store.items[healthy.id].thumbnail_url == "https://cdn.example.com/ok.jpg"


@pytest.mark.asyncio
async def test_audit_reports_structural_problems_without_changing_anything(
    store: InMemoryContentStore, checker: ConsistencyChecker
) -> None:
    original = store.add(make_original(slug="guide"))
    store.add(make_variant(original, "en"))
    duplicate = store.add(make_variant(original, "en", slug="guide-copy"))
    orphan = store.add(make_variant(make_original(), "vi"))
    english_original = store.add(make_original(slug="en-only").model_copy(update={"language": "en"}))

    issues = await checker.audit_groups()
    kinds = {(i.kind, i.item_id) for i in issues}

    assert ("orphan_variant", orphan.id) in kinds
    assert ("slug_mismatch", duplicate.id) in kinds
    assert ("duplicate_language", original.id) in kinds
    assert ("original_not_source_language", english_original.id) in kinds
    assert store.writes == 0


@pytest.mark.asyncio
async def test_audit_of_healthy_groups_is_empty(
    store: InMemoryContentStore, checker: ConsistencyChecker
) -> None:
    original = store.add(make_original())
    store.add(make_variant(original, "en"))
    store.add(make_variant(original, "vi"))

    assert await checker.audit_groups() == []
