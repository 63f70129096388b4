# tests/unit/test_linking.py
"""针对 `usim_hub.linking.RelatedContentLinker` 的单元测试。"""

import pytest
from bs4 import BeautifulSoup

from tests.helpers.factories import make_original
from tests.helpers.fakes import InMemoryContentStore
from usim_hub.core.types import RelatedContent
from usim_hub.linking import RelatedContentLinker, related_heading_for


def _related(slug: str, title: str, language: str = "ko", views: int = 0) -> RelatedContent:
    return RelatedContent(id=slug, slug=slug, title=title, language=language, view_count=views)


@pytest.fixture
def linker(store: InMemoryContentStore) -> RelatedContentLinker:
    return RelatedContentLinker(store)


def test_no_related_items_returns_content_unchanged(linker: RelatedContentLinker) -> None:
    content = "<p>eSIM 개통 방법</p>"
    assert linker.insert_internal_links(content, []) == content


def test_links_only_the_first_occurrence(linker: RelatedContentLinker) -> None:
    content = "<p>eSIM 개통은 쉽습니다.</p><p>eSIM 개통 후 재부팅하세요.</p>"

    result = linker.insert_internal_links(content, [_related("esim", "eSIM 개통")])

    soup = BeautifulSoup(result, "html.parser")
    links = soup.select("a.internal-link")
    assert len(links) == 1
    assert links[0]["href"] == "/tips/esim"
    assert links[0]["title"] == "eSIM 개통"
    assert soup.find_all("p")[1].find("a") is None


def test_match_is_case_insensitive_and_keeps_original_casing(
    linker: RelatedContentLinker,
) -> None:
    result = linker.insert_internal_links(
        "<p>Read the USIM Guide first.</p>", [_related("usim", "usim guide", "en")], "en"
    )
    link = BeautifulSoup(result, "html.parser").select_one("a.internal-link")
    assert link is not None
    assert link.get_text() == "USIM Guide"


def test_existing_links_attributes_and_code_are_never_rewritten(
    linker: RelatedContentLinker,
) -> None:
    content = (
        '<p><a href="/tips/other">유심 가이드</a></p>'
        '<img alt="유심 가이드" src="x.jpg"/>'
        "<pre>유심 가이드</pre>"
        "<p>마지막 유심 가이드</p>"
    )

    result = linker.insert_internal_links(content, [_related("usim", "유심 가이드")])

    soup = BeautifulSoup(result, "html.parser")
    assert soup.find("img")["alt"] == "유심 가이드"
    assert soup.find("pre").find("a") is None
    assert soup.find("a", href="/tips/other").get_text() == "유심 가이드"
    assert soup.find_all("p")[1].find("a")["href"] == "/tips/usim"


def test_related_section_uses_localized_heading_and_items(
    linker: RelatedContentLinker,
) -> None:
    related = [_related("a", "Guide A", "en"), _related("b", "Guide <B>", "en")]

    result = linker.insert_internal_links("<p>Nothing matches here.</p>", related, "en")

    assert result.startswith("<p>Nothing matches here.</p>\n<h2>Related posts</h2>")
    soup = BeautifulSoup(result, "html.parser")
    items = soup.select("div.related-posts ul li a.related-link")
    assert [a["href"] for a in items] == ["/tips/a", "/tips/b"]
    assert items[1].get_text() == "Guide <B>"


def test_section_goes_before_closing_body_tag(linker: RelatedContentLinker) -> None:
    content = "<html><body><p>본문</p></body></html>"

    result = linker.insert_internal_links(content, [_related("a", "없는 제목")])

    assert result.index("<h2>관련 글</h2>") < result.index("</body>")
    assert result.endswith("</body></html>")


def test_existing_section_is_not_appended_twice(linker: RelatedContentLinker) -> None:
    once = linker.insert_internal_links("<p>본문</p>", [_related("a", "제목")])
    twice = linker.insert_internal_links(once, [_related("a", "제목")])
    assert twice.count("related-posts") == 1


@pytest.mark.parametrize(
    "language, heading", [("ko", "관련 글"), ("en", "Related posts"), ("xx", "관련 글")]
)
def test_related_heading_for(language: str, heading: str) -> None:
    assert related_heading_for(language) == heading


@pytest.mark.asyncio
async def test_find_related_content_orders_by_views_and_limits(
    store: InMemoryContentStore,
) -> None:
    for views in range(7):
        store.add(make_original(title=f"유심 팁 {views}", view_count=views))
    store.add(make_original(title="유심 초안", is_published=False, view_count=100))
    linker = RelatedContentLinker(store)

    related = await linker.find_related_content("유심")

    assert len(related) == 5
    assert [r.view_count for r in related] == [6, 5, 4, 3, 2]


@pytest.mark.asyncio
async def test_link_item_writes_body_back_and_excludes_itself(
    store: InMemoryContentStore, linker: RelatedContentLinker
) -> None:
    target = store.add(make_original(slug="esim-guide", title="eSIM 가이드"))
    item = store.add(make_original(title="유심 비교", body="<p>eSIM 가이드를 참고하세요.</p>"))

    related = await linker.link_item(item, "eSIM", ["가이드"])

    assert [r.id for r in related] == [target.id]
    body = store.items[item.id].body
    assert 'href="/tips/esim-guide"' in body
    assert "related-posts" in body


@pytest.mark.asyncio
async def test_link_item_without_matches_leaves_body(
    store: InMemoryContentStore, linker: RelatedContentLinker
) -> None:
    item = store.add(make_original(body="<p>본문</p>"))

    assert await linker.link_item(item, "로밍") == []
    assert store.items[item.id].body == "<p>본문</p>"
    assert store.writes == 0
