# usim_hub/core/languages.py
"""站点支持的语言表：数据库代码、翻译 API 代码、预期文字体系与本地化文案。"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Language:
    """单个站点语言的静态描述。"""

    code: str
    name: str
    script: str
    related_heading: str
    api_code: str | None = None

    @property
    def translate_code(self) -> str:
        """发送给翻译服务的语言代码（数据库代码与 API 代码不一定相同）。"""
        return self.api_code or self.code


SOURCE_LANGUAGE = Language(
    code="ko", name="Korean", script="Korean", related_heading="관련 글"
)

# 声明顺序即处理顺序，不要随意调整。
TARGET_LANGUAGES: tuple[Language, ...] = (
    Language("en", "English", "Latin/Other", "Related posts"),
    Language("vi", "Vietnamese", "Latin/Other", "Mẹo liên quan"),
    Language("th", "Thai", "Thai", "บทความที่เกี่ยวข้อง"),
    Language("tl", "Tagalog", "Latin/Other", "Mga Kaugnay na Tip"),
    Language("uz", "Uzbek", "Latin/Other", "Tegishli maslahatlar"),
    Language("ne", "Nepali", "Devanagari", "सम्बन्धित लेखहरू"),
    Language("mn", "Mongolian", "Cyrillic", "Холбоотой нийтлэлүүд"),
    Language("id", "Indonesian", "Latin/Other", "Artikel terkait"),
    Language("my", "Burmese", "Burmese", "ဆက်စပ်ဆောင်းပါးများ"),
    Language("zh", "Chinese (Simplified)", "Chinese", "相关小贴士", api_code="zh-CN"),
    Language("ru", "Russian", "Cyrillic", "Похожие статьи"),
)

LANGUAGES_BY_CODE: dict[str, Language] = {
    lang.code: lang for lang in (SOURCE_LANGUAGE, *TARGET_LANGUAGES)
}

SUPPORTED_LANGUAGE_CODES: tuple[str, ...] = tuple(LANGUAGES_BY_CODE)
DEFAULT_TARGET_CODES: list[str] = [lang.code for lang in TARGET_LANGUAGES]


def get_language(code: str) -> Language:
    """按数据库代码查找语言，未知代码抛出 KeyError。"""
    try:
        return LANGUAGES_BY_CODE[code]
    except KeyError:
        raise KeyError(f"不支持的语言代码: '{code}'") from None


def translate_code_for(code: str) -> str:
    """数据库语言代码 -> 翻译 API 语言代码；未登记的代码原样返回。"""
    lang = LANGUAGES_BY_CODE.get(code)
    return lang.translate_code if lang else code


def order_languages(codes: list[str] | set[str]) -> list[str]:
    """按声明顺序排列语言代码，未登记的代码排在最后并保持字母序。"""
    declared = [c for c in SUPPORTED_LANGUAGE_CODES if c in codes]
    extra = sorted(c for c in codes if c not in LANGUAGES_BY_CODE)
    return declared + extra
