# usim_hub/utils.py
"""本模块包含项目范围内的通用工具函数。"""

import re

from langcodes import Language
from langcodes.tag_parser import LanguageTagError

from usim_hub.core.languages import LANGUAGES_BY_CODE

# 语言子标签应该由 2-3 个字母组成 (BCP 47)
LANGUAGE_SUBTAG_PATTERN = re.compile(r"^[a-zA-Z]{2,3}$")


def validate_lang_codes(lang_codes: list[str]) -> None:
    """使用 `langcodes` 库校验语言代码列表中的每个代码是否符合 BCP 47 规范。"""
    for code in lang_codes:
        try:
            tag = Language.get(code)
            if not tag.language or not LANGUAGE_SUBTAG_PATTERN.match(tag.language):
                raise LanguageTagError(
                    f"Tag '{code}' lacks a valid 2-3 letter language subtag."
                )
        except LanguageTagError as e:
            raise ValueError(f"提供的语言代码 '{code}' 格式无效。原因: {e}") from e


def validate_site_languages(lang_codes: list[str]) -> None:
    """在 BCP 47 校验之上，再确认每个代码都在站点语言表中登记过。"""
    validate_lang_codes(lang_codes)
    unknown = [code for code in lang_codes if code not in LANGUAGES_BY_CODE]
    if unknown:
        raise ValueError(f"以下语言代码不在站点支持列表中: {', '.join(unknown)}")


def is_blank(text: str | None) -> bool:
    return text is None or not text.strip()


def truncate(text: str, limit: int = 60) -> str:
    """用于日志输出的截断，避免把整篇正文写进日志。"""
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"
