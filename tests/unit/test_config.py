# tests/unit/test_config.py
"""针对 `usim_hub.config.UsimHubConfig` 的单元测试。"""

import pytest
from pydantic import ValidationError

from usim_hub.config import EngineName, UsimHubConfig


def test_defaults_target_every_site_language_except_korean(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("UH_TARGET_LANGS", raising=False)
    config = UsimHubConfig(_env_file=None)

    assert config.source_lang == "ko"
    assert config.target_langs[0] == "en"
    assert "ko" not in config.target_langs
    assert len(config.target_langs) == 11


def test_target_langs_are_reordered_and_deduplicated() -> None:
    config = UsimHubConfig(_env_file=None, target_langs=["ru", "en", "ru", "th"])
    assert config.target_langs == ["en", "th", "ru"]


def test_source_language_cannot_be_a_target() -> None:
    with pytest.raises(ValidationError, match="不能同时作为目标语言"):
        UsimHubConfig(_env_file=None, source_lang="en", target_langs=["en", "vi"])


def test_unsupported_target_language_is_rejected() -> None:
    with pytest.raises(ValidationError):
        UsimHubConfig(_env_file=None, target_langs=["en", "fr"])


def test_empty_target_list_is_rejected() -> None:
    with pytest.raises(ValidationError):
        UsimHubConfig(_env_file=None, target_langs=[])


def test_nested_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("UH_ACTIVE_ENGINE", "debug")
    monkeypatch.setenv("UH_RETRY_POLICY__MAX_ATTEMPTS", "5")
    monkeypatch.setenv("UH_DRIVER__BATCH_SIZE", "4")

    config = UsimHubConfig(_env_file=None)

    assert config.active_engine is EngineName.DEBUG
    assert config.retry_policy.max_attempts == 5
    assert config.driver.batch_size == 4


def test_retry_policy_rejects_backoff_cap_below_base() -> None:
    with pytest.raises(ValidationError, match="max_backoff"):
        UsimHubConfig(_env_file=None, retry_policy={"backoff_base": 10, "max_backoff": 5})


@pytest.mark.parametrize(
    "url, expected",
    [
        ("sqlite+aiosqlite:///usim_hub.db", "usim_hub.db"),
        ("sqlite+aiosqlite:////var/data/hub.db", "/var/data/hub.db"),
        ("sqlite+aiosqlite:///:memory:", ":memory:"),
    ],
)
def test_db_path_for_sqlite_urls(url: str, expected: str) -> None:
    config = UsimHubConfig(_env_file=None, database_url=url)
    assert config.is_sqlite
    assert config.db_path == expected


def test_db_path_is_unavailable_for_postgres() -> None:
    config = UsimHubConfig(
        _env_file=None, database_url="postgresql+asyncpg://user:pw@localhost/usim"
    )
    assert not config.is_sqlite
    with pytest.raises(ValueError, match="db_path"):
        _ = config.db_path
