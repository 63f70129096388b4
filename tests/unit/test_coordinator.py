# tests/unit/test_coordinator.py
"""
针对 `usim_hub.coordinator.Coordinator` 的单元测试：生命周期、组件装配，
以及不加载翻译引擎的维护模式。
"""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from pytest_mock import MockerFixture

from tests.helpers.factories import make_original, make_plan, make_variant
from tests.helpers.fakes import InMemoryContentStore, RecordingSleep
from usim_hub.config import UsimHubConfig
from usim_hub.core.exceptions import ConfigurationError, DataIntegrityError
from usim_hub.core.types import ItemOutcome, NewPlan
from usim_hub.coordinator import Coordinator
from usim_hub.engines.debug import DebugEngine, DebugEngineConfig


@pytest_asyncio.fixture
async def coordinator(
    test_config: UsimHubConfig, store: InMemoryContentStore, sleep: RecordingSleep
) -> AsyncGenerator[Coordinator, None]:
    coordinator = Coordinator(
        test_config, store, engine=DebugEngine(DebugEngineConfig()), sleep=sleep
    )
    await coordinator.initialize()
    yield coordinator
    await coordinator.close()


@pytest.mark.asyncio
async def test_context_manager_connects_and_closes(
    test_config: UsimHubConfig, store: InMemoryContentStore
) -> None:
    engine = DebugEngine(DebugEngineConfig())

    async with Coordinator(test_config, store, engine=engine) as coordinator:
        assert coordinator.initialized
        assert store.connected
        assert engine.initialized

    assert store.closed
    assert not engine.initialized
    assert not coordinator.initialized


@pytest.mark.asyncio
async def test_engine_is_created_from_config_when_not_injected(
    test_config: UsimHubConfig, store: InMemoryContentStore
) -> None:
    async with Coordinator(test_config, store) as coordinator:
        assert isinstance(coordinator.gateway.engine, DebugEngine)


@pytest.mark.asyncio
async def test_engine_failure_closes_store_and_propagates(
    test_config: UsimHubConfig, store: InMemoryContentStore, mocker: MockerFixture
) -> None:
    mocker.patch(
        "usim_hub.coordinator.create_engine",
        side_effect=ConfigurationError("缺少 API 密钥"),
    )
    coordinator = Coordinator(test_config, store)

    with pytest.raises(ConfigurationError):
        await coordinator.initialize()

    assert store.closed
    assert not coordinator.initialized


@pytest.mark.asyncio
async def test_maintenance_mode_does_not_load_engine(
    test_config: UsimHubConfig, store: InMemoryContentStore, mocker: MockerFixture
) -> None:
    create_engine = mocker.patch("usim_hub.coordinator.create_engine")
    store.add_plan(make_plan(1, translations={"en": {"description": "Plan"}}))
    coordinator = Coordinator(test_config, store)

    await coordinator.initialize(load_engine=False)
    try:
        assert await coordinator.reset_plan_translations() == 1
        with pytest.raises(RuntimeError, match="Translation engine was not loaded"):
            await coordinator.translate_plans()
    finally:
        await coordinator.close()

    create_engine.assert_not_called()


@pytest.mark.asyncio
async def test_operations_require_initialization(
    test_config: UsimHubConfig, store: InMemoryContentStore
) -> None:
    coordinator = Coordinator(test_config, store)
    with pytest.raises(RuntimeError, match="not initialized"):
        await coordinator.translation_status()


@pytest.mark.asyncio
async def test_close_is_idempotent(coordinator: Coordinator, store: InMemoryContentStore) -> None:
    await coordinator.close()
    await coordinator.close()
    assert store.closed


@pytest.mark.asyncio
async def test_translate_tips_uses_configured_targets(
    coordinator: Coordinator, store: InMemoryContentStore
) -> None:
    original = store.add(make_original())

    report = await coordinator.translate_tips()

    assert report.items[0].outcome is ItemOutcome.CREATED
    assert sorted(v.language for v in store.variants_of(original.id)) == ["en", "vi"]


@pytest.mark.asyncio
async def test_translation_status_counts_every_target(
    coordinator: Coordinator, store: InMemoryContentStore
) -> None:
    original = store.add(make_original())
    store.add(make_variant(original, "en"))
    store.add_plan(make_plan(1, translations={"vi": {"description": "Gói", "features": []}}))
    store.add_plan(make_plan(2, is_active=False))

    status = await coordinator.translation_status()

    assert status.total_originals == 1
    assert status.tip_counts == {"en": 1, "vi": 0}
    assert status.total_plans == 1
    assert status.plan_counts == {"en": 0, "vi": 1}
    assert status.sample_plan is not None
    assert status.sample_plan["description_vi"] == "Gói"
    assert status.sample_plan["features_en"] is None


@pytest.mark.asyncio
async def test_fix_quality_on_clean_content_does_nothing(
    coordinator: Coordinator, store: InMemoryContentStore
) -> None:
    original = store.add(make_original())
    store.add(make_variant(original, "en"))

    result = await coordinator.fix_quality()

    assert (result.fixed, result.failed) == (0, 0)
    assert store.writes == 0


@pytest.mark.asyncio
async def test_link_related_unknown_item_raises(coordinator: Coordinator) -> None:
    with pytest.raises(DataIntegrityError, match="missing-id"):
        await coordinator.link_related("missing-id", "유심")


@pytest.mark.asyncio
async def test_replace_all_plans_renumbers(
    coordinator: Coordinator, store: InMemoryContentStore
) -> None:
    store.add_plan(make_plan(7))

    count = await coordinator.replace_all_plans(
        [NewPlan(name="A", data="10GB"), NewPlan(name="B", description="설명")]
    )

    assert count == 2
    assert sorted(store.plans) == [1, 2]
    assert store.plans[1].description == "10GB 데이터 / - 통화 / - 문자"
