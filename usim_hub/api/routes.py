# usim_hub/api/routes.py
"""翻译批次的 HTTP 接口。外部驱动器按 `pagination.next_skip` 反复调用，直到 `has_more` 为 false。"""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from usim_hub import __version__
from usim_hub.api.schemas import BatchRequest, HealthResponse, ResetResponse
from usim_hub.coordinator import Coordinator
from usim_hub.core.types import PlanBatchReport, TipBatchReport, TranslationStatusReport

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/translate", tags=["translate"])
health_router = APIRouter(tags=["health"])


def get_coordinator(request: Request) -> Coordinator:
    """从应用状态中取出由 lifespan 创建的协调器。"""
    coordinator: Coordinator | None = getattr(request.app.state, "coordinator", None)
    if coordinator is None or not coordinator.initialized:
        raise HTTPException(status_code=503, detail="Coordinator is not ready")
    return coordinator


@router.post("/plans", response_model=PlanBatchReport)
async def translate_plans(
    body: BatchRequest, coordinator: Coordinator = Depends(get_coordinator)
) -> PlanBatchReport:
    report = await coordinator.translate_plans(
        skip=body.skip, batch_size=body.batch_size, force=body.force
    )
    logger.info(
        "套餐批次处理完成",
        skip=body.skip,
        translated=report.stats.translated,
        next_skip=report.pagination.next_skip,
        has_more=report.pagination.has_more,
    )
    return report


@router.post("/tips", response_model=TipBatchReport)
async def translate_tips(
    body: BatchRequest, coordinator: Coordinator = Depends(get_coordinator)
) -> TipBatchReport:
    return await coordinator.translate_tips(
        skip=body.skip, batch_size=body.batch_size, force=body.force
    )


@router.get("/status", response_model=TranslationStatusReport)
async def translation_status(
    coordinator: Coordinator = Depends(get_coordinator),
) -> TranslationStatusReport:
    return await coordinator.translation_status()


@router.post("/plans/reset", response_model=ResetResponse)
async def reset_plan_translations(
    coordinator: Coordinator = Depends(get_coordinator),
) -> ResetResponse:
    deleted = await coordinator.reset_plan_translations()
    return ResetResponse(message="All plan translations cleared", deleted=deleted)


@health_router.get("/health", response_model=HealthResponse)
async def health(coordinator: Coordinator = Depends(get_coordinator)) -> HealthResponse:
    return HealthResponse(
        status="ok", version=__version__, engine=coordinator.config.active_engine.value
    )
