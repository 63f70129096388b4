# usim_hub/api/app.py
"""FastAPI 应用工厂。协调器在 lifespan 中创建并挂在 `app.state` 上，进程退出时关闭。"""

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from usim_hub import __version__
from usim_hub.api.routes import health_router, router
from usim_hub.config import UsimHubConfig
from usim_hub.coordinator import Coordinator
from usim_hub.core.exceptions import UsimHubError
from usim_hub.persistence import create_content_store

logger = structlog.get_logger(__name__)

CoordinatorFactory = Callable[[UsimHubConfig], Coordinator]


def default_coordinator_factory(config: UsimHubConfig) -> Coordinator:
    return Coordinator(config, create_content_store(config))


def install_error_handlers(app: FastAPI) -> None:
    """业务异常统一转换为 500 JSON 响应。"""

    @app.exception_handler(UsimHubError)
    async def usim_hub_error_handler(request: Request, exc: UsimHubError) -> JSONResponse:
        logger.error(
            "请求处理失败",
            path=request.url.path,
            error_type=exc.__class__.__name__,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={"detail": str(exc), "error": exc.__class__.__name__},
        )


def create_app(
    config: UsimHubConfig | None = None,
    coordinator_factory: CoordinatorFactory = default_coordinator_factory,
) -> FastAPI:
    app_config = config or UsimHubConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        coordinator = coordinator_factory(app_config)
        await coordinator.initialize()
        app.state.coordinator = coordinator
        logger.info("API 服务已启动", engine=app_config.active_engine.value)
        try:
            yield
        finally:
            await coordinator.close()
            logger.info("API 服务已停止")

    app = FastAPI(
        title="usim-hub",
        version=__version__,
        description="多语言内容流水线的批次触发接口",
        lifespan=lifespan,
    )
    app.include_router(router)
    app.include_router(health_router)
    install_error_handlers(app)
    return app
