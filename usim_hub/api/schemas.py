# usim_hub/api/schemas.py
"""批次触发接口的请求模型。响应模型直接复用 `usim_hub.core.types` 中的报告类型。"""

from pydantic import BaseModel, Field


class BatchRequest(BaseModel):
    skip: int = Field(default=0, ge=0)
    batch_size: int = Field(default=2, gt=0, le=100)
    force: bool = False


class ResetResponse(BaseModel):
    message: str
    deleted: int


class HealthResponse(BaseModel):
    status: str
    version: str
    engine: str
