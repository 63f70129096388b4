# usim_hub/driver.py
"""
外部批次驱动器：反复调用套餐批次接口，直到服务端报告没有更多数据。

第一阶段按 `pagination.next_skip` 顺序推进；请求超时或返回错误的批次被记录
并跳过。第二阶段对记录下的失败批次最多重试 `max_retry_rounds` 轮；
恢复的批次若报告还有从未请求过的后续批次，则从它的 `next_skip` 继续推进。
相邻请求之间的间隔由 `RetryPolicy` 的 `call_delay` 负责，测试中可注入睡眠函数。
"""

import httpx
import structlog
from pydantic import BaseModel, Field

from usim_hub.config import DriverConfig
from usim_hub.core.types import PlanBatchReport
from usim_hub.policies.retry import RetryExhaustedError, RetryPolicy, SleepFunc

logger = structlog.get_logger(__name__)


class BatchFailure(BaseModel):
    skip: int
    error: str


class DriverSummary(BaseModel):
    """`failed` 统计服务端报告的失败套餐数；仍未成功的批次记录在 `failed_batches`。"""

    translated: int = 0
    failed: int = 0
    batches: int = 0
    total_plans: int | None = None
    failed_batches: list[BatchFailure] = Field(default_factory=list)
    recovered_batches: list[int] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        # 从未拿到总数说明没有一个批次成功过
        return not self.failed_batches and self.total_plans is not None


class BatchTranslationDriver:
    def __init__(
        self,
        config: DriverConfig,
        sleep: SleepFunc | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        force: bool = False,
    ):
        self.config = config
        self.force = force
        # 驱动器自身不重试单个请求，失败批次留给第二阶段处理
        self.policy = RetryPolicy(
            max_attempts=1, call_delay=config.batch_delay, sleep=sleep
        )
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.request_timeout),
            transport=self._transport,
        )

    async def _post_batch(self, client: httpx.AsyncClient, skip: int) -> PlanBatchReport:
        async def call() -> PlanBatchReport:
            response = await client.post(
                self.config.endpoint,
                json={
                    "skip": skip,
                    "batch_size": self.config.batch_size,
                    "force": self.force,
                },
            )
            response.raise_for_status()
            return PlanBatchReport.model_validate(response.json())

        return await self.policy.execute(call, operation=f"plan batch skip={skip}")

    def _record(self, summary: DriverSummary, report: PlanBatchReport, skip: int) -> None:
        summary.translated += report.stats.translated
        summary.failed += report.stats.failed
        summary.total_plans = report.stats.total_plans
        for error in report.errors:
            logger.warning("批次内部分失败", skip=skip, error=error)
        logger.info(
            report.message,
            processed=report.stats.processed,
            total_plans=report.stats.total_plans,
            remaining=report.stats.remaining,
        )

    async def _walk(
        self,
        client: httpx.AsyncClient,
        skip: int,
        summary: DriverSummary,
        failures: list[BatchFailure],
    ) -> int:
        """从 `skip` 起顺序推进游标，返回本次推进中请求过的最大 skip。"""
        furthest = skip
        has_more = True
        while has_more:
            summary.batches += 1
            furthest = max(furthest, skip)
            try:
                report = await self._post_batch(client, skip)
            except RetryExhaustedError as e:
                logger.warning("批次失败，跳过", skip=skip, error=str(e.last_error))
                failures.append(BatchFailure(skip=skip, error=str(e.last_error)))
                skip += self.config.batch_size
                # 尚未拿到过总数时无法判断是否还有后续批次
                has_more = summary.total_plans is not None and skip < summary.total_plans
                continue

            self._record(summary, report, skip)
            has_more = report.pagination.has_more
            skip = report.pagination.next_skip
        return furthest

    async def run(self, start_from: int = 0) -> DriverSummary:
        summary = DriverSummary()
        pending: list[BatchFailure] = []

        async with self._client() as client:
            logger.info(
                "批次驱动第一阶段开始",
                start_from=start_from,
                batch_size=self.config.batch_size,
            )
            furthest = await self._walk(client, start_from, summary, pending)

            for round_no in range(1, self.config.max_retry_rounds + 1):
                if not pending:
                    break
                logger.info(
                    "批次驱动第二阶段：重试失败批次",
                    round=round_no,
                    max_rounds=self.config.max_retry_rounds,
                    pending=[f.skip for f in pending],
                )
                still_failing: list[BatchFailure] = []
                for failure in pending:
                    summary.batches += 1
                    try:
                        report = await self._post_batch(client, failure.skip)
                    except RetryExhaustedError as e:
                        still_failing.append(
                            BatchFailure(skip=failure.skip, error=str(e.last_error))
                        )
                        continue
                    self._record(summary, report, failure.skip)
                    summary.recovered_batches.append(failure.skip)
                    logger.info("失败批次重试成功", skip=failure.skip)
                    next_skip = report.pagination.next_skip
                    if report.pagination.has_more and next_skip > furthest:
                        # 后续批次从未请求过，从恢复点继续推进游标
                        logger.info("从恢复的批次继续推进", next_skip=next_skip)
                        furthest = await self._walk(client, next_skip, summary, still_failing)
                pending = still_failing

        summary.failed_batches = pending
        logger.info(
            "批次驱动结束",
            translated=summary.translated,
            failed=summary.failed,
            failed_batches=[f.skip for f in pending],
        )
        return summary
