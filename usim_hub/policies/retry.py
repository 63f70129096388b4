# usim_hub/policies/retry.py
"""
外部调用的统一重试与节流策略。

翻译网关（逐次翻译调用）和批次驱动器（逐批 HTTP 请求）都通过同一个
`RetryPolicy` 执行外部调用：
- 相邻两次调用之间至少间隔 `call_delay` 秒；
- 失败后按 `backoff_base × 已尝试次数` 线性退避（上限 `max_backoff`）；
- 遇到不可重试的错误立即放弃；
- 睡眠函数可注入，测试中无需真实等待。
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

from usim_hub.config import RetryPolicyConfig
from usim_hub.core.exceptions import UsimHubError

T = TypeVar("T")
SleepFunc = Callable[[float], Awaitable[None]]

logger = structlog.get_logger(__name__)


class RetryExhaustedError(UsimHubError):
    """一次外部调用在所有尝试（或遇到不可重试错误）后仍然失败。"""

    def __init__(self, operation: str, attempts: int, last_error: BaseException):
        super().__init__(f"{operation} 在 {attempts} 次尝试后失败: {last_error}")
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


def default_is_retryable(error: BaseException) -> bool:
    """带有 `is_retryable` 属性的异常（如 APIError）以其为准，其余异常视为可重试。"""
    return bool(getattr(error, "is_retryable", True))


class RetryPolicy:
    def __init__(
        self,
        max_attempts: int = 3,
        backoff_base: float = 1.0,
        max_backoff: float = 30.0,
        call_delay: float = 0.0,
        sleep: SleepFunc | None = None,
        is_retryable: Callable[[BaseException], bool] = default_is_retryable,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts 必须至少为 1")
        if backoff_base < 0 or max_backoff < 0 or call_delay < 0:
            raise ValueError("退避与间隔时间不能为负数")
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.max_backoff = max_backoff
        self.call_delay = call_delay
        self.is_retryable = is_retryable
        self._sleep = sleep
        self._has_called = False

    @classmethod
    def from_config(
        cls, config: RetryPolicyConfig, sleep: SleepFunc | None = None
    ) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            backoff_base=config.backoff_base,
            max_backoff=config.max_backoff,
            call_delay=config.call_delay,
            sleep=sleep,
        )

    def backoff_for(self, attempt: int) -> float:
        """第 `attempt` 次尝试失败后的等待时间。"""
        return min(self.backoff_base * attempt, self.max_backoff)

    async def _wait(self, seconds: float) -> None:
        if seconds <= 0:
            return
        sleep = self._sleep or asyncio.sleep
        await sleep(seconds)

    async def execute(
        self, func: Callable[[], Awaitable[T]], operation: str = "external call"
    ) -> T:
        """
        执行 `func`，按策略重试。

        Raises:
            RetryExhaustedError: 重试耗尽或遇到不可重试错误。
        """
        if self._has_called:
            await self._wait(self.call_delay)

        attempt = 0
        while True:
            attempt += 1
            self._has_called = True
            try:
                return await func()
            except Exception as e:
                retryable = self.is_retryable(e)
                if not retryable or attempt >= self.max_attempts:
                    logger.warning(
                        "外部调用失败，放弃重试",
                        operation=operation,
                        attempt=attempt,
                        retryable=retryable,
                        error=str(e),
                    )
                    raise RetryExhaustedError(operation, attempt, e) from e

                backoff = self.backoff_for(attempt)
                logger.info(
                    "外部调用失败，等待后重试",
                    operation=operation,
                    attempt=attempt,
                    backoff=backoff,
                    error=str(e),
                )
                await self._wait(backoff)
