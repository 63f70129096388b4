# usim_hub/policies/__init__.py
"""本模块作为调用策略的公共入口。"""

from .retry import RetryExhaustedError, RetryPolicy, default_is_retryable

__all__ = [
    "RetryPolicy",
    "RetryExhaustedError",
    "default_is_retryable",
]
