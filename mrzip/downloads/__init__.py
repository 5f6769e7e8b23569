"""Concurrent file downloads."""

from .retry_utils import (
    is_retryable_download_error,
    is_retryable_status,
    retry_with_exponential_backoff,
)
from .scheduler import (
    DownloadResult,
    DownloadScheduler,
    SchedulerSummary,
    apply_cors_proxy,
)

__all__ = [
    "DownloadResult",
    "DownloadScheduler",
    "SchedulerSummary",
    "apply_cors_proxy",
    "is_retryable_download_error",
    "is_retryable_status",
    "retry_with_exponential_backoff",
]
