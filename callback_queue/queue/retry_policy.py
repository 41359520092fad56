"""Bounded retry policy for failed callback attempts."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from callback_queue.config import RetryConfig
from callback_queue.schemas.callback_schema import CallbackRequest


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry limits applied to new callback requests.

    The policy is snapshotted onto each request at creation
    (``max_retries``/``retry_interval``); the checks below read the
    request's own snapshot, so replacing the process-wide policy never
    changes the limits of requests already in the queue.
    """

    max_retries: int = 3
    retry_interval_minutes: int = 15
    auto_retry_enabled: bool = True

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_interval_minutes < 0:
            raise ValueError(
                f"retry_interval_minutes must be >= 0, got {self.retry_interval_minutes}"
            )

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            max_retries=config.max_retries,
            retry_interval_minutes=config.retry_interval_minutes,
            auto_retry_enabled=config.auto_retry_enabled,
        )

    @staticmethod
    def can_retry(request: CallbackRequest) -> bool:
        return request.retry_count < request.max_retries

    @staticmethod
    def is_exhausted(request: CallbackRequest) -> bool:
        return request.retry_count >= request.max_retries

    @staticmethod
    def remaining(request: CallbackRequest) -> int:
        return max(request.max_retries - request.retry_count, 0)

    @staticmethod
    def next_retry_at(request: CallbackRequest, now: datetime) -> datetime:
        return now + timedelta(minutes=request.retry_interval)
