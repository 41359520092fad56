"""
Queue summary statistics.

Recomputed from the live request set on every read; nothing is
maintained incrementally.
"""

import math
from datetime import date, datetime
from typing import Iterable, Optional

from callback_queue.schemas.callback_schema import CallbackRequest, CallbackStatus, QueueStats


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _local_day(value: Optional[datetime], now: datetime) -> Optional[date]:
    if value is None:
        return None
    if now.tzinfo is not None and value.tzinfo is not None:
        value = value.astimezone(now.tzinfo)
    return value.date()


def _failed_instant(request: CallbackRequest) -> datetime:
    # Records loaded from older stores may lack failed_at.
    return request.failed_at or request.last_attempt_at or request.created_at


def compute_queue_stats(
    requests: Iterable[CallbackRequest], now: datetime, available_agents: int = 0
) -> QueueStats:
    """Aggregate the request set into a QueueStats snapshot at ``now``."""
    requests = list(requests)
    pending = [r for r in requests if r.status == CallbackStatus.PENDING]
    today = now.date()

    average_wait = 0
    longest_wait = 0
    if pending:
        average_wait = _round_half_up(
            sum(r.estimated_wait_time for r in pending) / len(pending)
        )
        longest_wait = max(
            _round_half_up((now - r.created_at).total_seconds() / 60) for r in pending
        )
        longest_wait = max(longest_wait, 0)

    return QueueStats(
        total_pending=len(pending),
        total_scheduled=sum(1 for r in requests if r.status == CallbackStatus.SCHEDULED),
        total_in_progress=sum(
            1 for r in requests
            if r.status in (CallbackStatus.IN_PROGRESS, CallbackStatus.ACCEPTED)
        ),
        average_wait_time=average_wait,
        longest_wait=longest_wait,
        completed_today=sum(
            1 for r in requests
            if r.status == CallbackStatus.COMPLETED and _local_day(r.completed_at, now) == today
        ),
        failed_today=sum(
            1 for r in requests
            if r.status == CallbackStatus.FAILED and _local_day(_failed_instant(r), now) == today
        ),
        available_agents_for_callback=available_agents,
    )
