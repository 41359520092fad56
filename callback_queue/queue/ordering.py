"""Priority ordering of the pending callback queue."""

from typing import Iterable

from callback_queue.schemas.callback_schema import CallbackRequest, CallbackStatus


def queue_sort_key(request: CallbackRequest) -> tuple:
    """Band-major, creation-time-minor: urgent before high before normal, FIFO within a band."""
    return (request.priority.rank, request.created_at)


def recalculate_queue_positions(requests: Iterable[CallbackRequest]) -> list[CallbackRequest]:
    """
    Assign 1-based queue positions to pending requests, 0 to everything else.

    Returns new request objects in the input order; inputs are not mutated.
    Python's sort is stable, so requests equal on both keys keep their
    relative input order and the result is deterministic.
    """
    requests = list(requests)
    pending = sorted(
        (r for r in requests if r.status == CallbackStatus.PENDING),
        key=queue_sort_key,
    )
    positions = {r.id: index for index, r in enumerate(pending, start=1)}

    return [
        r.model_copy(update={"queue_position": positions.get(r.id, 0)})
        for r in requests
    ]


def ordered_pending(requests: Iterable[CallbackRequest]) -> list[CallbackRequest]:
    """Pending requests sorted by their queue position."""
    return sorted(
        (r for r in requests if r.status == CallbackStatus.PENDING),
        key=lambda r: r.queue_position,
    )
