"""
Finite state machine governing a callback request's lifecycle.

Defines 8 callback states and the explicit transitions between them.
Every status change made by the queue service is resolved through this
table, so a request can only move along an edge listed here.

Usage:
    lifecycle = CallbackLifecycle()
    new_status = lifecycle.resolve(CallbackStatus.PENDING, CallbackTrigger.NOTIFY)
    assert new_status == CallbackStatus.NOTIFIED
"""

import logging
from dataclasses import dataclass
from enum import Enum

from callback_queue.errors import InvalidTransitionError
from callback_queue.schemas.callback_schema import CallbackStatus

logger = logging.getLogger(__name__)


class CallbackTrigger(str, Enum):
    """Commands that cause status transitions."""
    NOTIFY = "notify"
    ACCEPT = "accept"
    REJECT = "reject"
    START = "start"
    COMPLETE = "complete"
    RETRY = "retry"
    CANCEL = "cancel"
    FAIL = "fail"
    RELEASE = "release"


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_state: CallbackStatus
    to_state: CallbackStatus
    trigger: CallbackTrigger


TERMINAL_STATES = frozenset({
    CallbackStatus.COMPLETED,
    CallbackStatus.FAILED,
    CallbackStatus.CANCELLED,
})

WORKING_STATES = frozenset({
    CallbackStatus.NOTIFIED,
    CallbackStatus.ACCEPTED,
    CallbackStatus.IN_PROGRESS,
})

_OPEN_STATES = (
    CallbackStatus.PENDING,
    CallbackStatus.SCHEDULED,
    CallbackStatus.NOTIFIED,
    CallbackStatus.ACCEPTED,
    CallbackStatus.IN_PROGRESS,
)


class CallbackLifecycle:
    """
    Transition table for callback requests.

    The table is the only place that knows which command is legal from
    which status. Commands not listed for a status are rejected with
    InvalidTransitionError naming the triggers that are allowed.
    """

    TRANSITIONS: list[Transition] = [
        # --- Agent notification ---
        Transition(CallbackStatus.PENDING, CallbackStatus.NOTIFIED, CallbackTrigger.NOTIFY),

        # --- Assignment ---
        Transition(CallbackStatus.PENDING, CallbackStatus.ACCEPTED, CallbackTrigger.ACCEPT),
        Transition(CallbackStatus.NOTIFIED, CallbackStatus.ACCEPTED, CallbackTrigger.ACCEPT),
        Transition(CallbackStatus.PENDING, CallbackStatus.PENDING, CallbackTrigger.REJECT),
        Transition(CallbackStatus.NOTIFIED, CallbackStatus.PENDING, CallbackTrigger.REJECT),
        Transition(CallbackStatus.ACCEPTED, CallbackStatus.PENDING, CallbackTrigger.REJECT),

        # --- Call ---
        Transition(CallbackStatus.ACCEPTED, CallbackStatus.IN_PROGRESS, CallbackTrigger.START),
        Transition(CallbackStatus.NOTIFIED, CallbackStatus.COMPLETED, CallbackTrigger.COMPLETE),
        Transition(CallbackStatus.ACCEPTED, CallbackStatus.COMPLETED, CallbackTrigger.COMPLETE),
        Transition(CallbackStatus.IN_PROGRESS, CallbackStatus.COMPLETED, CallbackTrigger.COMPLETE),

        # --- Retry (guarded by RetryPolicy in the service) ---
        Transition(CallbackStatus.PENDING, CallbackStatus.PENDING, CallbackTrigger.RETRY),
        Transition(CallbackStatus.FAILED, CallbackStatus.PENDING, CallbackTrigger.RETRY),

        # --- Scheduled window opens ---
        Transition(CallbackStatus.SCHEDULED, CallbackStatus.PENDING, CallbackTrigger.RELEASE),

        # --- Cancellation and failure from any open state ---
        *[Transition(s, CallbackStatus.CANCELLED, CallbackTrigger.CANCEL) for s in _OPEN_STATES],
        *[Transition(s, CallbackStatus.FAILED, CallbackTrigger.FAIL) for s in _OPEN_STATES],
    ]

    def resolve(
        self, current: CallbackStatus, trigger: CallbackTrigger, callback_id: str = ""
    ) -> CallbackStatus:
        """
        Look up the target status for a trigger.

        Args:
            current: The request's current status.
            trigger: The command being applied.
            callback_id: Included in the error for traceability.

        Returns:
            The status the request moves to.

        Raises:
            InvalidTransitionError: If the trigger is not allowed from ``current``.
        """
        for t in self.TRANSITIONS:
            if t.from_state == current and t.trigger == trigger:
                logger.debug(
                    "Status transition: %s -> %s (trigger: %s)",
                    current.value, t.to_state.value, trigger.value,
                )
                return t.to_state

        valid = [t.value for t in self.get_valid_triggers(current)]
        raise InvalidTransitionError(
            f"No valid transition from '{current.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}",
            callback_id or None,
        )

    def can_apply(self, current: CallbackStatus, trigger: CallbackTrigger) -> bool:
        return any(t.from_state == current and t.trigger == trigger for t in self.TRANSITIONS)

    def get_valid_triggers(self, current: CallbackStatus) -> list[CallbackTrigger]:
        """Return all triggers valid from the given status."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == current]

    @staticmethod
    def is_terminal(status: CallbackStatus) -> bool:
        """Completed, failed and cancelled requests are closed."""
        return status in TERMINAL_STATES
