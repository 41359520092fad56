"""Error taxonomy for callback queue operations.

Every queue operation either succeeds or raises one of these. Each error
carries a stable ``code`` so operator-facing layers can map failures
without string matching.
"""

from typing import Optional


class CallbackQueueError(Exception):
    """Base class for all callback queue errors."""

    code = "callback_queue_error"

    def __init__(self, message: str, callback_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.callback_id = callback_id


class CallbackNotFoundError(CallbackQueueError):
    """Raised when an operation references an unknown callback id."""

    code = "not_found"

    def __init__(self, callback_id: str) -> None:
        super().__init__(f"Callback '{callback_id}' not found.", callback_id)


class InvalidTransitionError(CallbackQueueError):
    """Raised when a trigger is not allowed from the request's current status."""

    code = "invalid_transition"


class RetryExhaustedError(CallbackQueueError):
    """Raised when a retry is requested after max_retries attempts."""

    code = "retry_exhausted"

    def __init__(self, callback_id: str, retry_count: int, max_retries: int) -> None:
        super().__init__(
            f"Callback '{callback_id}' has used {retry_count}/{max_retries} retries.",
            callback_id,
        )
        self.retry_count = retry_count
        self.max_retries = max_retries


class PersistenceError(CallbackQueueError):
    """Raised when the callback store cannot complete a read or write."""

    code = "persistence_failure"


class InvalidCallbackRequestError(CallbackQueueError, ValueError):
    """Raised when a new callback request is missing or has malformed fields."""

    code = "invalid_request"


class UnknownAgentError(CallbackQueueError):
    """Raised when an accept names an agent the directory does not know."""

    code = "unknown_agent"
