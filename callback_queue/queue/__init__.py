from callback_queue.queue.ordering import recalculate_queue_positions
from callback_queue.queue.retry_policy import RetryPolicy
from callback_queue.queue.service import CallbackQueueService
from callback_queue.queue.state_machine import CallbackLifecycle, CallbackTrigger
from callback_queue.queue.ticker import WaitTimeTicker

__all__ = [
    "CallbackQueueService",
    "CallbackLifecycle",
    "CallbackTrigger",
    "RetryPolicy",
    "WaitTimeTicker",
    "recalculate_queue_positions",
]
