"""
Callback queue service: the single owner of the callback request set.

All commands (create, notify, accept, reject, start, complete, retry,
cancel, fail, release) and the periodic wait-time decay run under one
asyncio lock. Each command works on a copy of the request set:

    validate -> mutate copy -> recompute positions -> persist -> swap in

The live snapshot is only replaced after the store confirms the write,
so a failed save leaves memory and store in agreement and readers never
observe a half-applied change.
"""

import asyncio
import random
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from callback_queue.config import QueueConfig, StoreConfig, settings
from callback_queue.errors import (
    CallbackNotFoundError,
    InvalidCallbackRequestError,
    PersistenceError,
    RetryExhaustedError,
    UnknownAgentError,
)
from callback_queue.logging_context import callback_scope, get_callback_logger
from callback_queue.queue.notifications import active_notifications, project_notifications
from callback_queue.queue.ordering import ordered_pending, recalculate_queue_positions
from callback_queue.queue.retry_policy import RetryPolicy
from callback_queue.queue.state_machine import CallbackLifecycle, CallbackTrigger
from callback_queue.queue.stats import compute_queue_stats
from callback_queue.schemas.callback_schema import (
    AgentCallbackNotification,
    CallbackChannel,
    CallbackNote,
    CallbackPriority,
    CallbackRequest,
    CallbackStatus,
    EventLevel,
    NoteType,
    QueueEvent,
    QueueStats,
)
from callback_queue.tools.agent_directory import AgentDirectory
from callback_queue.tools.clock import Clock, SystemClock
from callback_queue.tools.notification_sink import LoggingNotificationSink, NotificationSink
from callback_queue.tools.store import CallbackStore, StoreError
from callback_queue.utils import is_dialable_phone

logger = get_callback_logger(__name__)

SYSTEM_AUTHOR = "System"

# Builds the updated request from (current request, target status, now).
Mutation = Callable[[CallbackRequest, CallbackStatus, datetime], CallbackRequest]


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex}"


def _with_note(
    request: CallbackRequest,
    content: str,
    now: datetime,
    created_by: str = SYSTEM_AUTHOR,
    note_type: NoteType = NoteType.SYSTEM,
    **updates,
) -> CallbackRequest:
    """Return a copy of ``request`` with ``updates`` applied and one note appended."""
    note = CallbackNote(
        id=_new_id("note"),
        content=content,
        created_at=now,
        created_by=created_by,
        type=note_type,
    )
    return request.model_copy(update={**updates, "notes": [*request.notes, note]})


class CallbackQueueService:
    """
    Owns the callback request set and exposes the lifecycle commands.

    Collaborators are injected: the durable store, the clock, the
    operator notification sink and (optionally) the agent directory used
    to validate accepts and report agent availability.
    """

    def __init__(
        self,
        store: CallbackStore,
        clock: Optional[Clock] = None,
        sink: Optional[NotificationSink] = None,
        agent_directory: Optional[AgentDirectory] = None,
        retry_policy: Optional[RetryPolicy] = None,
        queue_config: Optional[QueueConfig] = None,
        store_config: Optional[StoreConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._sink = sink or LoggingNotificationSink()
        self._agents = agent_directory
        self._retry_policy = retry_policy or RetryPolicy.from_config(settings.retry)
        self._queue_config = queue_config or settings.queue
        self._store_config = store_config or settings.store
        self._rng = rng or random.Random()
        self._lifecycle = CallbackLifecycle()
        self._lock = asyncio.Lock()

        self._callbacks: dict[str, CallbackRequest] = {}
        self._notifications: list[AgentCallbackNotification] = []

    # ------------------------------------------------------------------
    # Loading and configuration
    # ------------------------------------------------------------------

    async def load(self) -> int:
        """Replace the in-memory set with the store's contents. Returns the count loaded."""
        async with self._lock:
            try:
                stored = await self._store.load()
            except (StoreError, OSError) as exc:
                raise PersistenceError(f"Could not load callback queue: {exc}") from exc
            ordered = recalculate_queue_positions(stored)
            self._callbacks = {r.id: r for r in ordered}
            self._notifications = self._project(ordered)
            logger.info("Loaded %d callbacks (%d pending)", len(ordered), len(ordered_pending(ordered)))
            return len(ordered)

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def set_retry_policy(self, policy: RetryPolicy) -> None:
        """Replace the retry policy applied to callbacks created from now on."""
        self._retry_policy = policy
        logger.info(
            "Retry policy updated: max_retries=%d interval=%dm auto=%s",
            policy.max_retries, policy.retry_interval_minutes, policy.auto_retry_enabled,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def create_callback(
        self,
        customer_name: str,
        customer_phone: str,
        reason: str,
        customer_email: Optional[str] = None,
        priority: CallbackPriority = CallbackPriority.NORMAL,
        scheduled_time: Optional[datetime] = None,
    ) -> CallbackRequest:
        """Add a new request to the queue, or to the schedule when ``scheduled_time`` is in the future."""
        missing = [
            name for name, value in [
                ("customer_name", customer_name),
                ("customer_phone", customer_phone),
                ("reason", reason),
            ]
            if not value or not value.strip()
        ]
        if missing:
            raise InvalidCallbackRequestError(
                f"Cannot create callback - missing required fields: {', '.join(missing)}."
            )
        if not is_dialable_phone(customer_phone):
            raise InvalidCallbackRequestError(
                f"Cannot create callback - '{customer_phone}' is not a dialable number."
            )
        if scheduled_time is not None and scheduled_time.tzinfo is None:
            scheduled_time = scheduled_time.replace(tzinfo=timezone.utc)

        async with self._lock:
            callback_id = _new_id("cb")
            while callback_id in self._callbacks:
                logger.warning("Generated id %s already in use, drawing another", callback_id)
                callback_id = _new_id("cb")
            with callback_scope(callback_id):
                now = self._clock.now()
                policy = self._retry_policy
                is_scheduled = scheduled_time is not None and scheduled_time > now

                if is_scheduled:
                    window = timedelta(minutes=self._queue_config.scheduled_window_minutes)
                    status = CallbackStatus.SCHEDULED
                    wait = 0
                    content = f"Scheduled callback created for {scheduled_time:%Y-%m-%d %H:%M %Z}".rstrip()
                else:
                    status = CallbackStatus.PENDING
                    wait = self._initial_wait_estimate()
                    content = "Callback request created"

                request = CallbackRequest(
                    id=callback_id,
                    customer_id=_new_id("cust"),
                    customer_name=customer_name.strip(),
                    customer_phone=customer_phone.strip(),
                    customer_email=customer_email,
                    reason=reason.strip(),
                    priority=CallbackPriority(priority),
                    status=status,
                    channel=CallbackChannel.VOICE,
                    created_at=now,
                    scheduled_time=scheduled_time if is_scheduled else None,
                    scheduled_end_time=scheduled_time + window if is_scheduled else None,
                    estimated_wait_time=wait,
                    retry_count=0,
                    max_retries=policy.max_retries,
                    retry_interval=policy.retry_interval_minutes,
                    notes=[CallbackNote(
                        id=_new_id("note"),
                        content=content,
                        created_at=now,
                        created_by=SYSTEM_AUTHOR,
                        type=NoteType.SYSTEM,
                    )],
                )
                await self._commit({**self._callbacks, callback_id: request})
                created = self._callbacks[callback_id]
                logger.info(
                    "Created for %s (%s, %s, position %d)",
                    created.customer_name, created.priority.value,
                    created.status.value, created.queue_position,
                )

        if is_scheduled:
            self._publish("created", "Callback scheduled", f"Callback for {created.customer_name} scheduled.", callback_id)
        else:
            self._publish(
                "created", "Callback requested",
                f"{created.customer_name} is number {created.queue_position} in the queue.",
                callback_id,
            )
        return created.model_copy(deep=True)

    async def notify_next_agent(self, callback_id: str) -> CallbackRequest:
        """Move a pending request to notified so an agent is prompted to take it."""
        def mutate(cb: CallbackRequest, status: CallbackStatus, now: datetime) -> CallbackRequest:
            return _with_note(cb, "Agent notified for callback", now, status=status)

        updated = await self._transition(callback_id, CallbackTrigger.NOTIFY, mutate)
        self._publish("notified", "Agent notified", "An agent has been notified about this callback.", callback_id)
        return updated

    async def accept_callback(self, callback_id: str, agent_id: str, agent_name: str) -> CallbackRequest:
        """Assign the request to an agent."""
        def guard(cb: CallbackRequest) -> None:
            if self._agents is not None and not self._agents.is_known_agent(agent_id, agent_name):
                raise UnknownAgentError(
                    f"Agent '{agent_name}' ({agent_id}) is not in the agent directory.",
                    callback_id,
                )

        def mutate(cb: CallbackRequest, status: CallbackStatus, now: datetime) -> CallbackRequest:
            return _with_note(
                cb, f"Callback accepted by {agent_name}", now,
                created_by=agent_name, note_type=NoteType.AGENT,
                status=status, assigned_agent_id=agent_id, assigned_agent_name=agent_name,
            )

        updated = await self._transition(callback_id, CallbackTrigger.ACCEPT, mutate, guard)
        self._publish("accepted", "Callback accepted", "You can now initiate the call.", callback_id)
        return updated

    async def reject_callback(
        self, callback_id: str, agent_name: str, reason: Optional[str] = None
    ) -> CallbackRequest:
        """Return the request to the queue and clear its assignment."""
        def mutate(cb: CallbackRequest, status: CallbackStatus, now: datetime) -> CallbackRequest:
            suffix = f": {reason}" if reason else ""
            return _with_note(
                cb, f"Callback rejected by {agent_name}{suffix}", now,
                created_by=agent_name, note_type=NoteType.AGENT,
                status=status, assigned_agent_id=None, assigned_agent_name=None,
            )

        updated = await self._transition(callback_id, CallbackTrigger.REJECT, mutate)
        self._publish("rejected", "Callback returned to queue", "Another agent will be notified.", callback_id)
        return updated

    async def start_callback(self, callback_id: str) -> CallbackRequest:
        def mutate(cb: CallbackRequest, status: CallbackStatus, now: datetime) -> CallbackRequest:
            return _with_note(
                cb, "Call initiated", now,
                created_by=cb.assigned_agent_name or SYSTEM_AUTHOR,
                status=status, last_attempt_at=now,
            )

        updated = await self._transition(callback_id, CallbackTrigger.START, mutate)
        self._publish("started", "Call started", "Connecting to customer...", callback_id)
        return updated

    async def complete_callback(self, callback_id: str, notes: Optional[str] = None) -> CallbackRequest:
        def mutate(cb: CallbackRequest, status: CallbackStatus, now: datetime) -> CallbackRequest:
            return _with_note(
                cb, notes or "Callback completed successfully", now,
                created_by=cb.assigned_agent_name or SYSTEM_AUTHOR,
                status=status, completed_at=now, estimated_wait_time=0,
            )

        updated = await self._transition(callback_id, CallbackTrigger.COMPLETE, mutate)
        self._publish("completed", "Callback completed", "The callback has been marked as completed.", callback_id)
        return updated

    async def retry_callback(self, callback_id: str) -> CallbackRequest:
        """
        Put a pending or failed request back in the queue for another attempt.

        Raises:
            RetryExhaustedError: If the request has used all of its retries.
                The request is left unchanged.
        """
        def guard(cb: CallbackRequest) -> None:
            if not RetryPolicy.can_retry(cb):
                raise RetryExhaustedError(cb.id, cb.retry_count, cb.max_retries)

        def mutate(cb: CallbackRequest, status: CallbackStatus, now: datetime) -> CallbackRequest:
            attempt = cb.retry_count + 1
            return _with_note(
                cb, f"Manual retry initiated (attempt {attempt}/{cb.max_retries})", now,
                created_by="Agent", note_type=NoteType.RETRY,
                status=status,
                retry_count=attempt,
                last_attempt_at=now,
                next_retry_at=RetryPolicy.next_retry_at(cb, now),
                estimated_wait_time=cb.estimated_wait_time or self._initial_wait_estimate(),
                assigned_agent_id=None,
                assigned_agent_name=None,
            )

        try:
            updated = await self._transition(callback_id, CallbackTrigger.RETRY, mutate, guard)
        except RetryExhaustedError:
            logger.warning("Retry refused for %s: max retries reached", callback_id)
            self._publish(
                "retry_exhausted", "Max retries reached",
                "This callback has exceeded the maximum retry attempts.",
                callback_id, EventLevel.ERROR,
            )
            raise
        self._publish("retried", "Retry initiated", "Callback will be attempted again.", callback_id)
        return updated

    async def cancel_callback(self, callback_id: str, reason: Optional[str] = None) -> CallbackRequest:
        def mutate(cb: CallbackRequest, status: CallbackStatus, now: datetime) -> CallbackRequest:
            return _with_note(cb, reason or "Callback cancelled", now, status=status, estimated_wait_time=0)

        updated = await self._transition(callback_id, CallbackTrigger.CANCEL, mutate)
        self._publish("cancelled", "Callback cancelled", "The callback request has been cancelled.", callback_id)
        return updated

    async def fail_callback(self, callback_id: str, reason: Optional[str] = None) -> CallbackRequest:
        """Record a failed contact attempt and move the request to failed."""
        def mutate(cb: CallbackRequest, status: CallbackStatus, now: datetime) -> CallbackRequest:
            if RetryPolicy.is_exhausted(cb):
                content = f"Attempt {cb.retry_count} failed - max retries reached"
            else:
                content = reason or "Contact attempt failed"
            return _with_note(
                cb, content, now, note_type=NoteType.RETRY,
                status=status, failed_at=now, last_attempt_at=now, estimated_wait_time=0,
            )

        updated = await self._transition(callback_id, CallbackTrigger.FAIL, mutate)
        remaining = RetryPolicy.remaining(updated)
        self._publish(
            "failed", "Callback failed",
            f"{remaining} retr{'y' if remaining == 1 else 'ies'} remaining.",
            callback_id, EventLevel.WARNING,
        )
        return updated

    async def release_scheduled(self, callback_id: str) -> CallbackRequest:
        """Move a scheduled request into the live queue when its window opens."""
        def mutate(cb: CallbackRequest, status: CallbackStatus, now: datetime) -> CallbackRequest:
            return _with_note(
                cb, "Scheduled callback released to queue", now,
                status=status, estimated_wait_time=self._initial_wait_estimate(),
            )

        updated = await self._transition(callback_id, CallbackTrigger.RELEASE, mutate)
        self._publish("released", "Scheduled callback queued", f"Now number {updated.queue_position} in the queue.", callback_id)
        return updated

    async def decay_wait_times(self) -> int:
        """Decrement every pending request's wait estimate by one minute, floored at 0.

        Returns the number of requests changed. Nothing is persisted when
        no estimate moved.
        """
        async with self._lock:
            changed = {
                r.id: r.model_copy(update={"estimated_wait_time": r.estimated_wait_time - 1})
                for r in self._callbacks.values()
                if r.status == CallbackStatus.PENDING and r.estimated_wait_time > 0
            }
            if not changed:
                return 0
            await self._commit({**self._callbacks, **changed}, reproject=False)
            logger.debug("Wait-time decay applied to %d callbacks", len(changed))
            return len(changed)

    # ------------------------------------------------------------------
    # Queries (read the current snapshot, return copies)
    # ------------------------------------------------------------------

    def get_callback(self, callback_id: str) -> CallbackRequest:
        request = self._callbacks.get(callback_id)
        if request is None:
            raise CallbackNotFoundError(callback_id)
        return request.model_copy(deep=True)

    def list_callbacks(self) -> list[CallbackRequest]:
        return [r.model_copy(deep=True) for r in self._callbacks.values()]

    def get_callbacks_by_status(self, *statuses: CallbackStatus) -> list[CallbackRequest]:
        wanted = set(statuses)
        return [r.model_copy(deep=True) for r in self._callbacks.values() if r.status in wanted]

    def get_pending_queue(self) -> list[CallbackRequest]:
        """Pending requests in queue order."""
        return [r.model_copy(deep=True) for r in ordered_pending(self._callbacks.values())]

    def get_scheduled_callbacks(self) -> list[CallbackRequest]:
        """Scheduled requests, soonest first. Requests without a time sort last."""
        far_future = datetime.max.replace(tzinfo=timezone.utc)
        scheduled = [r for r in self._callbacks.values() if r.status == CallbackStatus.SCHEDULED]
        scheduled.sort(key=lambda r: r.scheduled_time or far_future)
        return [r.model_copy(deep=True) for r in scheduled]

    def get_stats(self) -> QueueStats:
        available = self._agents.available_agent_count() if self._agents is not None else 0
        return compute_queue_stats(self._callbacks.values(), self._clock.now(), available)

    def get_agent_notifications(self, include_expired: bool = False) -> list[AgentCallbackNotification]:
        """Current agent notifications; expired ones are filtered out unless asked for."""
        notifications = self._notifications
        if not include_expired:
            notifications = active_notifications(notifications, self._clock.now())
        return [n.model_copy() for n in notifications]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _transition(
        self,
        callback_id: str,
        trigger: CallbackTrigger,
        mutate: Mutation,
        guard: Optional[Callable[[CallbackRequest], None]] = None,
    ) -> CallbackRequest:
        async with self._lock:
            return await self._apply(callback_id, trigger, mutate, guard)

    async def _apply(
        self,
        callback_id: str,
        trigger: CallbackTrigger,
        mutate: Mutation,
        guard: Optional[Callable[[CallbackRequest], None]],
    ) -> CallbackRequest:
        with callback_scope(callback_id):
            current = self._callbacks.get(callback_id)
            if current is None:
                raise CallbackNotFoundError(callback_id)

            target = self._lifecycle.resolve(current.status, trigger, callback_id)
            if guard is not None:
                guard(current)

            updated = mutate(current, target, self._clock.now())
            await self._commit({**self._callbacks, callback_id: updated})
            result = self._callbacks[callback_id]
            logger.info(
                "%s -> %s (trigger: %s)",
                current.status.value, result.status.value, trigger.value,
            )
            return result.model_copy(deep=True)

    async def _commit(self, candidate: dict[str, CallbackRequest], reproject: bool = True) -> None:
        """Recompute positions, persist, then swap the candidate in as the live set."""
        ordered = recalculate_queue_positions(candidate.values())
        await self._persist(ordered)
        self._callbacks = {r.id: r for r in ordered}
        if reproject:
            self._notifications = self._project(ordered)

    async def _persist(self, requests: list[CallbackRequest]) -> None:
        attempts = self._store_config.save_attempts
        last_error: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                await self._store.save_all(requests)
                return
            except (StoreError, OSError) as exc:
                last_error = exc
                logger.warning("Callback store save failed (attempt %d/%d): %s", attempt, attempts, exc)
                if attempt < attempts:
                    await asyncio.sleep(self._store_config.retry_delay_seconds)
        raise PersistenceError(
            f"Could not persist callback queue after {attempts} attempts: {last_error}"
        ) from last_error

    def _project(self, requests: Iterable[CallbackRequest]) -> list[AgentCallbackNotification]:
        return project_notifications(
            requests,
            generated_at=self._clock.now(),
            expiry_minutes=self._queue_config.notification_expiry_minutes,
            default_agent_id=self._queue_config.broadcast_agent_id,
        )

    def _initial_wait_estimate(self) -> int:
        jitter = self._queue_config.wait_jitter_minutes
        extra = self._rng.randrange(jitter) if jitter > 0 else 0
        return self._queue_config.base_wait_minutes + extra

    def _publish(
        self,
        kind: str,
        title: str,
        message: str,
        callback_id: Optional[str] = None,
        level: EventLevel = EventLevel.SUCCESS,
    ) -> None:
        event = QueueEvent(
            kind=kind,
            title=title,
            message=message,
            level=level,
            callback_id=callback_id,
            created_at=self._clock.now(),
        )
        try:
            self._sink.publish(event)
        except Exception:
            logger.exception("Notification sink failed to publish %r event", kind)
