"""Shared test fixtures and helpers."""

import random
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from callback_queue.config import QueueConfig, StoreConfig
from callback_queue.queue.retry_policy import RetryPolicy
from callback_queue.queue.service import CallbackQueueService
from callback_queue.queue.state_machine import CallbackLifecycle
from callback_queue.schemas.callback_schema import (
    CallbackPriority,
    CallbackRequest,
    CallbackStatus,
)
from callback_queue.tools.agent_directory import InMemoryAgentDirectory
from callback_queue.tools.notification_sink import CollectingNotificationSink
from callback_queue.tools.store import InMemoryCallbackStore, StoreError

START = datetime(2026, 3, 16, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = START) -> None:
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.current += timedelta(minutes=minutes, seconds=seconds)


class FlakyStore(InMemoryCallbackStore):
    """In-memory store whose next ``failures`` saves raise StoreError."""

    def __init__(self, failures: int = 0) -> None:
        super().__init__()
        self.failures = failures
        self.attempts = 0

    async def save_all(self, requests) -> None:
        self.attempts += 1
        if self.failures > 0:
            self.failures -= 1
            raise StoreError("disk unavailable")
        await super().save_all(requests)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryCallbackStore()


@pytest.fixture
def sink():
    return CollectingNotificationSink()


@pytest.fixture
def agents():
    return InMemoryAgentDirectory()


@pytest.fixture
def lifecycle():
    return CallbackLifecycle()


@pytest.fixture
def queue_config():
    return QueueConfig(
        base_wait_minutes=10,
        wait_jitter_minutes=0,
        scheduled_window_minutes=30,
        notification_expiry_minutes=5,
        broadcast_agent_id="current-agent",
    )


@pytest.fixture
def store_config():
    return StoreConfig(path="unused.json", save_attempts=3, retry_delay_seconds=0)


def make_service(
    store,
    clock,
    sink=None,
    agents=None,
    queue_config: Optional[QueueConfig] = None,
    store_config: Optional[StoreConfig] = None,
    retry_policy: Optional[RetryPolicy] = None,
) -> CallbackQueueService:
    """Build a service with deterministic wait estimates and no save delay."""
    return CallbackQueueService(
        store,
        clock=clock,
        sink=sink or CollectingNotificationSink(),
        agent_directory=agents,
        retry_policy=retry_policy or RetryPolicy(max_retries=3, retry_interval_minutes=15),
        queue_config=queue_config or QueueConfig(base_wait_minutes=10, wait_jitter_minutes=0),
        store_config=store_config or StoreConfig(save_attempts=3, retry_delay_seconds=0),
        rng=random.Random(7),
    )


@pytest.fixture
def service(store, clock, sink, agents, queue_config, store_config):
    return make_service(store, clock, sink, agents, queue_config, store_config)


def make_request(
    callback_id: str,
    priority: CallbackPriority = CallbackPriority.NORMAL,
    status: CallbackStatus = CallbackStatus.PENDING,
    created_at: datetime = START,
    **overrides,
) -> CallbackRequest:
    """Helper to create a CallbackRequest with sensible defaults."""
    fields = dict(
        id=callback_id,
        customer_id=f"cust-{callback_id}",
        customer_name=f"Customer {callback_id}",
        customer_phone="+1 (555) 123-4567",
        reason="Billing question",
        priority=priority,
        status=status,
        created_at=created_at,
        estimated_wait_time=10 if status == CallbackStatus.PENDING else 0,
    )
    fields.update(overrides)
    return CallbackRequest(**fields)


async def create_pending(service, clock, name: str, priority=CallbackPriority.NORMAL) -> CallbackRequest:
    """Create a pending callback, then advance the clock so creation times are distinct."""
    request = await service.create_callback(
        customer_name=name,
        customer_phone="+1 (555) 234-5678",
        reason=f"{name} needs help",
        priority=priority,
    )
    clock.advance(minutes=1)
    return request
