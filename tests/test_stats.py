"""Tests for queue statistics."""

from datetime import timedelta

import pytest

from callback_queue.queue.stats import compute_queue_stats
from callback_queue.schemas.callback_schema import CallbackStatus, QueueStats
from tests.conftest import START, create_pending, make_request


class TestComputeQueueStats:
    def test_empty_queue(self):
        assert compute_queue_stats([], START) == QueueStats()

    def test_counts_by_status(self):
        requests = [
            make_request("p1"),
            make_request("p2"),
            make_request("s1", status=CallbackStatus.SCHEDULED),
            make_request("a1", status=CallbackStatus.ACCEPTED),
            make_request("i1", status=CallbackStatus.IN_PROGRESS),
            make_request("n1", status=CallbackStatus.NOTIFIED),
        ]
        stats = compute_queue_stats(requests, START, available_agents=2)
        assert stats.total_pending == 2
        assert stats.total_scheduled == 1
        assert stats.total_in_progress == 2
        assert stats.available_agents_for_callback == 2

    def test_average_wait_rounds_half_up(self):
        requests = [
            make_request("p1", estimated_wait_time=8),
            make_request("p2", estimated_wait_time=15),
        ]
        assert compute_queue_stats(requests, START).average_wait_time == 12

    def test_longest_wait_in_minutes(self):
        requests = [
            make_request("old", created_at=START - timedelta(minutes=25)),
            make_request("new", created_at=START - timedelta(minutes=18)),
            make_request("older-but-done", status=CallbackStatus.CANCELLED,
                         created_at=START - timedelta(hours=3)),
        ]
        assert compute_queue_stats(requests, START).longest_wait == 25

    def test_completed_and_failed_today(self):
        yesterday = START - timedelta(days=1)
        requests = [
            make_request("c1", status=CallbackStatus.COMPLETED, completed_at=START - timedelta(hours=1)),
            make_request("c2", status=CallbackStatus.COMPLETED, completed_at=yesterday),
            make_request("f1", status=CallbackStatus.FAILED, failed_at=START - timedelta(minutes=30),
                         created_at=yesterday),
            make_request("f2", status=CallbackStatus.FAILED, failed_at=yesterday, created_at=yesterday),
        ]
        stats = compute_queue_stats(requests, START)
        assert stats.completed_today == 1
        assert stats.failed_today == 1

    def test_failed_without_timestamp_falls_back_to_created(self):
        requests = [make_request("f", status=CallbackStatus.FAILED, created_at=START - timedelta(hours=2))]
        assert compute_queue_stats(requests, START).failed_today == 1


class TestServiceStats:
    @pytest.mark.asyncio
    async def test_stats_reflect_live_set(self, service, clock, agents):
        a = await create_pending(service, clock, "a")
        b = await create_pending(service, clock, "b")
        await service.accept_callback(a.id, "current-agent", "John Smith")
        await service.complete_callback(a.id)
        await service.fail_callback(b.id)
        await create_pending(service, clock, "c")

        stats = service.get_stats()
        assert stats.total_pending == 1
        assert stats.completed_today == 1
        assert stats.failed_today == 1
        assert stats.available_agents_for_callback == agents.available_agent_count() == 2

        agents.set_availability("agent-002", False)
        assert service.get_stats().available_agents_for_callback == 1
