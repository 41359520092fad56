"""Tests for the retry policy."""

from datetime import timedelta

import pytest

from callback_queue.config import RetryConfig
from callback_queue.queue.retry_policy import RetryPolicy
from tests.conftest import START, make_request


class TestRetryPolicy:
    def test_defaults(self):
        policy = RetryPolicy()
        assert policy.max_retries == 3
        assert policy.retry_interval_minutes == 15
        assert policy.auto_retry_enabled

    def test_from_config(self):
        policy = RetryPolicy.from_config(
            RetryConfig(max_retries=5, retry_interval_minutes=2, auto_retry_enabled=False)
        )
        assert policy == RetryPolicy(5, 2, False)

    def test_negative_max_retries_rejected(self):
        with pytest.raises(ValueError, match="max_retries"):
            RetryPolicy(max_retries=-1)

    def test_negative_interval_rejected(self):
        with pytest.raises(ValueError, match="retry_interval_minutes"):
            RetryPolicy(retry_interval_minutes=-5)

    def test_can_retry_below_limit(self):
        request = make_request("cb-1", retry_count=2, max_retries=3)
        assert RetryPolicy.can_retry(request)
        assert not RetryPolicy.is_exhausted(request)
        assert RetryPolicy.remaining(request) == 1

    def test_exhausted_at_limit(self):
        request = make_request("cb-1", retry_count=3, max_retries=3)
        assert not RetryPolicy.can_retry(request)
        assert RetryPolicy.is_exhausted(request)
        assert RetryPolicy.remaining(request) == 0

    def test_zero_max_retries_never_retries(self):
        assert not RetryPolicy.can_retry(make_request("cb-1", max_retries=0))

    def test_next_retry_uses_request_interval(self):
        request = make_request("cb-1", retry_interval=20)
        assert RetryPolicy.next_retry_at(request, START) == START + timedelta(minutes=20)
