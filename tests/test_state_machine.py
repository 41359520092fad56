"""Tests for the callback lifecycle transition table."""

import pytest

from callback_queue.errors import InvalidTransitionError
from callback_queue.queue.state_machine import (
    TERMINAL_STATES,
    CallbackLifecycle,
    CallbackTrigger,
)
from callback_queue.schemas.callback_schema import CallbackStatus


class TestForwardPath:
    def test_pending_to_notified(self, lifecycle):
        assert lifecycle.resolve(CallbackStatus.PENDING, CallbackTrigger.NOTIFY) == CallbackStatus.NOTIFIED

    def test_notified_to_accepted(self, lifecycle):
        assert lifecycle.resolve(CallbackStatus.NOTIFIED, CallbackTrigger.ACCEPT) == CallbackStatus.ACCEPTED

    def test_pending_can_be_accepted_directly(self, lifecycle):
        assert lifecycle.resolve(CallbackStatus.PENDING, CallbackTrigger.ACCEPT) == CallbackStatus.ACCEPTED

    def test_accepted_to_in_progress(self, lifecycle):
        assert lifecycle.resolve(CallbackStatus.ACCEPTED, CallbackTrigger.START) == CallbackStatus.IN_PROGRESS

    @pytest.mark.parametrize("source", [
        CallbackStatus.NOTIFIED, CallbackStatus.ACCEPTED, CallbackStatus.IN_PROGRESS,
    ])
    def test_complete_from_working_states(self, lifecycle, source):
        assert lifecycle.resolve(source, CallbackTrigger.COMPLETE) == CallbackStatus.COMPLETED

    def test_scheduled_release_to_pending(self, lifecycle):
        assert lifecycle.resolve(CallbackStatus.SCHEDULED, CallbackTrigger.RELEASE) == CallbackStatus.PENDING


class TestReturnPaths:
    @pytest.mark.parametrize("source", [
        CallbackStatus.PENDING, CallbackStatus.NOTIFIED, CallbackStatus.ACCEPTED,
    ])
    def test_reject_returns_to_pending(self, lifecycle, source):
        assert lifecycle.resolve(source, CallbackTrigger.REJECT) == CallbackStatus.PENDING

    @pytest.mark.parametrize("source", [CallbackStatus.PENDING, CallbackStatus.FAILED])
    def test_retry_returns_to_pending(self, lifecycle, source):
        assert lifecycle.resolve(source, CallbackTrigger.RETRY) == CallbackStatus.PENDING

    def test_in_progress_cannot_be_rejected(self, lifecycle):
        with pytest.raises(InvalidTransitionError):
            lifecycle.resolve(CallbackStatus.IN_PROGRESS, CallbackTrigger.REJECT)


class TestCancelAndFail:
    @pytest.mark.parametrize("source", [
        CallbackStatus.PENDING, CallbackStatus.SCHEDULED, CallbackStatus.NOTIFIED,
        CallbackStatus.ACCEPTED, CallbackStatus.IN_PROGRESS,
    ])
    def test_cancel_from_open_states(self, lifecycle, source):
        assert lifecycle.resolve(source, CallbackTrigger.CANCEL) == CallbackStatus.CANCELLED

    @pytest.mark.parametrize("source", [
        CallbackStatus.PENDING, CallbackStatus.SCHEDULED, CallbackStatus.NOTIFIED,
        CallbackStatus.ACCEPTED, CallbackStatus.IN_PROGRESS,
    ])
    def test_fail_from_open_states(self, lifecycle, source):
        assert lifecycle.resolve(source, CallbackTrigger.FAIL) == CallbackStatus.FAILED


class TestInvalidTransitions:
    def test_start_on_completed_rejected(self, lifecycle):
        with pytest.raises(InvalidTransitionError, match="completed"):
            lifecycle.resolve(CallbackStatus.COMPLETED, CallbackTrigger.START)

    def test_scheduled_cannot_be_notified(self, lifecycle):
        with pytest.raises(InvalidTransitionError):
            lifecycle.resolve(CallbackStatus.SCHEDULED, CallbackTrigger.NOTIFY)

    def test_error_lists_valid_triggers(self, lifecycle):
        with pytest.raises(InvalidTransitionError, match="release"):
            lifecycle.resolve(CallbackStatus.SCHEDULED, CallbackTrigger.START)

    def test_error_carries_callback_id(self, lifecycle):
        with pytest.raises(InvalidTransitionError) as excinfo:
            lifecycle.resolve(CallbackStatus.CANCELLED, CallbackTrigger.ACCEPT, "cb-42")
        assert excinfo.value.callback_id == "cb-42"
        assert excinfo.value.code == "invalid_transition"


class TestTerminalStates:
    def test_terminal_set(self):
        assert TERMINAL_STATES == {
            CallbackStatus.COMPLETED, CallbackStatus.FAILED, CallbackStatus.CANCELLED,
        }

    @pytest.mark.parametrize("status", [CallbackStatus.COMPLETED, CallbackStatus.CANCELLED])
    def test_closed_states_have_no_triggers(self, lifecycle, status):
        assert lifecycle.get_valid_triggers(status) == []

    def test_failed_only_allows_retry(self, lifecycle):
        assert lifecycle.get_valid_triggers(CallbackStatus.FAILED) == [CallbackTrigger.RETRY]

    @pytest.mark.parametrize("status", list(CallbackStatus))
    def test_is_terminal(self, status):
        assert CallbackLifecycle.is_terminal(status) == (status in TERMINAL_STATES)

    def test_can_apply(self, lifecycle):
        assert lifecycle.can_apply(CallbackStatus.ACCEPTED, CallbackTrigger.START)
        assert not lifecycle.can_apply(CallbackStatus.PENDING, CallbackTrigger.START)
