"""
Demo callback data.

Builds a small, realistic queue relative to a given instant: two pending
requests, one agent-notified urgent request, one scheduled request and
one that has exhausted its retries.
"""

from datetime import datetime, timedelta

from callback_queue.schemas.callback_schema import (
    CallbackNote,
    CallbackPriority,
    CallbackRequest,
    CallbackStatus,
    NoteType,
)


def _note(note_id: str, content: str, at: datetime, note_type: NoteType = NoteType.SYSTEM) -> CallbackNote:
    return CallbackNote(id=note_id, content=content, created_at=at, created_by="System", type=note_type)


def build_demo_callbacks(now: datetime) -> list[CallbackRequest]:
    """Return the demo callback set anchored at ``now``."""

    def ago(minutes: float) -> datetime:
        return now - timedelta(minutes=minutes)

    return [
        CallbackRequest(
            id="cb-1",
            customer_id="cust-101",
            customer_name="Robert Martinez",
            customer_phone="+1 (555) 123-4567",
            customer_email="robert.m@email.com",
            reason="Billing dispute - overcharge on account",
            priority=CallbackPriority.HIGH,
            status=CallbackStatus.PENDING,
            created_at=ago(25),
            estimated_wait_time=8,
            notes=[_note("n1", "Callback request created", ago(25))],
        ),
        CallbackRequest(
            id="cb-2",
            customer_id="cust-102",
            customer_name="Jennifer Lee",
            customer_phone="+1 (555) 234-5678",
            reason="Technical support needed",
            priority=CallbackPriority.NORMAL,
            status=CallbackStatus.PENDING,
            created_at=ago(18),
            estimated_wait_time=15,
            notes=[_note("n2", "Callback request created", ago(18))],
        ),
        CallbackRequest(
            id="cb-3",
            customer_id="cust-103",
            customer_name="William Thompson",
            customer_phone="+1 (555) 345-6789",
            reason="Account cancellation inquiry",
            priority=CallbackPriority.URGENT,
            status=CallbackStatus.NOTIFIED,
            created_at=ago(35),
            estimated_wait_time=2,
            retry_count=1,
            last_attempt_at=ago(20),
            notes=[
                _note("n3", "Callback request created", ago(35)),
                _note("n4", "First attempt failed - no answer", ago(20), NoteType.RETRY),
                _note("n5", "Agent John Smith notified", ago(5)),
            ],
        ),
        CallbackRequest(
            id="cb-4",
            customer_id="cust-104",
            customer_name="Amanda Garcia",
            customer_phone="+1 (555) 456-7890",
            reason="Product inquiry - Enterprise plan",
            priority=CallbackPriority.NORMAL,
            status=CallbackStatus.SCHEDULED,
            created_at=ago(120),
            scheduled_time=now + timedelta(hours=2),
            scheduled_end_time=now + timedelta(hours=2, minutes=30),
            notes=[_note("n6", "Scheduled callback created", ago(120))],
        ),
        CallbackRequest(
            id="cb-5",
            customer_id="cust-105",
            customer_name="David Kim",
            customer_phone="+1 (555) 567-8901",
            reason="Refund request follow-up",
            priority=CallbackPriority.HIGH,
            status=CallbackStatus.FAILED,
            created_at=ago(180),
            retry_count=3,
            last_attempt_at=ago(30),
            failed_at=ago(30),
            notes=[
                _note("n7", "Callback request created", ago(180)),
                _note("n8", "Attempt 1 failed - no answer", ago(150), NoteType.RETRY),
                _note("n9", "Attempt 2 failed - no answer", ago(60), NoteType.RETRY),
                _note("n10", "Attempt 3 failed - max retries reached", ago(30), NoteType.RETRY),
            ],
        ),
    ]
