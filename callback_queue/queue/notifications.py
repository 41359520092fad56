"""Agent-facing notifications derived from notified callback requests."""

from datetime import datetime, timedelta
from typing import Iterable

from callback_queue.schemas.callback_schema import (
    AgentCallbackNotification,
    CallbackRequest,
    CallbackStatus,
    NotificationStatus,
)

DEFAULT_EXPIRY_MINUTES = 5
DEFAULT_AGENT_ID = "current-agent"


def project_notifications(
    requests: Iterable[CallbackRequest],
    generated_at: datetime,
    expiry_minutes: int = DEFAULT_EXPIRY_MINUTES,
    default_agent_id: str = DEFAULT_AGENT_ID,
) -> list[AgentCallbackNotification]:
    """
    Build one pending notification per request in the notified state.

    The projection is rebuilt from scratch on every change to the request
    set; it is never edited in place. Expired entries are kept, consumers
    filter them with ``active_notifications``.
    """
    expires_at = generated_at + timedelta(minutes=expiry_minutes)
    return [
        AgentCallbackNotification(
            id=f"notif-{r.id}",
            callback_id=r.id,
            agent_id=r.assigned_agent_id or default_agent_id,
            customer_name=r.customer_name,
            customer_phone=r.customer_phone,
            reason=r.reason,
            priority=r.priority,
            scheduled_time=r.scheduled_time,
            created_at=generated_at,
            expires_at=expires_at,
            status=NotificationStatus.PENDING,
        )
        for r in requests
        if r.status == CallbackStatus.NOTIFIED
    ]


def active_notifications(
    notifications: Iterable[AgentCallbackNotification], now: datetime
) -> list[AgentCallbackNotification]:
    """Notifications that have not yet expired at ``now``."""
    return [n for n in notifications if now < n.expires_at]
