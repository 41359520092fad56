"""Callback request data models shared by the queue, the store, and the UI layer."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class CallbackStatus(str, Enum):
    """Lifecycle states of a callback request."""
    PENDING = "pending"
    SCHEDULED = "scheduled"
    NOTIFIED = "notified"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CallbackPriority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    NORMAL = "normal"

    @property
    def rank(self) -> int:
        """Sort rank: lower is served first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    CallbackPriority.URGENT: 0,
    CallbackPriority.HIGH: 1,
    CallbackPriority.NORMAL: 2,
}


class CallbackChannel(str, Enum):
    VOICE = "voice"
    VIDEO = "video"


class NoteType(str, Enum):
    SYSTEM = "system"
    RETRY = "retry"
    AGENT = "agent"


class CallbackNote(BaseModel):
    """A single append-only audit entry on a callback request."""
    id: str
    content: str
    created_at: datetime
    created_by: str
    type: NoteType = NoteType.SYSTEM


class CallbackRequest(BaseModel):
    """A customer's request to be called back by a human agent."""

    id: str
    customer_id: str
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    reason: str
    priority: CallbackPriority = CallbackPriority.NORMAL
    status: CallbackStatus = CallbackStatus.PENDING
    channel: CallbackChannel = CallbackChannel.VOICE

    queue_position: int = Field(default=0, ge=0)
    created_at: datetime
    scheduled_time: Optional[datetime] = None
    scheduled_end_time: Optional[datetime] = None
    estimated_wait_time: int = Field(default=0, ge=0)

    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    retry_interval: int = Field(default=15, ge=0)
    last_attempt_at: Optional[datetime] = None
    next_retry_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None

    assigned_agent_id: Optional[str] = None
    assigned_agent_name: Optional[str] = None

    notes: list[CallbackNote] = Field(default_factory=list)


class QueueStats(BaseModel):
    """Summary figures for the live callback queue."""
    total_pending: int = 0
    total_scheduled: int = 0
    total_in_progress: int = 0
    average_wait_time: int = 0
    longest_wait: int = 0
    completed_today: int = 0
    failed_today: int = 0
    available_agents_for_callback: int = 0


class NotificationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class AgentCallbackNotification(BaseModel):
    """Agent-facing prompt derived from a request in the notified state."""
    id: str
    callback_id: str
    agent_id: str
    customer_name: str
    customer_phone: str
    reason: str
    priority: CallbackPriority
    scheduled_time: Optional[datetime] = None
    created_at: datetime
    expires_at: datetime
    status: NotificationStatus = NotificationStatus.PENDING


class EventLevel(str, Enum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class QueueEvent(BaseModel):
    """Structured event handed to the notification sink after a queue operation."""
    kind: str
    title: str
    message: str
    level: EventLevel = EventLevel.INFO
    callback_id: Optional[str] = None
    created_at: datetime
