"""
Core domain types for the speaker pipeline: stage and status enums, plus the
plain dataclasses returned by the reminder, pipeline and revenue utilities.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Optional, Dict, Any


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class PipelineStage(str, Enum):
    NEW = "new"
    RESEARCHING = "researching"
    INTERESTED = "interested"
    PITCHED = "pitched"
    NEGOTIATING = "negotiating"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"


class ReminderType(str, Enum):
    FIRST = "first"
    SECOND = "second"
    FINAL = "final"

    @property
    def number(self) -> int:
        return {"first": 1, "second": 2, "final": 3}[self.value]

    @property
    def label(self) -> str:
        return {"first": "1st Follow-up", "second": "2nd Follow-up", "final": "Final Follow-up"}[self.value]


class ActivityType(str, Enum):
    APPLICATION = "application"
    EMAIL_SENT = "email_sent"
    EMAIL_RECEIVED = "email_received"
    CALL = "call"
    MEETING = "meeting"
    NOTE = "note"
    FOLLOW_UP = "follow_up"
    SOCIAL_INTERACTION = "social_interaction"


class ReminderOutcome(str, Enum):
    COMPLETED = "completed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIAL = "partial"
    PAID = "paid"
    CANCELLED = "cancelled"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


# ---------------------------------------------------------------------------
# Follow-up reminders
# ---------------------------------------------------------------------------

@dataclass
class ReminderView:
    """An open reminder joined with the event it belongs to."""
    reminder_id: int
    match_id: int
    reminder_type: str
    due_date: date
    is_completed: bool
    event_name: str
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None
    opportunity_id: Optional[int] = None
    days_until_due: int = 0


@dataclass
class ReminderBuckets:
    overdue: List[Any] = field(default_factory=list)
    due_today: List[Any] = field(default_factory=list)
    upcoming: List[Any] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.overdue) + len(self.due_today) + len(self.upcoming)


@dataclass
class ReminderStatus:
    """Status of the next open reminder for one pitched match."""
    reminder_id: int
    reminder_type: str
    due_date: date
    days_until_due: int
    status: str  # on_track | due_soon | overdue


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

@dataclass
class BulkResult:
    succeeded: List[int] = field(default_factory=list)
    failed: Dict[int, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Revenue
# ---------------------------------------------------------------------------

@dataclass
class RevenueStats:
    total_confirmed: float
    total_received: float
    pipeline_value: float
    win_rate: float              # percent, 0–100
    average_fee: float
    bookings_this_year: int
    goal: float
    goal_year: int

    @property
    def goal_progress(self) -> float:
        return (self.total_confirmed / self.goal) * 100 if self.goal > 0 else 0.0


@dataclass
class MonthlyRevenue:
    month: str
    short_month: str
    current: float
    last_year: float
    projected: Optional[float] = None
