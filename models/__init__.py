"""
Core domain types for the speaker pipeline.
"""

from .schemas import (
    PipelineStage,
    ReminderType,
    ReminderOutcome,
    ActivityType,
    LeadStatus,
    PaymentStatus,
    InvoiceStatus,
    ReminderView,
    ReminderBuckets,
    ReminderStatus,
    BulkResult,
    RevenueStats,
    MonthlyRevenue,
)
from .errors import (
    PipelineError,
    NotFound,
    ValidationFailed,
    InvalidStageTransition,
    ProfileIncomplete,
)

__all__ = [
    "PipelineStage",
    "ReminderType",
    "ReminderOutcome",
    "ActivityType",
    "LeadStatus",
    "PaymentStatus",
    "InvoiceStatus",
    "ReminderView",
    "ReminderBuckets",
    "ReminderStatus",
    "BulkResult",
    "RevenueStats",
    "MonthlyRevenue",
    "PipelineError",
    "NotFound",
    "ValidationFailed",
    "InvalidStageTransition",
    "ProfileIncomplete",
]
