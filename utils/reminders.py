"""
Follow-up reminder scheduler.

Pitching an opportunity schedules three nudges (first / second / final) at
fixed offsets from the pitch date. Reads bucket the open reminders into
overdue, due today and upcoming (within a week) by whole calendar days.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from config.settings import settings
from db.models import FollowUpReminder, Opportunity, OpportunityScore, Profile
from models import (
    NotFound,
    PipelineStage,
    ReminderBuckets,
    ReminderOutcome,
    ReminderStatus,
    ReminderType,
    ReminderView,
)

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]

_REMINDER_ORDER = (ReminderType.FIRST, ReminderType.SECOND, ReminderType.FINAL)


def to_date(value: DateLike) -> date:
    """Normalize a date, datetime or ISO string to a calendar date (midnight)."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value)[:10]).date()


def days_until(due: DateLike, today: DateLike) -> int:
    return (to_date(due) - to_date(today)).days


# ─── Creation ────────────────────────────────────────────────────────────────


def get_follow_up_intervals(profile: Optional[Profile]) -> Tuple[int, int, int]:
    """Speaker's follow-up offsets in days; unset or zero values use the defaults."""
    defaults = settings.FOLLOW_UP_INTERVALS
    if profile is None:
        return tuple(defaults)
    return (
        profile.follow_up_interval_1 or defaults[0],
        profile.follow_up_interval_2 or defaults[1],
        profile.follow_up_interval_3 or defaults[2],
    )


def create_follow_up_reminders(
    session: Session,
    match: OpportunityScore,
    applied_at: DateLike,
    intervals: Optional[Tuple[int, int, int]] = None,
) -> List[FollowUpReminder]:
    """Insert the first/second/final reminders for a pitched match."""
    if intervals is None:
        intervals = get_follow_up_intervals(match.profile)
    start = to_date(applied_at)

    reminders = [
        FollowUpReminder(
            match_id=match.score_id,
            profile_id=match.profile_id,
            reminder_type=rtype.value,
            due_date=start + timedelta(days=offset),
            is_completed=False,
        )
        for rtype, offset in zip(_REMINDER_ORDER, intervals)
    ]
    session.add_all(reminders)
    session.flush()
    logger.info(
        f"Scheduled {len(reminders)} follow-ups for match {match.score_id} "
        f"at +{intervals[0]}/+{intervals[1]}/+{intervals[2]} days"
    )
    return reminders


def open_reminders_for_match(session: Session, match_id: int) -> List[FollowUpReminder]:
    return (
        session.query(FollowUpReminder)
        .filter(FollowUpReminder.match_id == match_id, FollowUpReminder.is_completed.is_(False))
        .order_by(FollowUpReminder.due_date.asc())
        .all()
    )


def cancel_open_reminders(session: Session, match_id: int, now: Optional[datetime] = None) -> int:
    """Close every open reminder of a match; used when the match leaves the pitch phase."""
    now = now or datetime.utcnow()
    reminders = open_reminders_for_match(session, match_id)
    for r in reminders:
        _close(r, ReminderOutcome.CANCELLED, now)
    session.flush()
    if reminders:
        logger.info(f"Cancelled {len(reminders)} open follow-ups for match {match_id}")
    return len(reminders)


# ─── Reads ───────────────────────────────────────────────────────────────────


def bucket_reminders(reminders: Iterable, today: DateLike) -> ReminderBuckets:
    """
    Split reminders by whole days until due:
      overdue   : due before today
      due_today : due today
      upcoming  : due within the next UPCOMING_WINDOW_DAYS days
    Completed reminders and reminders further out are left out.
    """
    buckets = ReminderBuckets()
    for reminder in reminders:
        if getattr(reminder, "is_completed", False):
            continue
        diff = days_until(reminder.due_date, today)
        if diff < 0:
            buckets.overdue.append(reminder)
        elif diff == 0:
            buckets.due_today.append(reminder)
        elif diff <= settings.UPCOMING_WINDOW_DAYS:
            buckets.upcoming.append(reminder)
    return buckets


def list_open_reminders(
    session: Session, profile_id: int, today: Optional[DateLike] = None
) -> List[ReminderView]:
    """Open reminders for a speaker, earliest first, with the event they belong to."""
    today = to_date(today or date.today())
    rows = (
        session.query(FollowUpReminder, Opportunity)
        .join(OpportunityScore, FollowUpReminder.match_id == OpportunityScore.score_id)
        .join(Opportunity, OpportunityScore.opportunity_id == Opportunity.opportunity_id)
        .filter(
            FollowUpReminder.profile_id == profile_id,
            FollowUpReminder.is_completed.is_(False),
        )
        .order_by(FollowUpReminder.due_date.asc())
        .all()
    )
    return [
        ReminderView(
            reminder_id=r.reminder_id,
            match_id=r.match_id,
            reminder_type=r.reminder_type,
            due_date=r.due_date,
            is_completed=r.is_completed,
            event_name=opp.event_name or "Unknown Event",
            organizer_name=opp.organizer_name,
            organizer_email=opp.organizer_email,
            opportunity_id=opp.opportunity_id,
            days_until_due=days_until(r.due_date, today),
        )
        for r, opp in rows
    ]


def overdue_count(reminders: Iterable, today: DateLike) -> int:
    return sum(1 for r in reminders if not r.is_completed and days_until(r.due_date, today) < 0)


def next_reminder_status(
    session: Session, match: OpportunityScore, today: Optional[DateLike] = None
) -> Optional[ReminderStatus]:
    """Earliest open reminder of a pitched match, classified on_track / due_soon / overdue."""
    if match.pipeline_stage != PipelineStage.PITCHED.value:
        return None
    pending = open_reminders_for_match(session, match.score_id)
    if not pending:
        return None

    nxt = pending[0]
    diff = days_until(nxt.due_date, today or date.today())
    if diff < 0:
        status = "overdue"
    elif diff <= settings.DUE_SOON_DAYS:
        status = "due_soon"
    else:
        status = "on_track"
    return ReminderStatus(
        reminder_id=nxt.reminder_id,
        reminder_type=nxt.reminder_type,
        due_date=nxt.due_date,
        days_until_due=diff,
        status=status,
    )


# ─── Actions ─────────────────────────────────────────────────────────────────


def _close(reminder: FollowUpReminder, outcome: ReminderOutcome, now: datetime) -> None:
    reminder.is_completed = True
    reminder.completed_at = now
    reminder.outcome = outcome.value


def get_reminder(session: Session, profile_id: int, reminder_id: int) -> FollowUpReminder:
    reminder = (
        session.query(FollowUpReminder)
        .filter(FollowUpReminder.reminder_id == reminder_id, FollowUpReminder.profile_id == profile_id)
        .one_or_none()
    )
    if reminder is None:
        raise NotFound(f"Reminder {reminder_id} not found")
    return reminder


def complete_reminder(
    session: Session, profile_id: int, reminder_id: int, now: Optional[datetime] = None
) -> FollowUpReminder:
    reminder = get_reminder(session, profile_id, reminder_id)
    _close(reminder, ReminderOutcome.COMPLETED, now or datetime.utcnow())
    session.flush()
    return reminder


def skip_reminder(
    session: Session, profile_id: int, reminder_id: int, now: Optional[datetime] = None
) -> FollowUpReminder:
    reminder = get_reminder(session, profile_id, reminder_id)
    _close(reminder, ReminderOutcome.SKIPPED, now or datetime.utcnow())
    session.flush()
    return reminder


def snooze_reminder(
    session: Session, profile_id: int, reminder_id: int, days: Optional[int] = None
) -> FollowUpReminder:
    """Push the due date forward (default SNOOZE_DAYS)."""
    reminder = get_reminder(session, profile_id, reminder_id)
    days = settings.SNOOZE_DAYS if days is None else days
    reminder.due_date = to_date(reminder.due_date) + timedelta(days=days)
    session.flush()
    return reminder
