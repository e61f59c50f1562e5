"""
Follow-up reminder scheduling, bucketing and actions.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date, datetime
from types import SimpleNamespace

import pytest
from models import NotFound
from utils.pipeline import get_or_create_match, move_to_stage
from utils.reminders import (
    bucket_reminders,
    complete_reminder,
    days_until,
    get_follow_up_intervals,
    list_open_reminders,
    next_reminder_status,
    overdue_count,
    skip_reminder,
    snooze_reminder,
)

TODAY = date(2025, 6, 15)


def reminder(due, completed=False):
    return SimpleNamespace(due_date=due, is_completed=completed)


# ─── Pure helpers ────────────────────────────────────────────────────────────

class TestBucketing:
    def test_days_until_ignores_time_of_day(self):
        assert days_until(datetime(2025, 6, 16, 23, 59), datetime(2025, 6, 15, 0, 1)) == 1
        assert days_until("2025-06-14", TODAY) == -1

    def test_buckets(self):
        items = [
            reminder(date(2025, 6, 1)),     # overdue
            reminder(date(2025, 6, 15)),    # today
            reminder(date(2025, 6, 16)),    # upcoming
            reminder(date(2025, 6, 22)),    # upcoming, 7 days out
            reminder(date(2025, 6, 23)),    # too far out
            reminder(date(2025, 6, 10), completed=True),
        ]
        buckets = bucket_reminders(items, TODAY)
        assert [r.due_date.day for r in buckets.overdue] == [1]
        assert [r.due_date.day for r in buckets.due_today] == [15]
        assert [r.due_date.day for r in buckets.upcoming] == [16, 22]
        assert buckets.total == 4

    def test_empty(self):
        assert bucket_reminders([], TODAY).total == 0

    def test_overdue_count_skips_completed(self):
        items = [reminder(date(2025, 6, 1)), reminder(date(2025, 6, 2), completed=True)]
        assert overdue_count(items, TODAY) == 1


class TestIntervals:
    def test_defaults_without_profile(self):
        assert get_follow_up_intervals(None) == (7, 14, 21)

    def test_zero_and_none_fall_back(self):
        profile = SimpleNamespace(follow_up_interval_1=5, follow_up_interval_2=0, follow_up_interval_3=None)
        assert get_follow_up_intervals(profile) == (5, 14, 21)


# ─── Database-backed ─────────────────────────────────────────────────────────

@pytest.fixture
def pitched(db, speaker, make_opportunity):
    opp = make_opportunity(event_name="DevOpsDays", organizer_email="cfp@devopsdays.test")
    match = get_or_create_match(db, speaker.profile_id, opp.opportunity_id)
    move_to_stage(db, match, "pitched", now=datetime(2025, 6, 1, 9, 0))
    return match


class TestReminderQueries:
    def test_list_joins_event_details(self, db, speaker, pitched):
        views = list_open_reminders(db, speaker.profile_id, TODAY)
        assert [v.reminder_type for v in views] == ["first", "second", "final"]
        first = views[0]
        assert first.event_name == "DevOpsDays"
        assert first.organizer_email == "cfp@devopsdays.test"
        assert first.due_date == date(2025, 6, 8)
        assert first.days_until_due == -7

    def test_buckets_from_database(self, db, speaker, pitched):
        buckets = bucket_reminders(list_open_reminders(db, speaker.profile_id, TODAY), TODAY)
        assert len(buckets.overdue) == 1       # 8 June
        assert len(buckets.due_today) == 1     # 15 June
        assert len(buckets.upcoming) == 1      # 22 June

    def test_other_speakers_see_nothing(self, db, admin, pitched):
        assert list_open_reminders(db, admin.profile_id, TODAY) == []

    def test_next_status_overdue(self, db, pitched):
        status = next_reminder_status(db, pitched, TODAY)
        assert status.reminder_type == "first"
        assert status.status == "overdue"

    def test_next_status_due_soon_and_on_track(self, db, pitched):
        assert next_reminder_status(db, pitched, date(2025, 6, 6)).status == "due_soon"
        assert next_reminder_status(db, pitched, date(2025, 6, 2)).status == "on_track"

    def test_no_status_unless_pitched(self, db, pitched):
        move_to_stage(db, pitched, "negotiating")
        assert next_reminder_status(db, pitched, TODAY) is None


class TestReminderActions:
    def test_complete(self, db, speaker, pitched):
        first = list_open_reminders(db, speaker.profile_id, TODAY)[0]
        done = complete_reminder(db, speaker.profile_id, first.reminder_id)
        assert done.is_completed and done.outcome == "completed"
        assert len(list_open_reminders(db, speaker.profile_id, TODAY)) == 2

    def test_skip_is_recorded_separately(self, db, speaker, pitched):
        first = list_open_reminders(db, speaker.profile_id, TODAY)[0]
        skipped = skip_reminder(db, speaker.profile_id, first.reminder_id)
        assert skipped.is_completed
        assert skipped.outcome == "skipped"

    def test_snooze_moves_due_date(self, db, speaker, pitched):
        first = list_open_reminders(db, speaker.profile_id, TODAY)[0]
        snoozed = snooze_reminder(db, speaker.profile_id, first.reminder_id)
        assert snoozed.due_date == date(2025, 6, 11)
        assert not snoozed.is_completed
        assert snooze_reminder(db, speaker.profile_id, first.reminder_id, days=10).due_date == date(2025, 6, 21)

    def test_actions_are_scoped_to_owner(self, db, speaker, admin, pitched):
        first = list_open_reminders(db, speaker.profile_id, TODAY)[0]
        with pytest.raises(NotFound):
            complete_reminder(db, admin.profile_id, first.reminder_id)
