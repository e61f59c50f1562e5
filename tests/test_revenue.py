"""
Revenue dashboard figures.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date

import pytest
from models import NotFound
from utils.business import create_booking
from utils.pipeline import get_or_create_match, move_to_stage
from utils.revenue import bookings_frame, monthly_revenue, revenue_stats

TODAY = date(2025, 4, 15)


@pytest.fixture
def bookings(db, speaker):
    pid = speaker.profile_id
    create_booking(db, pid, {"event_name": "Feb keynote", "event_date": date(2025, 2, 10),
                             "confirmed_fee": 5000, "amount_paid": 5000})
    create_booking(db, pid, {"event_name": "March workshop", "event_date": date(2025, 3, 5),
                             "confirmed_fee": 3000, "amount_paid": 1000})
    create_booking(db, pid, {"event_name": "Date TBD", "confirmed_fee": 2000})
    create_booking(db, pid, {"event_name": "Last year", "event_date": date(2024, 2, 1),
                             "confirmed_fee": 4000, "amount_paid": 4000})
    create_booking(db, pid, {"event_name": "Called off", "event_date": date(2025, 3, 1),
                             "confirmed_fee": 9000, "payment_status": "cancelled"})
    db.commit()


@pytest.fixture
def pipeline(db, speaker, make_opportunity):
    def match(stages, **opp_fields):
        opp = make_opportunity(**opp_fields)
        m = get_or_create_match(db, speaker.profile_id, opp.opportunity_id)
        for stage in stages:
            move_to_stage(db, m, stage)
        return m

    match(["pitched"], fee_estimate_max=5000)
    match(["pitched", "negotiating"], fee_estimate_max=7000)
    match(["pitched"], fee_estimate_max=None)
    match(["pitched", "accepted"])
    match(["rejected"])
    db.commit()


class TestBookingsFrame:
    def test_excludes_cancelled(self, db, speaker, bookings):
        df = bookings_frame(db, speaker.profile_id)
        assert len(df) == 4
        assert df["confirmed_fee"].sum() == 14000

    def test_empty(self, db, speaker):
        df = bookings_frame(db, speaker.profile_id)
        assert df.empty
        assert {"year", "month"} <= set(df.columns)


class TestRevenueStats:
    def test_headline_numbers(self, db, speaker, bookings, pipeline):
        stats = revenue_stats(db, speaker.profile_id, today=TODAY)

        assert stats.total_confirmed == 10000       # undated counts toward this year
        assert stats.total_received == 6000
        assert stats.bookings_this_year == 3
        assert stats.average_fee == pytest.approx(3333.33, abs=0.01)
        assert stats.pipeline_value == 12000
        assert stats.win_rate == 50.0
        assert stats.goal == 100000.0
        assert stats.goal_year == 2025
        assert stats.goal_progress == pytest.approx(10.0)

    def test_custom_goal(self, db, speaker):
        speaker.annual_revenue_goal = 50000
        speaker.revenue_goal_year = 2026
        db.commit()
        stats = revenue_stats(db, speaker.profile_id, today=TODAY)
        assert stats.goal == 50000
        assert stats.goal_year == 2026
        assert stats.goal_progress == 0.0

    def test_no_activity(self, db, speaker):
        stats = revenue_stats(db, speaker.profile_id, today=TODAY)
        assert stats.total_confirmed == 0
        assert stats.average_fee == 0
        assert stats.win_rate == 0
        assert stats.pipeline_value == 0

    def test_unknown_profile(self, db):
        with pytest.raises(NotFound):
            revenue_stats(db, 999, today=TODAY)


class TestMonthlyRevenue:
    def test_months_and_projection(self, db, speaker, bookings):
        months = monthly_revenue(db, speaker.profile_id, today=TODAY)

        assert len(months) == 12
        assert months[0].month == "January"
        assert months[1].short_month == "Feb"
        assert months[1].current == 5000
        assert months[1].last_year == 4000
        assert months[2].current == 3000     # cancelled booking left out
        assert months[3].projected is None
        assert [m.projected for m in months[4:]] == [2500.0] * 8

    def test_no_projection_in_january(self, db, speaker, bookings):
        months = monthly_revenue(db, speaker.profile_id, today=date(2025, 1, 20))
        assert all(m.projected is None for m in months)
