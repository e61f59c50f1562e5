"""
Revenue dashboard figures for one speaker.

  revenue_stats    headline numbers for the current year
  monthly_revenue  per-month confirmed fees, this year vs last, with a
                   straight-line projection for the months still ahead
"""

from __future__ import annotations

import calendar
import logging
from datetime import date
from typing import List, Optional

import pandas as pd
from sqlalchemy import func
from sqlalchemy.orm import Session

from config.settings import settings
from db.models import Booking, Opportunity, OpportunityScore, Profile
from models import MonthlyRevenue, NotFound, PaymentStatus, PipelineStage, RevenueStats

logger = logging.getLogger(__name__)

_BOOKING_COLUMNS = ["event_date", "confirmed_fee", "amount_paid", "payment_status"]


def bookings_frame(session: Session, profile_id: int) -> pd.DataFrame:
    """Non-cancelled bookings as a DataFrame with a nullable `year`/`month` (1-12)."""
    rows = (
        session.query(Booking)
        .filter(
            Booking.profile_id == profile_id,
            Booking.payment_status != PaymentStatus.CANCELLED.value,
        )
        .all()
    )
    df = pd.DataFrame(
        [{c: getattr(b, c) for c in _BOOKING_COLUMNS} for b in rows],
        columns=_BOOKING_COLUMNS,
    )
    df["confirmed_fee"] = pd.to_numeric(df["confirmed_fee"]).fillna(0.0).astype(float)
    df["amount_paid"] = pd.to_numeric(df["amount_paid"]).fillna(0.0).astype(float)
    dates = pd.to_datetime(df["event_date"], errors="coerce")
    df["year"] = dates.dt.year
    df["month"] = dates.dt.month
    return df


def _this_year(df: pd.DataFrame, year: int) -> pd.DataFrame:
    # undated bookings count toward the current year
    return df[df["year"].isna() | (df["year"] == year)]


def _stage_count(session: Session, profile_id: int, stage: PipelineStage) -> int:
    return (
        session.query(func.count(OpportunityScore.score_id))
        .filter(
            OpportunityScore.profile_id == profile_id,
            OpportunityScore.pipeline_stage == stage.value,
        )
        .scalar()
    ) or 0


def revenue_stats(session: Session, profile_id: int, today: Optional[date] = None) -> RevenueStats:
    today = today or date.today()
    profile = session.get(Profile, profile_id)
    if profile is None:
        raise NotFound(f"Profile {profile_id} not found")

    active = _this_year(bookings_frame(session, profile_id), today.year)
    total_confirmed = float(active["confirmed_fee"].sum())
    total_received = float(active["amount_paid"].sum())
    average_fee = total_confirmed / len(active) if len(active) else 0.0

    pipeline_value = (
        session.query(func.coalesce(func.sum(Opportunity.fee_estimate_max), 0.0))
        .join(OpportunityScore, OpportunityScore.opportunity_id == Opportunity.opportunity_id)
        .filter(
            OpportunityScore.profile_id == profile_id,
            OpportunityScore.pipeline_stage.in_(
                [PipelineStage.PITCHED.value, PipelineStage.NEGOTIATING.value]
            ),
        )
        .scalar()
    ) or 0.0

    accepted = _stage_count(session, profile_id, PipelineStage.ACCEPTED)
    rejected = _stage_count(session, profile_id, PipelineStage.REJECTED)
    decided = accepted + rejected
    win_rate = accepted / decided * 100 if decided else 0.0

    return RevenueStats(
        total_confirmed=total_confirmed,
        total_received=total_received,
        pipeline_value=float(pipeline_value),
        win_rate=win_rate,
        average_fee=average_fee,
        bookings_this_year=len(active),
        goal=float(profile.annual_revenue_goal or settings.DEFAULT_REVENUE_GOAL),
        goal_year=profile.revenue_goal_year or today.year,
    )


def monthly_revenue(session: Session, profile_id: int, today: Optional[date] = None) -> List[MonthlyRevenue]:
    today = today or date.today()
    df = bookings_frame(session, profile_id)

    dated = df.dropna(subset=["year"]).astype({"year": int, "month": int})
    by_month = dated.groupby(["year", "month"])["confirmed_fee"].sum()
    total_confirmed = float(_this_year(df, today.year)["confirmed_fee"].sum())

    months_elapsed = today.month  # includes the current month
    projection = total_confirmed / months_elapsed if today.month > 1 else None

    result = []
    for m in range(1, 13):
        result.append(MonthlyRevenue(
            month=calendar.month_name[m],
            short_month=calendar.month_abbr[m],
            current=float(by_month.get((today.year, m), 0.0)),
            last_year=float(by_month.get((today.year - 1, m), 0.0)),
            projected=projection if m > today.month else None,
        ))
    return result
