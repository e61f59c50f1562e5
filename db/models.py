"""
SQLAlchemy ORM Models
NextMic Speaker Opportunity Pipeline
"""

from sqlalchemy import (
    Column, Integer, Float, String, Text, Boolean,
    Date, DateTime, ForeignKey, JSON, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship, declarative_base
from datetime import datetime

Base = declarative_base()


class Profile(Base):
    __tablename__ = "profile"

    profile_id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255))
    email = Column(String(255), unique=True)
    headline = Column(String(255))
    bio = Column(Text)
    topics = Column(JSON, default=list)
    past_talks = Column(JSON, default=list)
    industries = Column(JSON, default=list)
    fee_range_min = Column(Float, default=0)
    fee_range_max = Column(Float, default=0)
    follow_up_interval_1 = Column(Integer)
    follow_up_interval_2 = Column(Integer)
    follow_up_interval_3 = Column(Integer)
    annual_revenue_goal = Column(Float)
    revenue_goal_year = Column(Integer)
    years_speaking = Column(Integer)
    total_talks_given = Column(Integer, default=0)
    linkedin_url = Column(String(500))
    is_public = Column(Boolean, default=False)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    matches = relationship("OpportunityScore", back_populates="profile", cascade="all, delete-orphan")
    tags = relationship("PipelineTag", back_populates="profile", cascade="all, delete-orphan")


class Opportunity(Base):
    __tablename__ = "opportunity"

    opportunity_id = Column(Integer, primary_key=True, autoincrement=True)
    event_name = Column(String(500), nullable=False)
    organizer_name = Column(String(255))
    organizer_email = Column(String(255))
    description = Column(Text)
    event_url = Column(String(1000), unique=True)
    event_date = Column(Date)
    deadline = Column(Date)
    location = Column(String(255))
    topics = Column(JSON, default=list)
    audience_size = Column(Integer)
    fee_estimate_min = Column(Float)
    fee_estimate_max = Column(Float)
    source = Column(String(50))  # papercall, sessionize, conferencelist, manual, mock
    submitted_by = Column(Integer, ForeignKey("profile.profile_id"))
    is_active = Column(Boolean, default=True)
    raw_data = Column(JSON)
    scraped_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)

    scores = relationship("OpportunityScore", back_populates="opportunity")

    __table_args__ = (
        Index("ix_opportunity_active", "is_active"),
        Index("ix_opportunity_deadline", "deadline"),
    )


class OpportunityScore(Base):
    """One row per speaker × opportunity: the AI score plus pipeline stage."""
    __tablename__ = "opportunity_score"

    score_id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profile.profile_id"), nullable=False)
    opportunity_id = Column(Integer, ForeignKey("opportunity.opportunity_id"), nullable=False)
    ai_score = Column(Integer)
    ai_reason = Column(Text)
    topic_match_score = Column(Integer)
    fee_alignment_score = Column(Integer)
    deadline_urgency_score = Column(Integer)
    pipeline_stage = Column(String(20), default="new", nullable=False)
    interested_at = Column(DateTime)
    pitched_at = Column(DateTime)
    accepted_at = Column(DateTime)
    rejected_at = Column(DateTime)
    completed_at = Column(DateTime)
    rejection_reason = Column(Text)
    tags = Column(JSON, default=list)
    is_archived = Column(Boolean, default=False)
    calculated_at = Column(DateTime, default=datetime.utcnow)

    profile = relationship("Profile", back_populates="matches")
    opportunity = relationship("Opportunity", back_populates="scores")
    reminders = relationship("FollowUpReminder", back_populates="match", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("opportunity_id", "profile_id", name="uq_score_opportunity_profile"),
        Index("ix_score_profile_stage", "profile_id", "pipeline_stage"),
    )


class PipelineTag(Base):
    __tablename__ = "pipeline_tag"

    tag_id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profile.profile_id"), nullable=False)
    name = Column(String(100), nullable=False)
    color = Column(String(20), default="gray")
    created_at = Column(DateTime, default=datetime.utcnow)

    profile = relationship("Profile", back_populates="tags")


class FollowUpReminder(Base):
    __tablename__ = "follow_up_reminder"

    reminder_id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(Integer, ForeignKey("opportunity_score.score_id"), nullable=False)
    profile_id = Column(Integer, ForeignKey("profile.profile_id"), nullable=False)
    reminder_type = Column(String(10), nullable=False)  # first, second, final
    due_date = Column(Date, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime)
    outcome = Column(String(20))  # completed, skipped, cancelled
    created_at = Column(DateTime, default=datetime.utcnow)

    match = relationship("OpportunityScore", back_populates="reminders")

    __table_args__ = (
        Index("ix_reminder_profile_open", "profile_id", "is_completed"),
        Index("ix_reminder_due", "due_date"),
    )


class Pitch(Base):
    __tablename__ = "pitch"

    pitch_id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profile.profile_id"), nullable=False)
    opportunity_id = Column(Integer, ForeignKey("opportunity.opportunity_id"), nullable=False)
    subject_line = Column(String(500), nullable=False)
    email_body = Column(Text, nullable=False)
    tone = Column(String(50))
    variant = Column(String(20))
    generated_at = Column(DateTime, default=datetime.utcnow)


class OutreachActivity(Base):
    """Timeline entry for a pipeline card: applications, emails, calls, notes."""
    __tablename__ = "outreach_activity"

    activity_id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profile.profile_id"), nullable=False)
    match_id = Column(Integer, ForeignKey("opportunity_score.score_id"))
    activity_type = Column(String(30), nullable=False)
    subject = Column(String(500))
    body = Column(Text)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_activity_profile_created", "profile_id", "created_at"),
        Index("ix_activity_match", "match_id"),
    )


class Lead(Base):
    __tablename__ = "lead"

    lead_id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profile.profile_id"), nullable=False)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50))
    company = Column(String(255))
    event_name = Column(String(255))
    event_type = Column(String(255))
    event_date = Column(Date)
    estimated_audience = Column(String(255))
    budget_range = Column(String(255))
    message = Column(Text)
    source = Column(String(50), default="widget")
    status = Column(String(20), default="new", nullable=False)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (Index("ix_lead_profile_status", "profile_id", "status"),)


class Booking(Base):
    __tablename__ = "booking"

    booking_id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profile.profile_id"), nullable=False)
    match_id = Column(Integer, ForeignKey("opportunity_score.score_id"))
    event_name = Column(String(500), nullable=False)
    event_date = Column(Date)
    confirmed_fee = Column(Float, default=0.0)
    amount_paid = Column(Float, default=0.0)
    expenses = Column(Float, default=0.0)
    fee_currency = Column(String(3), default="USD")
    payment_status = Column(String(20), default="pending", nullable=False)
    payment_date = Column(Date)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    invoices = relationship("Invoice", back_populates="booking")

    __table_args__ = (Index("ix_booking_profile", "profile_id"),)


class Invoice(Base):
    __tablename__ = "invoice"

    invoice_id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profile.profile_id"), nullable=False)
    booking_id = Column(Integer, ForeignKey("booking.booking_id"))
    invoice_number = Column(String(50), nullable=False, unique=True)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    line_items = Column(JSON, default=list)
    subtotal = Column(Float, default=0.0)
    tax_rate = Column(Float, default=0.0)
    tax_amount = Column(Float, default=0.0)
    total = Column(Float, default=0.0)
    status = Column(String(20), default="draft", nullable=False)
    sent_at = Column(DateTime)
    paid_at = Column(DateTime)
    notes = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    booking = relationship("Booking", back_populates="invoices")

    __table_args__ = (Index("ix_invoice_profile_status", "profile_id", "status"),)


class SavedSearch(Base):
    __tablename__ = "saved_search"

    search_id = Column(Integer, primary_key=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey("profile.profile_id"), nullable=False)
    name = Column(String(255), nullable=False)
    filters = Column(JSON, default=dict)
    notify_new_matches = Column(Boolean, default=False, nullable=False)
    last_notified_at = Column(DateTime)
    results_count = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)


class ScrapingLog(Base):
    __tablename__ = "scraping_log"

    log_id = Column(Integer, primary_key=True, autoincrement=True)
    source = Column(String(50), nullable=False)
    status = Column(String(20), default="running", nullable=False)
    started_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)
    opportunities_found = Column(Integer, default=0)
    opportunities_inserted = Column(Integer, default=0)
    opportunities_updated = Column(Integer, default=0)
    error_message = Column(Text)
