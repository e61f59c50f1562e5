"""
Pydantic schemas for API request/response validation.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any
from datetime import date, datetime


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ─── Profiles ────────────────────────────────────────────────────────────────

class ProfileBase(BaseModel):
    name: Optional[str] = None
    headline: Optional[str] = None
    bio: Optional[str] = None
    topics: List[str] = []
    past_talks: List[str] = []
    industries: List[str] = []
    fee_range_min: float = Field(0, ge=0)
    fee_range_max: float = Field(0, ge=0)
    follow_up_interval_1: Optional[int] = Field(None, ge=0)
    follow_up_interval_2: Optional[int] = Field(None, ge=0)
    follow_up_interval_3: Optional[int] = Field(None, ge=0)
    annual_revenue_goal: Optional[float] = Field(None, ge=0)
    revenue_goal_year: Optional[int] = None
    years_speaking: Optional[int] = Field(None, ge=0)
    total_talks_given: int = Field(0, ge=0)
    linkedin_url: Optional[str] = None
    is_public: bool = False


class ProfileCreate(ProfileBase):
    email: str


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    headline: Optional[str] = None
    bio: Optional[str] = None
    topics: Optional[List[str]] = None
    past_talks: Optional[List[str]] = None
    industries: Optional[List[str]] = None
    fee_range_min: Optional[float] = Field(None, ge=0)
    fee_range_max: Optional[float] = Field(None, ge=0)
    follow_up_interval_1: Optional[int] = Field(None, ge=0)
    follow_up_interval_2: Optional[int] = Field(None, ge=0)
    follow_up_interval_3: Optional[int] = Field(None, ge=0)
    annual_revenue_goal: Optional[float] = Field(None, ge=0)
    revenue_goal_year: Optional[int] = None
    years_speaking: Optional[int] = Field(None, ge=0)
    total_talks_given: Optional[int] = Field(None, ge=0)
    linkedin_url: Optional[str] = None
    is_public: Optional[bool] = None


class ProfileResponse(ProfileBase, ORMModel):
    profile_id: int
    email: Optional[str] = None
    is_admin: bool = False
    topics: Optional[List[str]] = None
    past_talks: Optional[List[str]] = None
    industries: Optional[List[str]] = None
    fee_range_min: Optional[float] = None
    fee_range_max: Optional[float] = None
    total_talks_given: Optional[int] = None
    is_public: Optional[bool] = None


# ─── Opportunities ───────────────────────────────────────────────────────────

class OpportunityCreate(BaseModel):
    event_name: str = Field(..., min_length=1, max_length=500)
    event_url: Optional[str] = None
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[date] = None
    deadline: Optional[date] = None
    location: Optional[str] = None
    topics: List[str] = []
    audience_size: Optional[int] = Field(None, ge=0)
    fee_estimate_min: Optional[float] = Field(None, ge=0)
    fee_estimate_max: Optional[float] = Field(None, ge=0)


class OpportunityExtractRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2000)


class OpportunityDraft(OpportunityCreate):
    source: str = "manual"
    existing_opportunity_id: Optional[int] = None


class OpportunityResponse(ORMModel):
    opportunity_id: int
    event_name: str
    event_url: Optional[str] = None
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None
    description: Optional[str] = None
    event_date: Optional[date] = None
    deadline: Optional[date] = None
    location: Optional[str] = None
    topics: Optional[List[str]] = None
    audience_size: Optional[int] = None
    fee_estimate_min: Optional[float] = None
    fee_estimate_max: Optional[float] = None
    source: Optional[str] = None
    is_active: Optional[bool] = None
    created_at: Optional[datetime] = None


# ─── Pipeline ────────────────────────────────────────────────────────────────

class MatchResponse(ORMModel):
    score_id: int
    opportunity_id: int
    ai_score: Optional[int] = None
    ai_reason: Optional[str] = None
    topic_match_score: Optional[int] = None
    fee_alignment_score: Optional[int] = None
    deadline_urgency_score: Optional[int] = None
    pipeline_stage: str
    interested_at: Optional[datetime] = None
    pitched_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    tags: Optional[List[int]] = None
    is_archived: Optional[bool] = None
    opportunity: Optional[OpportunityResponse] = None


class StageMoveRequest(BaseModel):
    stage: str
    reason: Optional[str] = None


class ActionRequest(BaseModel):
    reason: Optional[str] = None


class BulkMatchRequest(BaseModel):
    match_ids: List[int] = Field(..., min_length=1)


class BulkMoveRequest(BulkMatchRequest):
    stage: str


class BulkTagRequest(BulkMatchRequest):
    tag_id: int


class BulkResultResponse(BaseModel):
    succeeded: List[int]
    failed: Dict[int, str]


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = "gray"


class TagResponse(ORMModel):
    tag_id: int
    name: str
    color: Optional[str] = None


class ActivityCreate(BaseModel):
    activity_type: str
    subject: Optional[str] = Field(None, max_length=500)
    body: Optional[str] = None
    notes: Optional[str] = None


class ActivityResponse(ORMModel):
    activity_id: int
    match_id: Optional[int] = None
    activity_type: str
    subject: Optional[str] = None
    body: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


# ─── Reminders ───────────────────────────────────────────────────────────────

class ReminderViewResponse(ORMModel):
    reminder_id: int
    match_id: int
    reminder_type: str
    due_date: date
    is_completed: bool
    event_name: str
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None
    opportunity_id: Optional[int] = None
    days_until_due: int


class ReminderBucketsResponse(BaseModel):
    overdue: List[ReminderViewResponse]
    due_today: List[ReminderViewResponse]
    upcoming: List[ReminderViewResponse]
    total: int


class ReminderResponse(ORMModel):
    reminder_id: int
    match_id: int
    reminder_type: str
    due_date: date
    is_completed: bool
    completed_at: Optional[datetime] = None
    outcome: Optional[str] = None


class ReminderStatusResponse(ORMModel):
    reminder_id: int
    reminder_type: str
    due_date: date
    days_until_due: int
    status: str


class SnoozeRequest(BaseModel):
    days: Optional[int] = Field(None, ge=1, le=90)


# ─── Ranking & content ───────────────────────────────────────────────────────

class RankingResponse(BaseModel):
    success: bool
    message: str
    scored_count: int
    total_opportunities: int
    failed: Dict[int, str]


class PitchRequest(BaseModel):
    opportunity_id: int
    tone: str = "professional"


class PitchResponse(ORMModel):
    pitch_id: int
    opportunity_id: int
    subject_line: str
    email_body: str
    tone: Optional[str] = None
    variant: Optional[str] = None


class FollowUpRequest(BaseModel):
    opportunity_id: int
    reminder_type: str = "first"


class FollowUpResponse(BaseModel):
    subject_line: str
    email_body: str
    reminder_type: str


class OrganizerStrategyRequest(BaseModel):
    organizer_name: str = Field(..., min_length=1)
    organization_name: Optional[str] = None
    speakers_booked: List[str] = []


class OrganizerStrategyResponse(BaseModel):
    organizer_name: str
    budget_tier: str
    budget_range: str
    top_topics: List[Dict[str, Any]]
    suggestedAngle: Optional[str] = None
    talkingPoints: List[str] = []
    relevantTopics: List[str] = []


class ChatMessage(BaseModel):
    role: str
    content: str


class CoachRequest(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)
    mode: str = "default"


class CoachResponse(BaseModel):
    reply: str
    mode: str


class TopicExtractionRequest(BaseModel):
    vocabulary: List[str] = Field(..., min_length=1)
    limit: Optional[int] = Field(None, ge=1)


# ─── Scraping & saved searches ───────────────────────────────────────────────

class ScrapeRequest(BaseModel):
    sources: Optional[List[str]] = None


class ScrapeResultResponse(BaseModel):
    source: str
    success: bool
    found: int
    inserted: int
    updated: int
    error: Optional[str] = None
    log_id: Optional[int] = None


class ScrapingLogResponse(ORMModel):
    log_id: int
    source: str
    status: str
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    opportunities_found: Optional[int] = None
    opportunities_inserted: Optional[int] = None
    opportunities_updated: Optional[int] = None
    error_message: Optional[str] = None


class SearchFilters(BaseModel):
    search: Optional[str] = None
    fee_ranges: List[str] = []
    topics: List[str] = []
    deadline_within_days: Optional[int] = Field(None, ge=0)


class SavedSearchCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    filters: SearchFilters = SearchFilters()
    notify_new_matches: bool = False


class SavedSearchResponse(ORMModel):
    search_id: int
    name: str
    filters: Dict[str, Any]
    notify_new_matches: bool
    last_notified_at: Optional[datetime] = None
    results_count: Optional[int] = None
    created_at: Optional[datetime] = None


class SavedSearchMatch(BaseModel):
    search_id: int
    search_name: str
    profile_id: int
    new_matches: int


# ─── Leads, bookings, invoices ───────────────────────────────────────────────

class LeadSubmit(BaseModel):
    speaker_id: int
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    event_name: Optional[str] = None
    event_type: Optional[str] = None
    event_date: Optional[str] = None
    estimated_audience: Optional[str] = None
    budget_range: Optional[str] = None
    message: Optional[str] = None


class LeadResponse(ORMModel):
    lead_id: int
    name: str
    email: str
    phone: Optional[str] = None
    company: Optional[str] = None
    event_name: Optional[str] = None
    event_type: Optional[str] = None
    event_date: Optional[date] = None
    estimated_audience: Optional[str] = None
    budget_range: Optional[str] = None
    message: Optional[str] = None
    source: Optional[str] = None
    status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class LeadStatusUpdate(BaseModel):
    status: str
    notes: Optional[str] = None


class BookingCreate(BaseModel):
    event_name: str = Field(..., min_length=1)
    event_date: Optional[date] = None
    confirmed_fee: float = Field(0, ge=0)
    amount_paid: float = Field(0, ge=0)
    expenses: float = Field(0, ge=0)
    fee_currency: str = "USD"
    payment_status: Optional[str] = None
    payment_date: Optional[date] = None
    notes: Optional[str] = None
    match_id: Optional[int] = None


class BookingUpdate(BaseModel):
    event_name: Optional[str] = None
    event_date: Optional[date] = None
    confirmed_fee: Optional[float] = Field(None, ge=0)
    amount_paid: Optional[float] = Field(None, ge=0)
    expenses: Optional[float] = Field(None, ge=0)
    fee_currency: Optional[str] = None
    payment_status: Optional[str] = None
    payment_date: Optional[date] = None
    notes: Optional[str] = None


class AcceptToBookingRequest(BaseModel):
    confirmed_fee: Optional[float] = Field(None, ge=0)


class BookingResponse(ORMModel):
    booking_id: int
    match_id: Optional[int] = None
    event_name: str
    event_date: Optional[date] = None
    confirmed_fee: Optional[float] = None
    amount_paid: Optional[float] = None
    expenses: Optional[float] = None
    fee_currency: Optional[str] = None
    payment_status: str
    payment_date: Optional[date] = None
    notes: Optional[str] = None


class LineItem(BaseModel):
    description: str
    quantity: float = Field(1, gt=0)
    rate: float = Field(0, ge=0)


class InvoiceCreate(BaseModel):
    line_items: List[LineItem] = Field(..., min_length=1)
    tax_rate: float = Field(0, ge=0)
    issue_date: Optional[date] = None
    due_date: Optional[date] = None
    booking_id: Optional[int] = None
    notes: Optional[str] = None


class InvoiceStatusUpdate(BaseModel):
    status: str


class InvoiceResponse(ORMModel):
    invoice_id: int
    invoice_number: str
    booking_id: Optional[int] = None
    issue_date: date
    due_date: date
    line_items: List[Dict[str, Any]]
    subtotal: float
    tax_rate: float
    tax_amount: float
    total: float
    status: str
    sent_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    notes: Optional[str] = None


# ─── Revenue ─────────────────────────────────────────────────────────────────

class RevenueStatsResponse(BaseModel):
    total_confirmed: float
    total_received: float
    pipeline_value: float
    win_rate: float
    average_fee: float
    bookings_this_year: int
    goal: float
    goal_year: int
    goal_progress: float


class MonthlyRevenueResponse(ORMModel):
    month: str
    short_month: str
    current: float
    last_year: float
    projected: Optional[float] = None


# ─── System ──────────────────────────────────────────────────────────────────

class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
