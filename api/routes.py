"""
FastAPI Route Handlers
NextMic: profiles, opportunities, pipeline, reminders, AI content, scraping
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session

from agents.content import (
    CoachAgent,
    FollowUpGenerator,
    OrganizerStrategyGenerator,
    PitchGenerator,
    TopicExtractor,
    research_organizer,
)
from agents.extractor import OpportunityExtractor
from agents.llm import LLMClient
from agents.scorer import OpportunityRankingAgent
from agents.scraper import scrape_all_sources
from api.deps import domain_errors, get_current_profile, get_llm, require_admin
from api.schemas import (
    ActionRequest, ActivityCreate, ActivityResponse, BulkMatchRequest, BulkMoveRequest,
    BulkResultResponse, BulkTagRequest, CoachRequest, CoachResponse, FollowUpRequest,
    FollowUpResponse, HealthResponse, MatchResponse, OpportunityCreate, OpportunityDraft,
    OpportunityExtractRequest, OpportunityResponse, OrganizerStrategyRequest,
    OrganizerStrategyResponse, PitchRequest, PitchResponse, ProfileCreate, ProfileResponse,
    ProfileUpdate, RankingResponse, ReminderBucketsResponse, ReminderResponse,
    ReminderStatusResponse, ReminderViewResponse, SavedSearchCreate, SavedSearchMatch,
    SavedSearchResponse, ScrapeRequest, ScrapeResultResponse, ScrapingLogResponse,
    SnoozeRequest, StageMoveRequest, TagCreate, TagResponse, TopicExtractionRequest,
)
from config.settings import settings
from db.database import get_db_dependency
from db.models import Opportunity, Profile, SavedSearch, ScrapingLog
from utils import matching, pipeline, reminders

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Health ──────────────────────────────────────────────────────────────────

@router.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    return HealthResponse(
        status="ok",
        version=settings.APP_VERSION,
        timestamp=datetime.utcnow(),
    )


# ─── Profiles ────────────────────────────────────────────────────────────────

@router.post("/profiles", response_model=ProfileResponse, status_code=201, tags=["Profiles"])
def create_profile(request: ProfileCreate, db: Session = Depends(get_db_dependency)):
    email = request.email.strip().lower()
    if db.query(Profile).filter(Profile.email == email).first():
        raise HTTPException(status_code=409, detail="A profile with this email already exists.")
    profile = Profile(**request.model_dump(exclude={"email"}), email=email)
    db.add(profile)
    db.flush()
    logger.info(f"Profile {profile.profile_id} created")
    return profile


@router.get("/profiles/me", response_model=ProfileResponse, tags=["Profiles"])
def get_my_profile(profile: Profile = Depends(get_current_profile)):
    return profile


@router.patch("/profiles/me", response_model=ProfileResponse, tags=["Profiles"])
def update_my_profile(
    request: ProfileUpdate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    for key, value in request.model_dump(exclude_unset=True).items():
        setattr(profile, key, value)
    db.flush()
    return profile


# ─── Opportunities ───────────────────────────────────────────────────────────

@router.get("/opportunities", response_model=List[OpportunityResponse], tags=["Opportunities"])
def list_opportunities(
    search: Optional[str] = None,
    fee_ranges: List[str] = Query([]),
    topics: List[str] = Query([]),
    deadline_within_days: Optional[int] = Query(None, ge=0),
    limit: int = Query(100, ge=1, le=500),
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    filters = {
        "search": search,
        "fee_ranges": fee_ranges,
        "topics": topics,
        "deadline_within_days": deadline_within_days,
    }
    with domain_errors():
        return matching.search_opportunities(db, filters, limit=limit)


@router.get("/opportunities/{opportunity_id}", response_model=OpportunityResponse, tags=["Opportunities"])
def get_opportunity(
    opportunity_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    opp = db.get(Opportunity, opportunity_id)
    if opp is None:
        raise HTTPException(status_code=404, detail=f"Opportunity {opportunity_id} not found.")
    return opp


@router.post("/opportunities", response_model=OpportunityResponse, status_code=201, tags=["Opportunities"])
def submit_opportunity(
    request: OpportunityCreate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    """Speaker-submitted listing (source `manual`)."""
    if request.event_url and db.query(Opportunity).filter(Opportunity.event_url == request.event_url).first():
        raise HTTPException(status_code=409, detail="An opportunity with this URL already exists.")
    if (
        request.fee_estimate_min is not None
        and request.fee_estimate_max is not None
        and request.fee_estimate_min > request.fee_estimate_max
    ):
        raise HTTPException(status_code=400, detail="Minimum fee cannot exceed maximum fee.")
    opp = Opportunity(**request.model_dump(), source="manual", submitted_by=profile.profile_id, is_active=True)
    db.add(opp)
    db.flush()
    return opp


@router.post("/opportunities/extract", response_model=OpportunityDraft, tags=["Opportunities", "AI"])
def extract_opportunity(
    request: OpportunityExtractRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
    llm: LLMClient = Depends(get_llm),
):
    """Draft a listing from an event page; the speaker reviews it, then submits via POST /opportunities."""
    with domain_errors():
        draft = OpportunityExtractor(llm=llm).run(request.url)
    existing = db.query(Opportunity).filter(Opportunity.event_url == draft.event_url).first()
    return OpportunityDraft(
        **{f: getattr(draft, f) for f in OpportunityCreate.model_fields},
        source=draft.source,
        existing_opportunity_id=existing.opportunity_id if existing else None,
    )


@router.post(
    "/opportunities/{opportunity_id}/deactivate",
    response_model=OpportunityResponse,
    tags=["Opportunities"],
)
def deactivate_opportunity(
    opportunity_id: int,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db_dependency),
):
    opp = db.get(Opportunity, opportunity_id)
    if opp is None:
        raise HTTPException(status_code=404, detail=f"Opportunity {opportunity_id} not found.")
    opp.is_active = False
    return opp


@router.post(
    "/opportunities/{opportunity_id}/{action}",
    response_model=MatchResponse,
    tags=["Pipeline"],
)
def opportunity_action(
    opportunity_id: int,
    action: str,
    request: Optional[ActionRequest] = None,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    """save → interested, pass → rejected, apply → pitched."""
    if action not in pipeline.ACTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown action '{action}'.")
    if db.get(Opportunity, opportunity_id) is None:
        raise HTTPException(status_code=404, detail=f"Opportunity {opportunity_id} not found.")
    with domain_errors():
        return pipeline.apply_action(
            db, profile.profile_id, opportunity_id, action,
            reason=request.reason if request else None,
        )


# ─── Pipeline ────────────────────────────────────────────────────────────────

@router.get("/pipeline", response_model=Dict[str, List[MatchResponse]], tags=["Pipeline"])
def get_pipeline_board(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    return pipeline.pipeline_board(db, profile.profile_id)


@router.get("/matches/{match_id}", response_model=MatchResponse, tags=["Pipeline"])
def get_match(
    match_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return pipeline.get_match(db, profile.profile_id, match_id)


@router.post("/matches/{match_id}/stage", response_model=MatchResponse, tags=["Pipeline"])
def move_match(
    match_id: int,
    request: StageMoveRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        match = pipeline.get_match(db, profile.profile_id, match_id)
        return pipeline.move_to_stage(db, match, request.stage, reason=request.reason)


@router.get(
    "/matches/{match_id}/reminder-status",
    response_model=Optional[ReminderStatusResponse],
    tags=["Reminders"],
)
def match_reminder_status(
    match_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        match = pipeline.get_match(db, profile.profile_id, match_id)
    return reminders.next_reminder_status(db, match)


@router.get("/matches/{match_id}/activities", response_model=List[ActivityResponse], tags=["Pipeline"])
def match_activities(
    match_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return pipeline.list_activities(db, profile.profile_id, match_id=match_id, limit=200)


@router.post(
    "/matches/{match_id}/activities",
    response_model=ActivityResponse,
    status_code=201,
    tags=["Pipeline"],
)
def log_match_activity(
    match_id: int,
    request: ActivityCreate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return pipeline.log_activity(
            db, profile.profile_id, match_id, request.activity_type,
            subject=request.subject, body=request.body, notes=request.notes,
        )


@router.get("/activities", response_model=List[ActivityResponse], tags=["Pipeline"])
def recent_activities(
    limit: int = Query(20, ge=1, le=200),
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    return pipeline.list_activities(db, profile.profile_id, limit=limit)


@router.post("/pipeline/bulk/move", response_model=BulkResultResponse, tags=["Pipeline"])
def bulk_move(
    request: BulkMoveRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        result = pipeline.bulk_move(db, profile.profile_id, request.match_ids, request.stage)
    return BulkResultResponse(succeeded=result.succeeded, failed=result.failed)


@router.post("/pipeline/bulk/archive", tags=["Pipeline"])
def bulk_archive(
    request: BulkMatchRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    return {"archived": pipeline.bulk_archive(db, profile.profile_id, request.match_ids)}


@router.post("/pipeline/bulk/tags/add", tags=["Pipeline"])
def bulk_add_tag(
    request: BulkTagRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return {"updated": pipeline.bulk_add_tag(db, profile.profile_id, request.match_ids, request.tag_id)}


@router.post("/pipeline/bulk/tags/remove", tags=["Pipeline"])
def bulk_remove_tag(
    request: BulkTagRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    return {"updated": pipeline.bulk_remove_tag(db, profile.profile_id, request.match_ids, request.tag_id)}


@router.get("/tags", response_model=List[TagResponse], tags=["Pipeline"])
def list_tags(profile: Profile = Depends(get_current_profile), db: Session = Depends(get_db_dependency)):
    return pipeline.list_tags(db, profile.profile_id)


@router.post("/tags", response_model=TagResponse, status_code=201, tags=["Pipeline"])
def create_tag(
    request: TagCreate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return pipeline.create_tag(db, profile.profile_id, request.name, request.color)


# ─── Reminders ───────────────────────────────────────────────────────────────

@router.get("/reminders", response_model=ReminderBucketsResponse, tags=["Reminders"])
def get_reminders(
    today: Optional[date] = None,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    today = today or date.today()
    buckets = reminders.bucket_reminders(reminders.list_open_reminders(db, profile.profile_id, today), today)
    return ReminderBucketsResponse(
        overdue=[ReminderViewResponse.model_validate(r) for r in buckets.overdue],
        due_today=[ReminderViewResponse.model_validate(r) for r in buckets.due_today],
        upcoming=[ReminderViewResponse.model_validate(r) for r in buckets.upcoming],
        total=buckets.total,
    )


@router.get("/reminders/overdue-count", tags=["Reminders"])
def get_overdue_count(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    today = date.today()
    return {"overdue": reminders.overdue_count(reminders.list_open_reminders(db, profile.profile_id, today), today)}


@router.post("/reminders/{reminder_id}/complete", response_model=ReminderResponse, tags=["Reminders"])
def complete_reminder(
    reminder_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return reminders.complete_reminder(db, profile.profile_id, reminder_id)


@router.post("/reminders/{reminder_id}/skip", response_model=ReminderResponse, tags=["Reminders"])
def skip_reminder(
    reminder_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return reminders.skip_reminder(db, profile.profile_id, reminder_id)


@router.post("/reminders/{reminder_id}/snooze", response_model=ReminderResponse, tags=["Reminders"])
def snooze_reminder(
    reminder_id: int,
    request: Optional[SnoozeRequest] = None,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return reminders.snooze_reminder(
            db, profile.profile_id, reminder_id, days=request.days if request else None
        )


# ─── Ranking ─────────────────────────────────────────────────────────────────

@router.post("/ranking/run", response_model=RankingResponse, tags=["AI"])
def run_ranking(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
    llm: LLMClient = Depends(get_llm),
):
    with domain_errors():
        output = OpportunityRankingAgent(db, llm=llm).run(profile.profile_id)
    return RankingResponse(
        success=True,
        message=output.message,
        scored_count=output.scored_count,
        total_opportunities=output.total_opportunities,
        failed=output.failed,
    )


# ─── Content generation ──────────────────────────────────────────────────────

@router.post("/content/pitch", response_model=List[PitchResponse], tags=["AI"])
def generate_pitch(
    request: PitchRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
    llm: LLMClient = Depends(get_llm),
):
    with domain_errors():
        return PitchGenerator(db, llm=llm).run(profile.profile_id, request.opportunity_id, request.tone)


@router.post("/content/follow-up", response_model=FollowUpResponse, tags=["AI"])
def generate_follow_up(
    request: FollowUpRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
    llm: LLMClient = Depends(get_llm),
):
    with domain_errors():
        return FollowUpGenerator(db, llm=llm).run(
            profile.profile_id, request.opportunity_id, request.reminder_type
        )


@router.post("/content/organizer-strategy", response_model=OrganizerStrategyResponse, tags=["AI"])
def generate_organizer_strategy(
    request: OrganizerStrategyRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
    llm: LLMClient = Depends(get_llm),
):
    insights = research_organizer(db, request.organizer_name)
    insights.organization_name = request.organization_name
    insights.speakers_booked = request.speakers_booked
    with domain_errors():
        strategy = OrganizerStrategyGenerator(llm=llm).run(insights, profile.topics or [])
    return OrganizerStrategyResponse(
        organizer_name=insights.organizer_name,
        budget_tier=insights.budget_tier,
        budget_range=insights.budget_range,
        top_topics=insights.top_topics,
        suggestedAngle=strategy.get("suggestedAngle"),
        talkingPoints=strategy.get("talkingPoints", []),
        relevantTopics=strategy.get("relevantTopics", []),
    )


@router.post("/content/coach", response_model=CoachResponse, tags=["AI"])
def coach(
    request: CoachRequest,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
    llm: LLMClient = Depends(get_llm),
):
    messages = [m.model_dump() for m in request.messages]
    with domain_errors():
        reply = CoachAgent(db, llm=llm).run(profile.profile_id, messages, request.mode)
    return CoachResponse(reply=reply, mode=request.mode)


@router.post("/content/extract-topics", tags=["AI", "Admin"])
def extract_topics(
    request: TopicExtractionRequest,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db_dependency),
    llm: LLMClient = Depends(get_llm),
):
    with domain_errors():
        return TopicExtractor(db, request.vocabulary, llm=llm).run(limit=request.limit)


# ─── Scraping (admin) ────────────────────────────────────────────────────────

@router.post("/scraping/run", response_model=List[ScrapeResultResponse], tags=["Admin"])
def run_scrapers(
    request: Optional[ScrapeRequest] = None,
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db_dependency),
):
    sources = request.sources if request else None
    results = scrape_all_sources(db, sources)
    return [ScrapeResultResponse(**r.to_dict()) for r in results]


@router.get("/scraping/logs", response_model=List[ScrapingLogResponse], tags=["Admin"])
def scraping_logs(
    limit: int = Query(50, ge=1, le=500),
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db_dependency),
):
    return (
        db.query(ScrapingLog)
        .order_by(ScrapingLog.started_at.desc(), ScrapingLog.log_id.desc())
        .limit(limit)
        .all()
    )


# ─── Saved searches ──────────────────────────────────────────────────────────

@router.get("/saved-searches", response_model=List[SavedSearchResponse], tags=["Saved Searches"])
def list_saved_searches(
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    return (
        db.query(SavedSearch)
        .filter(SavedSearch.profile_id == profile.profile_id)
        .order_by(SavedSearch.created_at.desc())
        .all()
    )


@router.post("/saved-searches", response_model=SavedSearchResponse, status_code=201, tags=["Saved Searches"])
def create_saved_search(
    request: SavedSearchCreate,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        return matching.create_saved_search(
            db,
            profile.profile_id,
            request.name,
            request.filters.model_dump(exclude_none=True),
            request.notify_new_matches,
        )


@router.delete("/saved-searches/{search_id}", status_code=204, tags=["Saved Searches"])
def delete_saved_search(
    search_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db_dependency),
):
    with domain_errors():
        db.delete(matching.get_saved_search(db, profile.profile_id, search_id))


@router.post("/saved-searches/check", response_model=List[SavedSearchMatch], tags=["Admin"])
def check_saved_searches(
    admin: Profile = Depends(require_admin),
    db: Session = Depends(get_db_dependency),
):
    return [SavedSearchMatch(**r.to_dict()) for r in matching.check_saved_search_matches(db)]
