"""
Speaker pipeline: stage transitions for speaker × opportunity matches.

Stages:
  new → researching → interested → pitched → negotiating → accepted → completed
                                                  ↘ rejected ↙

A card can jump between any of the working stages, forward or back, the way
it would be dragged on a board. Nothing returns to `new` and `completed` is
final. Entering `pitched` schedules the follow-up reminders; entering a closed
stage cancels them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy.orm import Session

from db.models import OpportunityScore, OutreachActivity, PipelineTag
from models import (
    ActivityType,
    BulkResult,
    InvalidStageTransition,
    NotFound,
    PipelineError,
    PipelineStage,
    ValidationFailed,
)
from utils.reminders import (
    cancel_open_reminders,
    create_follow_up_reminders,
    get_follow_up_intervals,
    open_reminders_for_match,
)

logger = logging.getLogger(__name__)

S = PipelineStage

# Cards move freely between working stages, board-style. `new` is entry-only
# and `completed` is final.
VALID_TRANSITIONS: Dict[PipelineStage, FrozenSet[PipelineStage]] = {
    stage: frozenset(t for t in PipelineStage if t not in (stage, S.NEW))
    for stage in PipelineStage
    if stage is not S.COMPLETED
}
VALID_TRANSITIONS[S.COMPLETED] = frozenset()

# Stages that close the outreach loop; open follow-ups are cancelled on entry.
CLOSED_STAGES = frozenset({S.ACCEPTED, S.REJECTED, S.COMPLETED})

_STAGE_TIMESTAMPS = {
    S.INTERESTED: "interested_at",
    S.PITCHED: "pitched_at",
    S.ACCEPTED: "accepted_at",
    S.REJECTED: "rejected_at",
    S.COMPLETED: "completed_at",
}

# UI verbs on an opportunity card
ACTIONS = {
    "save": S.INTERESTED,
    "pass": S.REJECTED,
    "apply": S.PITCHED,
}


def parse_stage(value) -> PipelineStage:
    try:
        return PipelineStage(value)
    except ValueError:
        raise ValidationFailed(f"Unknown pipeline stage '{value}'")


def can_transition(current: PipelineStage, target: PipelineStage) -> bool:
    return current == target or target in VALID_TRANSITIONS[current]


def validate_transition(current: PipelineStage, target: PipelineStage) -> None:
    if not can_transition(current, target):
        raise InvalidStageTransition(current.value, target.value)


def get_match(session: Session, profile_id: int, match_id: int) -> OpportunityScore:
    match = (
        session.query(OpportunityScore)
        .filter(OpportunityScore.score_id == match_id, OpportunityScore.profile_id == profile_id)
        .one_or_none()
    )
    if match is None:
        raise NotFound(f"Match {match_id} not found")
    return match


def get_or_create_match(session: Session, profile_id: int, opportunity_id: int) -> OpportunityScore:
    """Match row for a speaker and opportunity; unscored opportunities start at `new`."""
    match = (
        session.query(OpportunityScore)
        .filter(
            OpportunityScore.profile_id == profile_id,
            OpportunityScore.opportunity_id == opportunity_id,
        )
        .one_or_none()
    )
    if match is None:
        match = OpportunityScore(
            profile_id=profile_id,
            opportunity_id=opportunity_id,
            pipeline_stage=S.NEW.value,
            tags=[],
        )
        session.add(match)
        session.flush()
    return match


def move_to_stage(
    session: Session,
    match: OpportunityScore,
    target,
    now: Optional[datetime] = None,
    reason: Optional[str] = None,
) -> OpportunityScore:
    """
    Move a match to `target`, applying the stage side effects.
    Moving to the current stage is a no-op.
    """
    now = now or datetime.utcnow()
    target = parse_stage(target)
    current = parse_stage(match.pipeline_stage or S.NEW.value)

    validate_transition(current, target)
    if current == target:
        return match

    match.pipeline_stage = target.value
    ts_field = _STAGE_TIMESTAMPS.get(target)
    if ts_field:
        setattr(match, ts_field, now)
    if target == S.REJECTED:
        match.rejection_reason = reason
    elif current == S.REJECTED:
        match.rejection_reason = None

    if target == S.PITCHED:
        if open_reminders_for_match(session, match.score_id):
            logger.info(f"Match {match.score_id} already has open follow-ups; not rescheduling")
        else:
            create_follow_up_reminders(
                session, match, now, get_follow_up_intervals(match.profile)
            )
    elif target in CLOSED_STAGES:
        cancel_open_reminders(session, match.score_id, now)

    session.flush()
    logger.info(f"Match {match.score_id}: {current.value} → {target.value}")
    return match


def apply_action(
    session: Session,
    profile_id: int,
    opportunity_id: int,
    action: str,
    now: Optional[datetime] = None,
    reason: Optional[str] = None,
) -> OpportunityScore:
    """save / pass / apply on an opportunity card."""
    if action not in ACTIONS:
        raise ValidationFailed(f"Unknown action '{action}'")
    match = get_or_create_match(session, profile_id, opportunity_id)
    was_pitched = match.pipeline_stage == S.PITCHED.value
    move_to_stage(session, match, ACTIONS[action], now=now, reason=reason)
    if action == "apply" and not was_pitched:
        log_activity(
            session, profile_id, match.score_id, ActivityType.APPLICATION,
            subject=f"Applied to {match.opportunity.event_name}", now=now,
        )
    return match


# ─── Bulk actions ────────────────────────────────────────────────────────────


def _matches_by_id(session: Session, profile_id: int, match_ids: List[int]) -> Dict[int, OpportunityScore]:
    rows = (
        session.query(OpportunityScore)
        .filter(OpportunityScore.profile_id == profile_id, OpportunityScore.score_id.in_(match_ids))
        .all()
    )
    return {m.score_id: m for m in rows}


def bulk_move(
    session: Session,
    profile_id: int,
    match_ids: List[int],
    target,
    now: Optional[datetime] = None,
) -> BulkResult:
    """Move each match independently; illegal moves are reported, not raised."""
    target = parse_stage(target)
    found = _matches_by_id(session, profile_id, match_ids)
    result = BulkResult()

    for match_id in match_ids:
        match = found.get(match_id)
        if match is None:
            result.failed[match_id] = "not found"
            continue
        try:
            move_to_stage(session, match, target, now=now)
            result.succeeded.append(match_id)
        except PipelineError as e:
            logger.warning(f"Bulk move skipped match {match_id}: {e}")
            result.failed[match_id] = str(e)

    logger.info(
        f"Bulk move to {target.value}: {len(result.succeeded)} moved, {len(result.failed)} failed"
    )
    return result


def bulk_archive(session: Session, profile_id: int, match_ids: List[int]) -> int:
    found = _matches_by_id(session, profile_id, match_ids)
    for match in found.values():
        match.is_archived = True
    session.flush()
    return len(found)


def create_tag(session: Session, profile_id: int, name: str, color: str = "gray") -> PipelineTag:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Tag name is required")
    tag = PipelineTag(profile_id=profile_id, name=name, color=color)
    session.add(tag)
    session.flush()
    return tag


def list_tags(session: Session, profile_id: int) -> List[PipelineTag]:
    return (
        session.query(PipelineTag)
        .filter(PipelineTag.profile_id == profile_id)
        .order_by(PipelineTag.name)
        .all()
    )


def _get_tag(session: Session, profile_id: int, tag_id: int) -> PipelineTag:
    tag = (
        session.query(PipelineTag)
        .filter(PipelineTag.tag_id == tag_id, PipelineTag.profile_id == profile_id)
        .one_or_none()
    )
    if tag is None:
        raise NotFound(f"Tag {tag_id} not found")
    return tag


def bulk_add_tag(session: Session, profile_id: int, match_ids: List[int], tag_id: int) -> int:
    _get_tag(session, profile_id, tag_id)
    changed = 0
    for match in _matches_by_id(session, profile_id, match_ids).values():
        current = list(match.tags or [])
        if tag_id not in current:
            match.tags = current + [tag_id]
            changed += 1
    session.flush()
    return changed


def bulk_remove_tag(session: Session, profile_id: int, match_ids: List[int], tag_id: int) -> int:
    changed = 0
    for match in _matches_by_id(session, profile_id, match_ids).values():
        current = list(match.tags or [])
        if tag_id in current:
            match.tags = [t for t in current if t != tag_id]
            changed += 1
    session.flush()
    return changed


# ─── Board ───────────────────────────────────────────────────────────────────


def pipeline_board(session: Session, profile_id: int) -> Dict[str, List[OpportunityScore]]:
    """Non-archived matches grouped by stage, best AI score first."""
    board: Dict[str, List[OpportunityScore]] = {stage.value: [] for stage in PipelineStage}
    rows = (
        session.query(OpportunityScore)
        .filter(
            OpportunityScore.profile_id == profile_id,
            OpportunityScore.is_archived.is_(False),
        )
        .order_by(OpportunityScore.ai_score.desc(), OpportunityScore.score_id.asc())
        .all()
    )
    for match in rows:
        board.setdefault(match.pipeline_stage, []).append(match)
    return board


# ─── Activity timeline ───────────────────────────────────────────────────────


def log_activity(
    session: Session,
    profile_id: int,
    match_id: Optional[int],
    activity_type,
    subject: Optional[str] = None,
    body: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OutreachActivity:
    """Record an outreach step. `match_id` may be None for general activity."""
    try:
        activity_type = ActivityType(activity_type)
    except ValueError:
        raise ValidationFailed(f"Unknown activity type '{activity_type}'")
    if match_id is not None:
        get_match(session, profile_id, match_id)

    activity = OutreachActivity(
        profile_id=profile_id,
        match_id=match_id,
        activity_type=activity_type.value,
        subject=(subject or "").strip() or None,
        body=body or None,
        notes=(notes or "").strip() or None,
        created_at=now or datetime.utcnow(),
    )
    session.add(activity)
    session.flush()
    logger.info(f"Activity {activity.activity_type} logged for match {match_id}")
    return activity


def list_activities(
    session: Session,
    profile_id: int,
    match_id: Optional[int] = None,
    limit: int = 50,
) -> List[OutreachActivity]:
    """Newest first; one card's timeline when `match_id` is given, else the speaker's feed."""
    query = session.query(OutreachActivity).filter(OutreachActivity.profile_id == profile_id)
    if match_id is not None:
        get_match(session, profile_id, match_id)
        query = query.filter(OutreachActivity.match_id == match_id)
    return (
        query.order_by(OutreachActivity.created_at.desc(), OutreachActivity.activity_id.desc())
        .limit(limit)
        .all()
    )
