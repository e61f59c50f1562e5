"""
Opportunity Ranking Agent
-------------------------
Scores every active opportunity for one speaker.

The relevance score itself comes from the LLM: the speaker profile and the
opportunity are interpolated into a rubric prompt

  Topic match 80% · Fee alignment 10% · Deadline urgency 5% · Audience 5%

and the model returns {"score": 1-100, "reason": "..."}. Three component
scores are computed locally and stored next to it for explainability.

Input:  profile_id
Output: RankingOutput
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Dict, Any

from sqlalchemy.orm import Session

from agents.base import Agent
from agents.llm import LLMClient, LLMError
from config.settings import settings
from db.models import Opportunity, OpportunityScore, Profile
from models import NotFound, ProfileIncomplete
from utils.pipeline import get_or_create_match

logger = logging.getLogger(__name__)


# ─── Data Structures ─────────────────────────────────────────────────────────


@dataclass
class RankingOutput:
    profile_id: int
    scored_count: int = 0
    failed: Dict[int, str] = field(default_factory=dict)
    total_opportunities: int = 0

    @property
    def message(self) -> str:
        return f"Ranked {self.scored_count} opportunities for you"


# ─── Component Scores ────────────────────────────────────────────────────────


def days_until_deadline(deadline: Optional[date], today: date) -> int:
    if deadline is None:
        return settings.DEFAULT_DEADLINE_DAYS
    if isinstance(deadline, datetime):
        deadline = deadline.date()
    return (deadline - today).days


def deadline_urgency(days_left: int) -> int:
    """Closer deadlines are more urgent: ≤7d → 100, ≤30d → 80, ≤90d → 60, else 40."""
    if days_left <= 7:
        return 100
    if days_left <= 30:
        return 80
    if days_left <= 90:
        return 60
    return 40


def topic_match_score(speaker_topics: List[str], opportunity_topics: List[str]) -> int:
    mine = {t.strip().lower() for t in speaker_topics or []}
    theirs = {t.strip().lower() for t in opportunity_topics or []}
    return 80 if mine & theirs else 20


def fee_alignment_score(profile: Profile, opportunity: Opportunity) -> int:
    offered = opportunity.fee_estimate_min or 0
    wanted = profile.fee_range_min or 0
    return 100 if offered >= wanted * settings.FEE_ALIGNMENT_RATIO else 60


def clamp_score(value: Any) -> int:
    return int(min(100, max(1, round(float(value)))))


# ─── Prompt ──────────────────────────────────────────────────────────────────


def build_scoring_prompt(profile: Profile, opportunity: Opportunity, days_left: int, urgency: int) -> str:
    opp_topics = opportunity.topics or []
    past_talks = ", ".join(profile.past_talks or []) or "None listed"
    return f"""You are a speaking opportunity matcher. Score this opportunity for the speaker on a scale of 1-100.

Speaker Profile:
- Topics: {', '.join(profile.topics or [])}
- Fee Range: ${profile.fee_range_min or 0:.0f}-${profile.fee_range_max or 0:.0f}
- Bio: {profile.bio or 'Not provided'}
- Past Talks: {past_talks}

Opportunity:
- Event: {opportunity.event_name}
- Topics: {', '.join(opp_topics)}
- Fee Estimate: ${opportunity.fee_estimate_min or 0:.0f}-${opportunity.fee_estimate_max or 0:.0f}
- Deadline: {days_left} days
- Audience: {opportunity.audience_size or 'Unknown'}
- Location: {opportunity.location or 'Unknown'}

Scoring Criteria (weights):
- Topic Match: 80% (exact match = 100, related = 70, unrelated = 20)
- Fee Alignment: 10% (within range = 100, 20% below = 80, 50% below = 40)
- Deadline Urgency: 5% (precomputed: {urgency})
- Audience Size: 5% (1000+ = 100, 500+ = 80, 100+ = 60)

Return ONLY valid JSON (no markdown, no explanations):
{{
  "score": <number between 1-100>,
  "reason": "<2 sentence explanation focusing on topic match and fee>"
}}"""


# ─── OpportunityRankingAgent ─────────────────────────────────────────────────


class OpportunityRankingAgent(Agent):
    """
    Scores all active opportunities for a speaker and upserts one
    OpportunityScore per (speaker, opportunity). Existing rows keep their
    pipeline stage; only the scores are refreshed.

    A failure on one opportunity (gateway error, rate limit, non-JSON reply)
    is logged and the loop moves on.
    """

    def __init__(self, session: Session, llm: Optional[LLMClient] = None):
        super().__init__(name="OpportunityRankingAgent")
        self.session = session
        self.llm = llm or LLMClient()

    def _load_profile(self, profile_id: int) -> Profile:
        profile = self.session.get(Profile, profile_id)
        if profile is None:
            raise NotFound(f"Profile {profile_id} not found")
        if not profile.topics:
            raise ProfileIncomplete("Please complete your profile with speaking topics first")
        return profile

    def score_one(self, profile: Profile, opportunity: Opportunity, today: date) -> OpportunityScore:
        days_left = days_until_deadline(opportunity.deadline, today)
        urgency = deadline_urgency(days_left)
        prompt = build_scoring_prompt(profile, opportunity, days_left, urgency)

        result = self.llm.chat_json(prompt)
        if not isinstance(result, dict) or "score" not in result:
            raise LLMError(f"Unexpected scoring payload: {str(result)[:200]}")

        match = get_or_create_match(self.session, profile.profile_id, opportunity.opportunity_id)
        match.ai_score = clamp_score(result["score"])
        match.ai_reason = result.get("reason")
        match.topic_match_score = topic_match_score(profile.topics, opportunity.topics)
        match.fee_alignment_score = fee_alignment_score(profile, opportunity)
        match.deadline_urgency_score = urgency
        match.calculated_at = datetime.utcnow()
        return match

    def run(self, profile_id: int, today: Optional[date] = None) -> RankingOutput:
        today = today or date.today()
        profile = self._load_profile(profile_id)
        opportunities = (
            self.session.query(Opportunity)
            .filter(Opportunity.is_active.is_(True))
            .order_by(Opportunity.opportunity_id)
            .all()
        )
        output = RankingOutput(profile_id=profile_id, total_opportunities=len(opportunities))
        self.logger.info(f"Ranking {len(opportunities)} opportunities for profile {profile_id}")

        for opp in opportunities:
            try:
                self.score_one(profile, opp, today)
                output.scored_count += 1
            except (LLMError, ValueError, TypeError) as e:
                self.logger.error(f"Error scoring opportunity {opp.opportunity_id}: {e}")
                output.failed[opp.opportunity_id] = str(e)

        self.session.flush()
        self.logger.info(
            f"Successfully scored {output.scored_count}/{len(opportunities)} opportunities"
        )
        return output
