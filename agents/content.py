"""
Content Generation Agents
-------------------------
Stateless request/response wrappers around the LLM gateway:

  PitchGenerator             3 cold-email variants, saved as Pitch rows
  FollowUpGenerator          follow-up email for a reminder (1st / 2nd / final)
  OrganizerStrategyGenerator approach strategy for an event organizer
  CoachAgent                 speaking-coach chat reply for a coaching mode
  TopicExtractor             tags untagged opportunities from a topic vocabulary
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from agents.base import Agent
from agents.llm import LLMClient, LLMError
from config.settings import settings
from db.models import Opportunity, Pitch, Profile
from models import NotFound, ReminderType, ValidationFailed

logger = logging.getLogger(__name__)

PITCH_VARIANTS = ("concise", "balanced", "detailed")


def _load(session: Session, model, key: int, label: str):
    obj = session.get(model, key)
    if obj is None:
        raise NotFound(f"{label} {key} not found")
    return obj


# ─── Pitches ─────────────────────────────────────────────────────────────────


def build_pitch_prompt(profile: Profile, opportunity: Opportunity, tone: str) -> str:
    return f"""Generate 3 cold email pitches for a speaking opportunity.

Speaker:
- Name: {profile.name or 'Speaker'}
- Bio: {profile.bio or 'Experienced speaker'}
- Topics: {', '.join(profile.topics or []) or 'Not specified'}
- Past Talks: {', '.join(profile.past_talks or []) or 'None listed'}
- LinkedIn: {profile.linkedin_url or 'Not provided'}

Opportunity:
- Event: {opportunity.event_name}
- Organizer: {opportunity.organizer_name or 'Event Organizer'}
- Topics: {', '.join(opportunity.topics or []) or 'Not specified'}
- Audience: {opportunity.audience_size or 'Unknown'}
- Description: {opportunity.description or 'No description provided'}
- Location: {opportunity.location or 'Unknown'}

Tone: {tone}

Requirements:
- 3 different variants (concise, balanced, detailed)
- Each max 150 words
- Include subject line
- Reference relevant expertise
- Clear CTA to discuss speaking opportunity
- Professional, humble, confident
- No generic templates

Return ONLY valid JSON (no markdown, no explanations):
[
  {{"variant": "concise", "subject": "<subject line>", "body": "<email body>"}},
  {{"variant": "balanced", "subject": "<subject line>", "body": "<email body>"}},
  {{"variant": "detailed", "subject": "<subject line>", "body": "<email body>"}}
]"""


class PitchGenerator(Agent):
    def __init__(self, session: Session, llm: Optional[LLMClient] = None):
        super().__init__(name="PitchGenerator")
        self.session = session
        self.llm = llm or LLMClient()

    def run(self, profile_id: int, opportunity_id: int, tone: str = "professional") -> List[Pitch]:
        profile = _load(self.session, Profile, profile_id, "Profile")
        opportunity = _load(self.session, Opportunity, opportunity_id, "Opportunity")

        variants = self.llm.chat_json(build_pitch_prompt(profile, opportunity, tone))
        if isinstance(variants, dict):
            variants = variants.get("pitches", [variants])
        if not isinstance(variants, list):
            raise LLMError("Invalid AI response format")

        pitches = []
        for item in variants:
            subject, body = item.get("subject"), item.get("body")
            if not subject or not body:
                self.logger.warning(f"Dropping incomplete pitch variant: {item!r:.120}")
                continue
            pitch = Pitch(
                profile_id=profile_id,
                opportunity_id=opportunity_id,
                subject_line=subject,
                email_body=body,
                tone=tone,
                variant=item.get("variant"),
            )
            self.session.add(pitch)
            pitches.append(pitch)

        if not pitches:
            raise LLMError("AI returned no usable pitches")
        self.session.flush()
        self.logger.info(f"Saved {len(pitches)} pitches for opportunity {opportunity_id}")
        return pitches


# ─── Follow-ups ──────────────────────────────────────────────────────────────


_FOLLOW_UP_TONES = """- Follow-up 1: Friendly check-in, express continued interest
- Follow-up 2: Add more value, perhaps share a relevant resource
- Follow-up 3: Final, gracious note leaving the door open"""


def build_follow_up_prompt(
    profile: Profile,
    opportunity: Opportunity,
    reminder_type: ReminderType,
    original_subject: Optional[str],
) -> str:
    n = reminder_type.number
    linkedin = f"\n- LinkedIn: {profile.linkedin_url}" if profile.linkedin_url else ""
    original = f"\nORIGINAL PITCH SUBJECT: {original_subject}\n" if original_subject else ""
    return f"""You are a professional speaking coach helping a speaker write a {reminder_type.value} follow-up email.

SPEAKER INFO:
- Name: {profile.name or 'Speaker'}
- Bio: {profile.bio or 'Professional speaker'}{linkedin}

OPPORTUNITY INFO:
- Event: {opportunity.event_name}
- Organizer: {opportunity.organizer_name or 'Event Organizer'}
- Event Date: {opportunity.event_date or 'TBD'}
- Location: {opportunity.location or 'TBD'}
{original}
FOLLOW-UP NUMBER: {n} of 3

INSTRUCTIONS:
Write a polite, professional follow-up email that:
1. References the original application/pitch without being pushy
2. Adds value by mentioning something relevant (a recent talk, article, or industry trend)
3. Is brief and respectful of their time
4. Has an appropriate tone for follow-up #{n}:
{_FOLLOW_UP_TONES}

Return a JSON object with:
{{
  "subject_line": "Brief, friendly follow-up subject",
  "email_body": "The complete email text"
}}

Return ONLY valid JSON, no markdown."""


class FollowUpGenerator(Agent):
    def __init__(self, session: Session, llm: Optional[LLMClient] = None):
        super().__init__(name="FollowUpGenerator")
        self.session = session
        self.llm = llm or LLMClient()

    def run(self, profile_id: int, opportunity_id: int, reminder_type: str = "first") -> Dict[str, str]:
        try:
            rtype = ReminderType(reminder_type)
        except ValueError:
            raise ValidationFailed(f"Unknown reminder type '{reminder_type}'")

        profile = _load(self.session, Profile, profile_id, "Profile")
        opportunity = _load(self.session, Opportunity, opportunity_id, "Opportunity")
        last_pitch = (
            self.session.query(Pitch)
            .filter(Pitch.profile_id == profile_id, Pitch.opportunity_id == opportunity_id)
            .order_by(Pitch.generated_at.desc(), Pitch.pitch_id.desc())
            .first()
        )

        prompt = build_follow_up_prompt(
            profile, opportunity, rtype, last_pitch.subject_line if last_pitch else None
        )
        parsed = self.llm.chat_json(prompt)
        if not isinstance(parsed, dict) or not parsed.get("email_body"):
            raise LLMError("Failed to parse AI response")
        return {
            "subject_line": parsed.get("subject_line", ""),
            "email_body": parsed["email_body"],
            "reminder_type": rtype.value,
        }


# ─── Organizer strategy ──────────────────────────────────────────────────────


@dataclass
class OrganizerInsights:
    organizer_name: str
    organization_name: Optional[str] = None
    event_names: List[str] = field(default_factory=list)
    speakers_booked: List[str] = field(default_factory=list)
    top_topics: List[Dict[str, Any]] = field(default_factory=list)  # [{"name", "count"}]
    budget_tier: str = "Unknown"
    budget_range: str = "No fee data available"


def budget_tier(fees: List[tuple]) -> tuple:
    """(tier, description) from (min, max) fee pairs, by average max fee."""
    if not fees:
        return "Unknown", "No fee data available"
    avg_min = sum(f[0] for f in fees) / len(fees)
    avg_max = sum(f[1] for f in fees) / len(fees)
    lo, hi = round(avg_min / 1000), round(avg_max / 1000)
    if avg_max < 3000:
        return "$", "Typically under $3,000"
    if avg_max < 7500:
        return "$$", f"Typically ${lo}k-${hi}k"
    if avg_max < 15000:
        return "$$$", f"Typically ${lo}k-${hi}k"
    return "$$$$", f"Premium tier: ${lo}k-${hi}k+"


def research_organizer(session: Session, organizer_name: str) -> OrganizerInsights:
    """Aggregate what the opportunity table knows about an organizer."""
    events = (
        session.query(Opportunity)
        .filter(Opportunity.organizer_name.ilike(organizer_name))
        .order_by(Opportunity.event_date.desc())
        .all()
    )
    fees = [
        (e.fee_estimate_min or 0, e.fee_estimate_max or e.fee_estimate_min or 0)
        for e in events
        if e.fee_estimate_min or e.fee_estimate_max
    ]
    tier, tier_range = budget_tier(fees)
    topic_counts = Counter(t for e in events for t in (e.topics or []))
    return OrganizerInsights(
        organizer_name=organizer_name,
        event_names=[e.event_name for e in events],
        top_topics=[{"name": n, "count": c} for n, c in topic_counts.most_common(5)],
        budget_tier=tier,
        budget_range=tier_range,
    )


def overlapping_topics(user_topics: List[str], top_topics: List[Dict[str, Any]]) -> List[str]:
    organizer = [t["name"].lower() for t in top_topics]
    return [
        t for t in user_topics
        if any(t.lower() == o or t.lower() in o or o in t.lower() for o in organizer)
    ]


def build_organizer_prompt(insights: OrganizerInsights, user_topics: List[str]) -> str:
    parts = []
    if insights.event_names:
        parts.append(f"They've organized events like: {', '.join(insights.event_names)}.")
    if insights.top_topics:
        topics = ", ".join(f"{t['name']} ({t['count']} events)" for t in insights.top_topics)
        parts.append(f"Their most booked topics are: {topics}.")
    if insights.speakers_booked:
        parts.append(f"They've previously booked speakers like: {', '.join(insights.speakers_booked)}.")
    if insights.budget_tier != "Unknown":
        parts.append(f"Budget: {insights.budget_tier} tier ({insights.budget_range}).")
    if user_topics:
        parts.append(f"The speaker's expertise includes: {', '.join(user_topics)}.")

    at = f" at {insights.organization_name}" if insights.organization_name else ""
    context = "\n".join(parts)
    return f"""You are helping a professional speaker craft an approach strategy for reaching out to an event organizer.

Organizer: {insights.organizer_name}{at}

{context}

Based on this information, provide:
1. A suggested pitch angle (1-2 sentences) that positions the speaker as a great fit
2. 3-5 specific talking points they should mention in their outreach
3. Which of the speaker's topics are most relevant to this organizer

Respond in JSON format:
{{
  "suggestedAngle": "string",
  "talkingPoints": ["string", "string", ...],
  "relevantTopics": ["string", ...]
}}"""


class OrganizerStrategyGenerator(Agent):
    def __init__(self, llm: Optional[LLMClient] = None):
        super().__init__(name="OrganizerStrategyGenerator")
        self.llm = llm or LLMClient()

    def run(self, insights: OrganizerInsights, user_topics: List[str]) -> Dict[str, Any]:
        strategy = self.llm.chat_json(
            build_organizer_prompt(insights, user_topics),
            response_format={"type": "json_object"},
        )
        if not isinstance(strategy, dict):
            raise LLMError("Invalid AI response format")

        overlap = overlapping_topics(user_topics, insights.top_topics)
        if overlap and not strategy.get("relevantTopics"):
            strategy["relevantTopics"] = overlap
        strategy.setdefault("talkingPoints", [])
        strategy.setdefault("relevantTopics", [])
        return strategy


# ─── Coaching ────────────────────────────────────────────────────────────────


COACHING_MODES: Dict[str, str] = {
    "review-pitch": (
        "You are an expert speaking coach reviewing pitch emails. Analyze the pitch for "
        "clarity, personalization, value proposition and call to action, then suggest a "
        "stronger rewrite."
    ),
    "practice-qa": (
        "You are a skeptical event organizer interviewing a potential speaker. Ask tough but "
        "fair questions about their expertise, audience fit and delivery, one at a time, and "
        "give feedback on each answer."
    ),
    "brainstorm-titles": (
        "You are a creative speaking coach helping brainstorm talk titles. Generate 10 "
        "compelling title options that are specific, benefit-driven and memorable."
    ),
    "optimize-bio": (
        "You are an expert at writing speaker bios. Take the provided bio and create optimized "
        "versions at 50, 100 and 250 words."
    ),
    "negotiate-fee": (
        "You are an event organizer in a fee negotiation roleplay. Start with a lower offer than "
        "the speaker's range and practice negotiation. Be realistic - sometimes push back, "
        "sometimes agree."
    ),
    "improve-description": (
        "You are an expert at writing talk descriptions that get selected. Analyze the abstract "
        "and create an enhanced version with clear outcomes for the audience."
    ),
    "handle-objections": (
        "You are helping a speaker practice responding to common organizer objections such as "
        "\"We've never heard of you\", \"This topic is overdone\", \"Can you do it for exposure?\" "
        "and \"We need someone more experienced\". Present objections one at a time, evaluate "
        "responses, and provide better alternatives."
    ),
    "default": (
        "You are an expert speaking coach and mentor. Help speakers improve their craft with "
        "specific, actionable advice. Be encouraging but honest. Draw on best practices from "
        "the speaking industry."
    ),
}

_COACH_GUIDELINES = """IMPORTANT GUIDELINES:
- Be specific and actionable in your feedback
- Give examples when possible
- Be encouraging but honest
- Adapt your advice to their experience level
- Format responses with clear sections using markdown
- Keep responses focused and practical"""


def build_coach_system_prompt(mode: str, profile: Optional[Profile]) -> str:
    prompt = COACHING_MODES.get(mode, COACHING_MODES["default"])
    if profile is not None:
        prompt += f"""

SPEAKER PROFILE CONTEXT:
- Name: {profile.name or 'Not specified'}
- Headline: {profile.headline or 'Not specified'}
- Bio: {profile.bio or 'Not provided'}
- Years Speaking: {profile.years_speaking or 'Not specified'}
- Total Talks: {profile.total_talks_given or 0}
- Fee Range: ${profile.fee_range_min or 0:.0f} - ${profile.fee_range_max or 0:.0f}
- Industries: {', '.join(profile.industries or []) or 'Not specified'}

Use this context to give personalized advice relevant to their experience level and goals."""
    return f"{prompt}\n\n{_COACH_GUIDELINES}"


class CoachAgent(Agent):
    def __init__(self, session: Session, llm: Optional[LLMClient] = None):
        super().__init__(name="CoachAgent")
        self.session = session
        self.llm = llm or LLMClient()

    def run(self, profile_id: int, messages: List[Dict[str, str]], mode: str = "default") -> str:
        if not messages:
            raise ValidationFailed("At least one message is required")
        for m in messages:
            if m.get("role") not in ("user", "assistant") or not m.get("content"):
                raise ValidationFailed("Messages need a user/assistant role and content")

        profile = _load(self.session, Profile, profile_id, "Profile")
        system = build_coach_system_prompt(mode, profile)
        return self.llm.chat([{"role": "system", "content": system}, *messages])


# ─── Topic extraction ────────────────────────────────────────────────────────


def build_topic_prompt(opportunity: Opportunity, vocabulary: List[str]) -> str:
    return f"""Analyze this speaking opportunity and extract relevant topics.

Event: {opportunity.event_name}
Description: {opportunity.description or 'No description available'}

Available topics: {', '.join(vocabulary)}

Return a JSON array of matching topics with relevance scores (0.0 to 1.0).
Only include topics with relevance >= {settings.TOPIC_RELEVANCE_THRESHOLD}.
Format: [{{"topic": "Topic Name", "relevance": 0.95}}]"""


class TopicExtractor(Agent):
    """Assigns vocabulary topics to active opportunities that have none yet."""

    def __init__(self, session: Session, vocabulary: List[str], llm: Optional[LLMClient] = None):
        super().__init__(name="TopicExtractor")
        self.session = session
        self.vocabulary = vocabulary
        self.llm = llm or LLMClient()

    def topics_for(self, opportunity: Opportunity) -> List[str]:
        extracted = self.llm.chat_json(
            build_topic_prompt(opportunity, self.vocabulary),
            system="You are a topic extraction assistant. Return only valid JSON arrays.",
        )
        if not isinstance(extracted, list):
            raise LLMError("Topic extraction did not return a list")

        canonical = {t.lower(): t for t in self.vocabulary}
        topics: List[str] = []
        for item in extracted:
            if not isinstance(item, dict):
                continue
            name = canonical.get(str(item.get("topic", "")).lower())
            relevance = float(item.get("relevance", 0) or 0)
            if name and relevance >= settings.TOPIC_RELEVANCE_THRESHOLD and name not in topics:
                topics.append(name)
        return topics

    def run(self, limit: Optional[int] = None) -> Dict[str, int]:
        if not self.vocabulary:
            raise ValidationFailed("Topic vocabulary is empty")
        candidates = [
            o for o in self.session.query(Opportunity).filter(Opportunity.is_active.is_(True)).all()
            if not o.topics
        ]
        if limit is not None:
            candidates = candidates[:limit]

        processed, tagged = 0, 0
        for opp in candidates:
            try:
                topics = self.topics_for(opp)
            except (LLMError, ValueError, TypeError) as e:
                self.logger.error(f"Topic extraction failed for opportunity {opp.opportunity_id}: {e}")
                continue
            processed += 1
            if topics:
                opp.topics = topics
                tagged += 1
        self.session.flush()
        self.logger.info(f"Topic extraction complete: {processed} processed, {tagged} tagged")
        return {"processed": processed, "tagged": tagged}
