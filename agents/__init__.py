from .base import Agent, AgentResult
from .llm import LLMClient, LLMError
from .scraper import ScraperAgent, scrape_all_sources
from .extractor import OpportunityExtractor
from .scorer import OpportunityRankingAgent
from .content import (
    PitchGenerator, FollowUpGenerator, OrganizerStrategyGenerator,
    CoachAgent, TopicExtractor,
)

__all__ = [
    "Agent", "AgentResult", "LLMClient", "LLMError",
    "ScraperAgent", "scrape_all_sources", "OpportunityExtractor", "OpportunityRankingAgent",
    "PitchGenerator", "FollowUpGenerator", "OrganizerStrategyGenerator",
    "CoachAgent", "TopicExtractor",
]
