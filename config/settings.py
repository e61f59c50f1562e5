"""
Configuration & Settings
NextMic Speaker Opportunity Pipeline
"""

from pydantic import BaseModel
from typing import Optional
import os


class Settings(BaseModel):
    # App
    APP_NAME: str = "NextMic Speaker Pipeline"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = os.getenv("DEBUG", "false").lower() in ("1", "true", "yes")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./nextmic.db")

    # LLM gateway (OpenAI-compatible chat completions)
    LLM_BASE_URL: str = os.getenv("LLM_BASE_URL", "https://ai.gateway.lovable.dev/v1")
    LLM_API_KEY: Optional[str] = os.getenv("LLM_API_KEY")
    LLM_MODEL: str = os.getenv("LLM_MODEL", "google/gemini-2.5-flash")
    LLM_TIMEOUT: int = 60

    # Scraping
    SCRAPE_DELAY_SECONDS: float = 2.0
    REQUEST_TIMEOUT: int = 30
    MAX_RETRIES: int = 3
    MAX_LINKS_PER_SOURCE: int = 20
    USER_AGENT: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Follow-up reminders (days after pitching)
    FOLLOW_UP_INTERVALS: tuple = (7, 14, 21)
    SNOOZE_DAYS: int = 3
    UPCOMING_WINDOW_DAYS: int = 7
    DUE_SOON_DAYS: int = 2

    # Scoring
    DEFAULT_DEADLINE_DAYS: int = 90
    FEE_ALIGNMENT_RATIO: float = 0.8
    TOPIC_RELEVANCE_THRESHOLD: float = 0.6

    # Revenue
    DEFAULT_REVENUE_GOAL: float = 100000.0

    # Inbound leads
    MAX_NAME_LENGTH: int = 100
    MAX_MESSAGE_LENGTH: int = 2000
    MAX_FIELD_LENGTH: int = 255

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = int(os.getenv("API_PORT", "8000"))


settings = Settings()
