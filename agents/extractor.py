"""
Opportunity Extractor
---------------------
Turns an arbitrary event or CFP page into a draft opportunity for the
speaker to review before submitting it:

  fetch page (requests, retries) → strip to readable text (BeautifulSoup)
  → LLM pulls out structured fields → ScrapedOpportunity(source="manual")

When the model reply cannot be parsed, the draft falls back to the page
title and meta description.
"""

import re
from typing import Any, List, Optional

import requests
from bs4 import BeautifulSoup

from agents.base import Agent
from agents.llm import LLMClient, LLMResponseParseError
from agents.scraper import BaseScraper, ScrapedOpportunity, ScrapeError, parse_date
from models import ValidationFailed

MAX_PAGE_CHARS = 8000

_EXTRACTION_FIELDS = """{
  "event_name": "string - the name of the event or conference",
  "organizer_name": "string or null - organization or person running it",
  "organizer_email": "string or null - contact email if found",
  "deadline": "string or null - CFP/submission deadline in YYYY-MM-DD format",
  "event_date": "string or null - event date in YYYY-MM-DD format",
  "location": "string or null - city, venue, or 'Virtual'",
  "audience_size": "number or null - expected attendees",
  "description": "string - brief description of the opportunity (max 500 chars)",
  "topics": ["array", "of", "topic", "strings"],
  "fee_estimate_min": "number or null - speaker fee if mentioned",
  "fee_estimate_max": "number or null - speaker fee if mentioned"
}"""


class PageFetcher(BaseScraper):
    """Single-page fetch with the scrapers' retry and headers."""

    source = "manual"

    def fetch(self, url: str) -> requests.Response:
        return self._get(url)


def page_text(html: str) -> tuple:
    """(title, meta description, visible text) of an HTML page."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "nav", "footer"]):
        tag.decompose()
    title = soup.title.get_text(strip=True) if soup.title else None
    meta = soup.find("meta", attrs={"name": "description"})
    description = meta.get("content") if meta else None
    text = re.sub(r"\s+", " ", soup.get_text(" ")).strip()
    return title or None, description or None, text


def build_extraction_prompt(url: str, title: Optional[str], text: str) -> str:
    return f"""You are an expert at extracting speaking opportunity information from web pages.
Extract the following fields if present.

Required format:
{_EXTRACTION_FIELDS}

Page URL: {url}
Page Title: {title or 'Unknown'}

{text[:MAX_PAGE_CHARS]}

Return ONLY valid JSON, no markdown or explanations."""


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = re.sub(r"[^\d.]", "", value)
    try:
        return float(value) if value != "" else None
    except (TypeError, ValueError):
        return None


def _topics(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(t).strip() for t in value if isinstance(t, str) and t.strip()]


class OpportunityExtractor(Agent):
    def __init__(self, llm: Optional[LLMClient] = None, http: Optional[requests.Session] = None):
        super().__init__(name="OpportunityExtractor")
        self.llm = llm or LLMClient()
        self.fetcher = PageFetcher(session=http)

    def run(self, url: str) -> ScrapedOpportunity:
        url = (url or "").strip()
        if not re.match(r"^https?://", url):
            raise ValidationFailed("A full http(s) URL is required")

        try:
            resp = self.fetcher.fetch(url)
        except ScrapeError as e:
            raise ValidationFailed(f"Could not fetch {url}") from e

        title, meta_description, text = page_text(resp.text)
        if not text:
            raise ValidationFailed("No content found at URL")

        try:
            data = self.llm.chat_json(build_extraction_prompt(url, title, text))
        except LLMResponseParseError:
            data = None
        if not isinstance(data, dict) or not data.get("event_name"):
            self.logger.warning(f"Extraction reply unusable for {url}; using page metadata")
            data = {"event_name": title or "Unknown Event", "description": meta_description}

        audience = _number(data.get("audience_size"))
        draft = ScrapedOpportunity(
            event_name=str(data["event_name"]).strip()[:500],
            event_url=url,
            source="manual",
            deadline=parse_date(data.get("deadline")),
            event_date=parse_date(data.get("event_date")),
            location=data.get("location") or None,
            description=(data.get("description") or None),
            organizer_name=data.get("organizer_name") or None,
            organizer_email=data.get("organizer_email") or None,
            topics=_topics(data.get("topics")),
            fee_estimate_min=_number(data.get("fee_estimate_min")),
            fee_estimate_max=_number(data.get("fee_estimate_max")),
            audience_size=int(audience) if audience is not None else None,
        )
        self.logger.info(f"Extracted '{draft.event_name}' from {url}")
        return draft
