"""
Opportunity Scraper Agent
-------------------------
Collects speaking opportunities (CFPs) from public listing sites.

Supported sources (v1):
  - PaperCall.io   (HTML event index)
  - Sessionize     (public JSON CFP list)
  - conferencelist (HTML, CFP-looking links)
  - Mock/demo mode for development

Architecture:
  ScraperAgent.run(source) -> ScrapeSummary
  Every run writes a ScrapingLog row (running → success | failed) and
  upserts opportunities by event_url.
"""

import time
import random
import logging
import re
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timedelta
from typing import List, Optional, Dict, Any
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agents.base import Agent
from config.settings import settings
from db.models import Opportunity, ScrapingLog

logger = logging.getLogger(__name__)


# ─── Data Structures ────────────────────────────────────────────────────────


@dataclass
class ScrapedOpportunity:
    """Normalized listing record, before it hits the opportunity table."""
    event_name: str
    event_url: str
    source: str
    deadline: Optional[date] = None
    event_date: Optional[date] = None
    location: Optional[str] = None
    description: Optional[str] = None
    organizer_name: Optional[str] = None
    organizer_email: Optional[str] = None
    topics: List[str] = field(default_factory=list)
    fee_estimate_min: Optional[float] = None
    fee_estimate_max: Optional[float] = None
    audience_size: Optional[int] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ScrapeSummary:
    source: str
    success: bool = True
    found: int = 0
    inserted: int = 0
    updated: int = 0
    error: Optional[str] = None
    log_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ScrapeError(RuntimeError):
    """A listing source could not be fetched or parsed."""


# ─── Helpers ─────────────────────────────────────────────────────────────────


def name_from_slug(slug: str) -> str:
    """`devops-days-2025` → `Devops Days 2025`"""
    words = [w for w in re.split(r"[-_]+", slug) if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)


def parse_date(value: Any) -> Optional[date]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00")[:19]).date()
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(str(value)[:10]).date()
    except ValueError:
        return None


# ─── Per-Source Scrapers ──────────────────────────────────────────────────────


class BaseScraper:
    source = "base"

    def __init__(self, session: Optional[requests.Session] = None):
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": settings.USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        })

    def _get(self, url: str, **kwargs) -> requests.Response:
        """HTTP GET with retry + exponential backoff."""
        last_error = None
        for attempt in range(settings.MAX_RETRIES):
            try:
                resp = self.session.get(url, timeout=settings.REQUEST_TIMEOUT, **kwargs)
                resp.raise_for_status()
                return resp
            except requests.RequestException as e:
                last_error = e
                if attempt == settings.MAX_RETRIES - 1:
                    break
                wait = (2 ** attempt) + random.uniform(0, 1)
                logger.warning(f"Attempt {attempt+1} failed for {url}: {e}. Retrying in {wait:.1f}s")
                time.sleep(wait)
        raise ScrapeError(f"Failed to fetch {url} after {settings.MAX_RETRIES} attempts: {last_error}")

    def _clean_text(self, text: str) -> str:
        return re.sub(r"\s+", " ", text or "").strip()

    def scrape(self) -> List[ScrapedOpportunity]:
        raise NotImplementedError


class PaperCallScraper(BaseScraper):
    """Scrapes the PaperCall.io open-CFP index; names come from event slugs."""

    source = "papercall"
    BASE_URL = "https://www.papercall.io"
    MAX_EVENTS = 10

    def scrape(self) -> List[ScrapedOpportunity]:
        resp = self._get(f"{self.BASE_URL}/events")
        soup = BeautifulSoup(resp.text, "html.parser")

        today = date.today()
        seen, results = set(), []
        for a in soup.find_all("a", href=re.compile(r"^/events/[^/?#]+")):
            path = a["href"].split("?")[0].rstrip("/")
            if path in seen:
                continue
            seen.add(path)

            event_name = name_from_slug(path.split("/")[-1])
            if len(event_name) <= 3:
                continue
            results.append(ScrapedOpportunity(
                event_name=event_name,
                event_url=f"{self.BASE_URL}{path}",
                source=self.source,
                deadline=today + timedelta(days=30),
                event_date=today + timedelta(days=90),
                location="TBD",
                description=(
                    f"CFP opportunity from PaperCall.io - {event_name}. "
                    "Visit event page for full details."
                ),
            ))
            if len(results) >= self.MAX_EVENTS:
                break

        logger.info(f"PaperCall: {len(results)} event links found")
        return results


class SessionizeScraper(BaseScraper):
    """Reads the Sessionize public CFP list (JSON)."""

    source = "sessionize"
    API_URL = "https://sessionize.com/api/v2/cfp/list"

    def scrape(self) -> List[ScrapedOpportunity]:
        resp = self._get(self.API_URL, headers={"Accept": "application/json"})
        try:
            items = resp.json()
        except ValueError as e:
            raise ScrapeError(f"Sessionize returned invalid JSON: {e}") from e
        if not isinstance(items, list):
            raise ScrapeError("Sessionize returned an unexpected payload")

        results, skipped = [], 0
        for item in items:
            try:
                opp = self._parse_item(item)
            except (AttributeError, TypeError, ValueError) as e:
                skipped += 1
                logger.warning(f"Sessionize: skipping malformed item {item!r:.80}: {e}")
                continue
            if opp is not None:
                results.append(opp)
        if skipped:
            logger.warning(f"Sessionize: {skipped} malformed items skipped")
        return results

    def _parse_item(self, item: Dict[str, Any]) -> Optional[ScrapedOpportunity]:
        url = item.get("url")
        if not url:
            return None
        if not isinstance(url, str):
            raise TypeError(f"url is {type(url).__name__}, expected str")
        return ScrapedOpportunity(
            event_name=str(item.get("name") or "Unnamed Event"),
            event_url=url,
            source=self.source,
            deadline=parse_date(item.get("deadline")),
            event_date=parse_date(item.get("eventDate")),
            location=item.get("location"),
            description=item.get("description"),
            organizer_name=item.get("organizerName"),
            organizer_email=item.get("organizerEmail"),
            raw=item,
        )


class ConferenceListScraper(BaseScraper):
    """Pulls CFP-looking links off conferencelist.io and names events from the path."""

    source = "conferencelist"
    URL = "https://conferencelist.io"
    CFP_MARKERS = ("cfp", "call-for", "speaker", "submit")
    PATH_NOISE = {"cfp", "call-for-papers", "submit", "speakers"}

    def scrape(self) -> List[ScrapedOpportunity]:
        resp = self._get(self.URL)
        soup = BeautifulSoup(resp.text, "html.parser")

        links = []
        for a in soup.find_all("a", href=True):
            href = urljoin(self.URL, a["href"])
            if any(marker in href.lower() for marker in self.CFP_MARKERS) and href not in links:
                links.append(href)

        results = []
        for link in links[:settings.MAX_LINKS_PER_SOURCE]:
            parts = [p for p in urlparse(link).path.split("/") if p]
            words = [p.replace("-", " ") for p in parts if p.lower() not in self.PATH_NOISE]
            event_name = " ".join(w[:1].upper() + w[1:] for w in words)
            if len(event_name) <= 3:
                continue
            results.append(ScrapedOpportunity(
                event_name=event_name,
                event_url=link,
                source=self.source,
            ))
        return results


class MockScraper(BaseScraper):
    """
    Generates synthetic CFP listings for development/demo.
    Seeded by date so repeated runs on the same day upsert the same URLs.
    """

    source = "mock"

    EVENTS = [
        ("DevOps Summit", ["DevOps", "Cloud"], "Austin, TX", (2000, 5000), 800),
        ("AI Leaders Forum", ["AI", "Leadership"], "San Francisco, CA", (5000, 15000), 1500),
        ("Product Camp", ["Product Management"], "Remote", (0, 1000), 300),
        ("Women in Tech Conference", ["Diversity", "Leadership"], "New York, NY", (3000, 8000), 1200),
        ("Data Engineering Days", ["Data", "AI"], "Berlin, DE", (1500, 4000), 600),
        ("Frontend Nation", ["JavaScript", "Web"], "Amsterdam, NL", (1000, 3000), 2000),
        ("Security Week", ["Security", "Cloud"], "London, UK", (4000, 10000), 900),
        ("Founders Retreat", ["Entrepreneurship", "Leadership"], "Lisbon, PT", (8000, 20000), 150),
    ]

    def scrape(self) -> List[ScrapedOpportunity]:
        today = date.today()
        rng = random.Random(today.toordinal())
        results = []
        for name, topics, location, (fee_min, fee_max), audience in self.EVENTS:
            slug = name.lower().replace(" ", "-")
            results.append(ScrapedOpportunity(
                event_name=f"{name} {today.year + 1}",
                event_url=f"https://example.com/cfp/{slug}-{today.year + 1}",
                source=self.source,
                deadline=today + timedelta(days=rng.randint(3, 120)),
                event_date=today + timedelta(days=rng.randint(130, 300)),
                location=location,
                description=f"{name} is looking for speakers on {', '.join(topics)}.",
                organizer_name=f"{name} Team",
                topics=list(topics),
                fee_estimate_min=float(fee_min),
                fee_estimate_max=float(fee_max),
                audience_size=audience,
            ))
        return results


# ─── Upsert ──────────────────────────────────────────────────────────────────


_UPSERT_FIELDS = (
    "event_name", "deadline", "event_date", "location", "description",
    "organizer_name", "organizer_email", "topics",
    "fee_estimate_min", "fee_estimate_max", "audience_size",
)


def upsert_opportunities(session: Session, items: List[ScrapedOpportunity]) -> Dict[str, int]:
    """
    Insert new listings and refresh existing ones (matched on event_url).
    Empty scraped fields never overwrite stored values.
    """
    inserted, updated = 0, 0
    now = datetime.utcnow()
    batch: Dict[str, ScrapedOpportunity] = {}
    for item in items:
        batch.setdefault(item.event_url, item)

    existing = {
        o.event_url: o
        for o in session.query(Opportunity).filter(Opportunity.event_url.in_(list(batch))).all()
    } if batch else {}

    for url, item in batch.items():
        opp = existing.get(url)
        if opp is None:
            values = {f: getattr(item, f) for f in _UPSERT_FIELDS}
            values["topics"] = values["topics"] or []
            session.add(Opportunity(
                event_url=url,
                source=item.source,
                raw_data=item.raw or None,
                is_active=True,
                scraped_at=now,
                **values,
            ))
            inserted += 1
        else:
            for f in _UPSERT_FIELDS:
                value = getattr(item, f)
                if value:
                    setattr(opp, f, value)
            opp.scraped_at = now
            opp.is_active = True
            updated += 1

    session.flush()
    return {"inserted": inserted, "updated": updated}


# ─── ScraperAgent ────────────────────────────────────────────────────────────


SCRAPER_MAP = {
    "papercall": PaperCallScraper,
    "sessionize": SessionizeScraper,
    "conferencelist": ConferenceListScraper,
    "mock": MockScraper,
}

DEFAULT_SOURCES = ["papercall", "sessionize", "conferencelist"]


class ScraperAgent(Agent):
    """
    Opportunity Scraper

    Input:  source name
    Output: ScrapeSummary (the ScrapingLog row carries the same counts)
    """

    def __init__(self, session: Session, http: Optional[requests.Session] = None):
        super().__init__(name="ScraperAgent")
        self.session = session
        self.http = http

    def _get_scraper(self, source: str) -> BaseScraper:
        cls = SCRAPER_MAP.get(source)
        if cls is None:
            raise ValueError(f"Unknown scraping source '{source}'")
        return cls(session=self.http)

    def run(self, source: str) -> ScrapeSummary:
        scraper = self._get_scraper(source)
        log = ScrapingLog(source=source, status="running", started_at=datetime.utcnow())
        self.session.add(log)
        self.session.flush()
        summary = ScrapeSummary(source=source, log_id=log.log_id)

        self.logger.info(f"Scraping [{source}]...")
        try:
            items = scraper.scrape()
            counts = upsert_opportunities(self.session, items)
        except SQLAlchemyError:
            raise
        except Exception as e:
            self.logger.error(f"  ❌ Scraping failed for {source}: {type(e).__name__}: {e}")
            log.status = "failed"
            log.error_message = str(e)
            log.completed_at = datetime.utcnow()
            summary.success, summary.error = False, str(e)
            return summary

        summary.found = len(items)
        summary.inserted, summary.updated = counts["inserted"], counts["updated"]
        log.status = "success"
        log.completed_at = datetime.utcnow()
        log.opportunities_found = summary.found
        log.opportunities_inserted = summary.inserted
        log.opportunities_updated = summary.updated
        self.logger.info(
            f"  → {source}: {summary.found} found, {summary.inserted} inserted, {summary.updated} updated"
        )
        return summary


def scrape_all_sources(
    session: Session,
    sources: Optional[List[str]] = None,
    http: Optional[requests.Session] = None,
    delay: Optional[float] = None,
) -> List[ScrapeSummary]:
    """Run each source in turn; a failing source is recorded and the rest still run."""
    sources = sources or DEFAULT_SOURCES
    delay = settings.SCRAPE_DELAY_SECONDS if delay is None else delay
    agent = ScraperAgent(session, http=http)

    results = []
    for i, source in enumerate(sources):
        if i and delay:
            time.sleep(delay)
        try:
            results.append(agent.run(source))
        except ValueError as e:
            logger.error(f"Skipping source {source}: {e}")
            results.append(ScrapeSummary(source=source, success=False, error=str(e)))

    ok = sum(1 for r in results if r.success)
    logger.info(
        f"Scraping complete: {ok}/{len(results)} sources succeeded, "
        f"{sum(r.inserted for r in results)} new opportunities"
    )
    return results
