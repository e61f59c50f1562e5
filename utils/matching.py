"""
Opportunity search and saved-search notifications.

Filters (all optional, combined with AND):
  search               substring of event name or description, case-insensitive
  fee_ranges           any of "$1-3k", "$3-5k", "$5-10k", "$10k+" on fee_estimate_max
  topics               opportunity carries at least one of these topics
  deadline_within_days deadline between today and today + N
  created_after        only listings created after this timestamp
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Query, Session

from db.models import Opportunity, SavedSearch
from models import NotFound, ValidationFailed

logger = logging.getLogger(__name__)

# (lower, lower inclusive, inclusive upper) on fee_estimate_max
FEE_BUCKETS = {
    "$1-3k": (1000, True, 3000),
    "$3-5k": (3000, False, 5000),
    "$5-10k": (5000, False, 10000),
    "$10k+": (10000, False, None),
}


@dataclass
class SavedSearchResult:
    search_id: int
    search_name: str
    profile_id: int
    new_matches: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _fee_clause(bucket: str):
    if bucket not in FEE_BUCKETS:
        raise ValidationFailed(f"Unknown fee range '{bucket}'")
    low, inclusive, high = FEE_BUCKETS[bucket]
    column = Opportunity.fee_estimate_max
    clause = column >= low if inclusive else column > low
    if high is not None:
        clause = and_(clause, column <= high)
    return clause


def apply_filters(query: Query, filters: Dict[str, Any], today: Optional[date] = None) -> Query:
    today = today or date.today()
    filters = filters or {}

    text = (filters.get("search") or "").strip()
    if text:
        pattern = f"%{text}%"
        query = query.filter(or_(
            Opportunity.event_name.ilike(pattern),
            Opportunity.description.ilike(pattern),
        ))

    fee_ranges = filters.get("fee_ranges") or []
    if fee_ranges:
        query = query.filter(or_(*[_fee_clause(b) for b in fee_ranges]))

    window = filters.get("deadline_within_days")
    if window is not None:
        query = query.filter(
            Opportunity.deadline >= today,
            Opportunity.deadline <= today + timedelta(days=int(window)),
        )

    created_after = filters.get("created_after")
    if created_after is not None:
        query = query.filter(Opportunity.created_at > created_after)

    return query


def _topic_filter(rows: List[Opportunity], topics: List[str]) -> List[Opportunity]:
    # JSON array membership is done in Python to stay portable across backends
    wanted = {t.lower() for t in topics}
    return [o for o in rows if wanted & {t.lower() for t in (o.topics or [])}]


def search_opportunities(
    session: Session,
    filters: Optional[Dict[str, Any]] = None,
    today: Optional[date] = None,
    limit: Optional[int] = None,
) -> List[Opportunity]:
    filters = filters or {}
    query = apply_filters(
        session.query(Opportunity).filter(Opportunity.is_active.is_(True)), filters, today
    ).order_by(Opportunity.deadline.asc(), Opportunity.opportunity_id.asc())
    rows = query.all()

    if filters.get("topics"):
        rows = _topic_filter(rows, filters["topics"])
    return rows[:limit] if limit else rows


# ─── Saved searches ──────────────────────────────────────────────────────────


def create_saved_search(
    session: Session,
    profile_id: int,
    name: str,
    filters: Dict[str, Any],
    notify_new_matches: bool = False,
) -> SavedSearch:
    name = (name or "").strip()
    if not name:
        raise ValidationFailed("Saved search name is required")
    for bucket in (filters or {}).get("fee_ranges") or []:
        _fee_clause(bucket)
    search = SavedSearch(
        profile_id=profile_id,
        name=name,
        filters=filters or {},
        notify_new_matches=notify_new_matches,
        results_count=len(search_opportunities(session, filters)),
    )
    session.add(search)
    session.flush()
    return search


def get_saved_search(session: Session, profile_id: int, search_id: int) -> SavedSearch:
    search = (
        session.query(SavedSearch)
        .filter(SavedSearch.search_id == search_id, SavedSearch.profile_id == profile_id)
        .one_or_none()
    )
    if search is None:
        raise NotFound(f"Saved search {search_id} not found")
    return search


def check_saved_search_matches(
    session: Session,
    now: Optional[datetime] = None,
) -> List[SavedSearchResult]:
    """
    For every saved search with notifications on, count listings created
    since it was last notified. Searches with new matches get their
    last_notified_at stamped.
    """
    now = now or datetime.utcnow()
    searches = (
        session.query(SavedSearch)
        .filter(SavedSearch.notify_new_matches.is_(True))
        .all()
    )
    logger.info(f"Checking {len(searches)} saved searches with notifications enabled")

    results = []
    for search in searches:
        since = search.last_notified_at or search.created_at
        filters = dict(search.filters or {}, created_after=since)
        try:
            matches = search_opportunities(session, filters, today=now.date())
        except ValidationFailed as e:
            logger.error(f"Saved search {search.search_id} has bad filters: {e}")
            continue

        search.results_count = len(search_opportunities(session, search.filters, today=now.date()))
        if matches:
            search.last_notified_at = now
            results.append(SavedSearchResult(
                search_id=search.search_id,
                search_name=search.name,
                profile_id=search.profile_id,
                new_matches=len(matches),
            ))
            logger.info(f"Search '{search.name}' has {len(matches)} new matches")

    session.flush()
    return results
