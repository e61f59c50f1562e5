"""
Opportunity search filters and saved-search notifications.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date, datetime, timedelta

import pytest
from models import NotFound, ValidationFailed
from utils.matching import (
    check_saved_search_matches,
    create_saved_search,
    get_saved_search,
    search_opportunities,
)


@pytest.fixture
def listings(make_opportunity):
    return {
        "small": make_opportunity(event_name="Local Meetup", fee_estimate_max=1000, topics=["AI"]),
        "mid": make_opportunity(event_name="Regional Summit", fee_estimate_max=3000.01,
                                description="Cloud and DevOps talks", topics=["DevOps"]),
        "big": make_opportunity(event_name="Global Keynote Forum", fee_estimate_max=12000,
                                topics=["Leadership"], deadline=date.today() + timedelta(days=100)),
        "free": make_opportunity(event_name="Community Day", fee_estimate_max=None, topics=[]),
        "closed": make_opportunity(event_name="Old DevOps Conf", is_active=False),
    }


def names(rows):
    return sorted(o.event_name for o in rows)


class TestSearch:
    def test_active_only(self, db, listings):
        assert "Old DevOps Conf" not in names(search_opportunities(db))

    def test_text_matches_name_or_description(self, db, listings):
        assert names(search_opportunities(db, {"search": "devops"})) == ["Regional Summit"]
        assert names(search_opportunities(db, {"search": "KEYNOTE"})) == ["Global Keynote Forum"]

    @pytest.mark.parametrize("bucket,expected", [
        ("$1-3k", ["Local Meetup"]),
        ("$3-5k", ["Regional Summit"]),
        ("$5-10k", []),
        ("$10k+", ["Global Keynote Forum"]),
    ])
    def test_fee_buckets(self, db, listings, bucket, expected):
        assert names(search_opportunities(db, {"fee_ranges": [bucket]})) == expected

    def test_fee_buckets_are_ored(self, db, listings):
        rows = search_opportunities(db, {"fee_ranges": ["$1-3k", "$10k+"]})
        assert names(rows) == ["Global Keynote Forum", "Local Meetup"]

    def test_unknown_bucket(self, db, listings):
        with pytest.raises(ValidationFailed):
            search_opportunities(db, {"fee_ranges": ["lots"]})

    def test_topics(self, db, listings):
        assert names(search_opportunities(db, {"topics": ["devops", "ai"]})) == ["Local Meetup", "Regional Summit"]

    def test_deadline_window(self, db, listings):
        rows = search_opportunities(db, {"deadline_within_days": 30})
        assert "Global Keynote Forum" not in names(rows)
        assert "Local Meetup" in names(rows)

    def test_limit(self, db, listings):
        assert len(search_opportunities(db, limit=2)) == 2


class TestSavedSearches:
    def test_create_counts_results(self, db, speaker, listings):
        search = create_saved_search(db, speaker.profile_id, "Big fees", {"fee_ranges": ["$10k+"]}, True)
        assert search.results_count == 1
        assert get_saved_search(db, speaker.profile_id, search.search_id) is search

    def test_create_validates(self, db, speaker):
        with pytest.raises(ValidationFailed):
            create_saved_search(db, speaker.profile_id, " ", {})
        with pytest.raises(ValidationFailed):
            create_saved_search(db, speaker.profile_id, "x", {"fee_ranges": ["huge"]})

    def test_scoped_to_owner(self, db, speaker, admin):
        search = create_saved_search(db, speaker.profile_id, "All", {})
        with pytest.raises(NotFound):
            get_saved_search(db, admin.profile_id, search.search_id)

    def test_check_counts_only_new_listings(self, db, speaker, make_opportunity):
        search = create_saved_search(db, speaker.profile_id, "DevOps", {"search": "devops"}, True)
        create_saved_search(db, speaker.profile_id, "Muted", {}, False)
        search.created_at = datetime(2025, 1, 1)
        make_opportunity(event_name="DevOps Old", created_at=datetime(2024, 12, 1))
        make_opportunity(event_name="DevOps New", created_at=datetime(2025, 2, 1))
        make_opportunity(event_name="Marketing New", created_at=datetime(2025, 2, 1))

        now = datetime(2025, 3, 1)
        results = check_saved_search_matches(db, now=now)

        assert len(results) == 1
        assert results[0].search_name == "DevOps"
        assert results[0].new_matches == 1
        assert search.last_notified_at == now
        assert search.results_count == 2

        # nothing new since the last notification
        assert check_saved_search_matches(db, now=datetime(2025, 3, 2)) == []
        assert search.last_notified_at == now
