"""
HTTP surface: identity, status codes and end-to-end flows through the routers.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import date, timedelta
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from agents.extractor import PageFetcher
from agents.llm import RateLimitError
from api.deps import get_llm
from api.main import app
from db.database import get_db_dependency, session_scope
from db.models import Lead


@pytest.fixture
def llm(fake_llm):
    return fake_llm({"score": 75, "reason": "Good fit."})


@pytest.fixture
def client(session_factory, llm):
    def override_db():
        with session_scope(session_factory) as session:
            yield session

    app.dependency_overrides[get_db_dependency] = override_db
    app.dependency_overrides[get_llm] = lambda: llm
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(profile):
    return {"X-Speaker-Id": str(profile.profile_id)}


class TestSystem:
    def test_root_and_health(self, client):
        assert client.get("/").json()["status"] == "running"
        body = client.get("/api/v1/health").json()
        assert body["status"] == "ok"
        assert body["version"] == "1.0.0"


class TestIdentity:
    def test_missing_header(self, client):
        assert client.get("/api/v1/profiles/me").status_code == 401

    def test_unknown_speaker(self, client):
        assert client.get("/api/v1/profiles/me", headers={"X-Speaker-Id": "999"}).status_code == 401

    def test_admin_only(self, client, speaker, admin):
        assert client.get("/api/v1/scraping/logs", headers=auth(speaker)).status_code == 403
        assert client.get("/api/v1/scraping/logs", headers=auth(admin)).json() == []


class TestProfiles:
    def test_create_and_update(self, client):
        resp = client.post("/api/v1/profiles", json={
            "name": "Grace", "email": "Grace@Example.com", "topics": ["AI"], "fee_range_min": 2000,
        })
        assert resp.status_code == 201
        profile = resp.json()
        assert profile["email"] == "grace@example.com"

        headers = {"X-Speaker-Id": str(profile["profile_id"])}
        resp = client.patch("/api/v1/profiles/me", json={"headline": "ML keynoter"}, headers=headers)
        assert resp.json()["headline"] == "ML keynoter"
        assert resp.json()["topics"] == ["AI"]

    def test_duplicate_email(self, client, speaker):
        resp = client.post("/api/v1/profiles", json={"name": "Ada", "email": "ADA@example.com"})
        assert resp.status_code == 409


class TestOpportunities:
    def test_list_with_filters(self, client, speaker, make_opportunity):
        make_opportunity(event_name="Cheap", fee_estimate_max=1500)
        make_opportunity(event_name="Pricey", fee_estimate_max=15000)
        resp = client.get("/api/v1/opportunities", params={"fee_ranges": ["$10k+"]}, headers=auth(speaker))
        assert [o["event_name"] for o in resp.json()] == ["Pricey"]

    def test_unknown_fee_bucket(self, client, speaker):
        resp = client.get("/api/v1/opportunities", params={"fee_ranges": ["lots"]}, headers=auth(speaker))
        assert resp.status_code == 400

    def test_submit(self, client, speaker):
        body = {"event_name": "My Meetup", "event_url": "https://meetup.test/1"}
        resp = client.post("/api/v1/opportunities", json=body, headers=auth(speaker))
        assert resp.status_code == 201
        assert resp.json()["source"] == "manual"
        assert client.post("/api/v1/opportunities", json=body, headers=auth(speaker)).status_code == 409

    def test_submit_inverted_fees(self, client, speaker):
        body = {"event_name": "x", "fee_estimate_min": 5000, "fee_estimate_max": 1000}
        assert client.post("/api/v1/opportunities", json=body, headers=auth(speaker)).status_code == 400

    def test_unknown(self, client, speaker):
        assert client.get("/api/v1/opportunities/999", headers=auth(speaker)).status_code == 404

    def test_extract_from_url(self, client, speaker, llm, make_opportunity, monkeypatch):
        page = SimpleNamespace(text="<html><title>RustConf</title><body>Talks wanted by May 1.</body></html>")
        monkeypatch.setattr(PageFetcher, "fetch", lambda self, url: page)
        llm.replies = [{"event_name": "RustConf 2025", "deadline": "2025-05-01", "topics": ["Rust"]}]

        resp = client.post("/api/v1/opportunities/extract", json={"url": "https://rustconf.test/cfp"},
                           headers=auth(speaker))
        assert resp.status_code == 200
        draft = resp.json()
        assert draft["event_name"] == "RustConf 2025"
        assert draft["deadline"] == "2025-05-01"
        assert draft["source"] == "manual"
        assert draft["existing_opportunity_id"] is None

        existing = make_opportunity(event_url="https://rustconf.test/cfp")
        again = client.post("/api/v1/opportunities/extract", json={"url": "https://rustconf.test/cfp"},
                            headers=auth(speaker)).json()
        assert again["existing_opportunity_id"] == existing.opportunity_id

    def test_extract_bad_url(self, client, speaker):
        resp = client.post("/api/v1/opportunities/extract", json={"url": "not a url"}, headers=auth(speaker))
        assert resp.status_code == 400


class TestPipelineFlow:
    def test_apply_schedules_reminders(self, client, speaker, make_opportunity):
        opp = make_opportunity(event_name="DevOpsDays")
        resp = client.post(f"/api/v1/opportunities/{opp.opportunity_id}/apply", headers=auth(speaker))
        assert resp.status_code == 200
        match = resp.json()
        assert match["pipeline_stage"] == "pitched"
        assert match["opportunity"]["event_name"] == "DevOpsDays"

        later = (date.today() + timedelta(days=30)).isoformat()
        buckets = client.get("/api/v1/reminders", params={"today": later}, headers=auth(speaker)).json()
        assert buckets["total"] == 3
        assert len(buckets["overdue"]) == 3
        assert buckets["overdue"][0]["event_name"] == "DevOpsDays"

        status = client.get(f"/api/v1/matches/{match['score_id']}/reminder-status", headers=auth(speaker))
        assert status.json()["reminder_type"] == "first"

        board = client.get("/api/v1/pipeline", headers=auth(speaker)).json()
        assert [m["score_id"] for m in board["pitched"]] == [match["score_id"]]

    def test_invalid_transition_is_conflict(self, client, speaker, make_opportunity):
        opp = make_opportunity()
        match = client.post(f"/api/v1/opportunities/{opp.opportunity_id}/apply", headers=auth(speaker)).json()
        resp = client.post(
            f"/api/v1/matches/{match['score_id']}/stage", json={"stage": "new"}, headers=auth(speaker)
        )
        assert resp.status_code == 409

    def test_unknown_action(self, client, speaker, make_opportunity):
        opp = make_opportunity()
        assert client.post(f"/api/v1/opportunities/{opp.opportunity_id}/frobnicate",
                           headers=auth(speaker)).status_code == 404

    def test_other_speakers_match(self, client, speaker, admin, make_opportunity):
        opp = make_opportunity()
        match = client.post(f"/api/v1/opportunities/{opp.opportunity_id}/save", headers=auth(speaker)).json()
        assert client.get(f"/api/v1/matches/{match['score_id']}", headers=auth(admin)).status_code == 404

    def test_bulk_move_reports_failures(self, client, speaker, make_opportunity):
        saved = client.post(f"/api/v1/opportunities/{make_opportunity().opportunity_id}/save",
                            headers=auth(speaker)).json()
        done = client.post(f"/api/v1/opportunities/{make_opportunity().opportunity_id}/apply",
                           headers=auth(speaker)).json()
        client.post(f"/api/v1/matches/{done['score_id']}/stage", json={"stage": "completed"},
                    headers=auth(speaker))
        resp = client.post("/api/v1/pipeline/bulk/move", json={
            "match_ids": [saved["score_id"], done["score_id"]], "stage": "pitched",
        }, headers=auth(speaker))
        body = resp.json()
        assert body["succeeded"] == [saved["score_id"]]
        assert str(done["score_id"]) in body["failed"]

    def test_drag_card_ahead_to_negotiating(self, client, speaker, make_opportunity):
        passed = client.post(f"/api/v1/opportunities/{make_opportunity().opportunity_id}/pass",
                             headers=auth(speaker)).json()
        resp = client.post(f"/api/v1/matches/{passed['score_id']}/stage", json={"stage": "negotiating"},
                           headers=auth(speaker))
        assert resp.status_code == 200
        assert resp.json()["pipeline_stage"] == "negotiating"

    def test_activity_timeline(self, client, speaker, make_opportunity):
        opp = make_opportunity(event_name="DevOpsDays")
        match = client.post(f"/api/v1/opportunities/{opp.opportunity_id}/apply", headers=auth(speaker)).json()
        resp = client.post(f"/api/v1/matches/{match['score_id']}/activities", json={
            "activity_type": "email_sent", "subject": "Talk proposal",
        }, headers=auth(speaker))
        assert resp.status_code == 201

        timeline = client.get(f"/api/v1/matches/{match['score_id']}/activities", headers=auth(speaker)).json()
        assert {a["activity_type"] for a in timeline} == {"application", "email_sent"}
        feed = client.get("/api/v1/activities", params={"limit": 5}, headers=auth(speaker)).json()
        assert len(feed) == 2

    def test_activity_validation(self, client, speaker, admin, make_opportunity):
        opp = make_opportunity()
        match = client.post(f"/api/v1/opportunities/{opp.opportunity_id}/save", headers=auth(speaker)).json()
        url = f"/api/v1/matches/{match['score_id']}/activities"
        assert client.post(url, json={"activity_type": "fax"}, headers=auth(speaker)).status_code == 400
        assert client.post(url, json={"activity_type": "note"}, headers=auth(admin)).status_code == 404
        assert client.get(url, headers=auth(admin)).status_code == 404


class TestAIRoutes:
    def test_ranking(self, client, speaker, make_opportunity):
        make_opportunity()
        body = client.post("/api/v1/ranking/run", headers=auth(speaker)).json()
        assert body["success"]
        assert body["scored_count"] == 1

    def test_rate_limit_maps_to_429(self, client, speaker, make_opportunity, llm):
        opp = make_opportunity()
        llm.replies = [RateLimitError("Rate limit exceeded")]
        resp = client.post("/api/v1/content/pitch", json={"opportunity_id": opp.opportunity_id},
                           headers=auth(speaker))
        assert resp.status_code == 429

    def test_coach(self, client, speaker, llm):
        llm.replies = ["Open with a story."]
        resp = client.post("/api/v1/content/coach", json={
            "messages": [{"role": "user", "content": "How do I start my talk?"}],
            "mode": "practice-qa",
        }, headers=auth(speaker))
        assert resp.json() == {"reply": "Open with a story.", "mode": "practice-qa"}


class TestLeadsAndBusiness:
    def test_public_lead_submission(self, client, db, speaker):
        resp = client.post("/api/v1/leads/submit", json={
            "speaker_id": speaker.profile_id, "name": "Dana", "email": "dana@events.test",
        })
        assert resp.json() == {"success": True}
        leads = client.get("/api/v1/leads", headers=auth(speaker)).json()
        assert [lead["name"] for lead in leads] == ["Dana"]

    def test_spam_looks_accepted(self, client, db, speaker):
        resp = client.post("/api/v1/leads/submit", json={
            "speaker_id": speaker.profile_id, "name": "Bot", "email": "bot@x.test", "message": "buy now",
        })
        assert resp.json() == {"success": True}
        assert db.query(Lead).count() == 0

    def test_lead_validation(self, client, speaker, admin):
        bad_email = {"speaker_id": speaker.profile_id, "name": "Dana", "email": "nope"}
        assert client.post("/api/v1/leads/submit", json=bad_email).status_code == 400
        private = {"speaker_id": admin.profile_id, "name": "Dana", "email": "dana@events.test"}
        assert client.post("/api/v1/leads/submit", json=private).status_code == 404

    def test_booking_invoice_and_revenue(self, client, speaker):
        booking = client.post("/api/v1/bookings", json={
            "event_name": "Summit", "event_date": date.today().isoformat(), "confirmed_fee": 6000,
        }, headers=auth(speaker)).json()
        assert booking["payment_status"] == "pending"

        invoice = client.post("/api/v1/invoices", json={
            "booking_id": booking["booking_id"],
            "line_items": [{"description": "Keynote", "rate": 6000}],
            "tax_rate": 5,
        }, headers=auth(speaker)).json()
        assert invoice["total"] == 6300.0
        assert invoice["invoice_number"].startswith(f"INV-{date.today():%Y%m}-")

        sent = client.post(f"/api/v1/invoices/{invoice['invoice_id']}/status", json={"status": "sent"},
                           headers=auth(speaker)).json()
        assert sent["sent_at"] is not None

        paid = client.patch(f"/api/v1/bookings/{booking['booking_id']}", json={"amount_paid": 6000},
                            headers=auth(speaker)).json()
        assert paid["payment_status"] == "paid"

        stats = client.get("/api/v1/revenue/stats", headers=auth(speaker)).json()
        assert stats["total_confirmed"] == 6000
        assert stats["total_received"] == 6000
        assert len(client.get("/api/v1/revenue/monthly", headers=auth(speaker)).json()) == 12
