"""
Shared fixtures: in-memory SQLite database, seed helpers and a scripted LLM.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import json
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agents.llm import LLMClient
from db.models import Base, Opportunity, Profile


# ─── Database ────────────────────────────────────────────────────────────────

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


# ─── Seed data ───────────────────────────────────────────────────────────────

@pytest.fixture
def speaker(db):
    profile = Profile(
        name="Ada Speaker",
        email="ada@example.com",
        bio="Platform engineer and keynote speaker.",
        topics=["DevOps", "Leadership"],
        past_talks=["Shipping on Fridays"],
        fee_range_min=3000,
        fee_range_max=8000,
        is_public=True,
    )
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def admin(db):
    profile = Profile(name="Admin", email="admin@example.com", is_admin=True, topics=[])
    db.add(profile)
    db.commit()
    return profile


@pytest.fixture
def make_opportunity(db):
    counter = {"n": 0}

    def _make(**kwargs):
        counter["n"] += 1
        values = dict(
            event_name=f"Conference {counter['n']}",
            event_url=f"https://example.com/cfp/{counter['n']}",
            organizer_name="Events Co",
            description="A conference about software delivery.",
            deadline=date.today() + timedelta(days=20),
            topics=["DevOps"],
            fee_estimate_min=2500,
            fee_estimate_max=5000,
            source="manual",
            is_active=True,
        )
        values.update(kwargs)
        opp = Opportunity(**values)
        db.add(opp)
        db.commit()
        return opp

    return _make


# ─── LLM ─────────────────────────────────────────────────────────────────────

class FakeLLM(LLMClient):
    """
    Scripted chat client. Each call consumes the next reply; the last one is
    reused once the script runs out. Dict/list replies are sent as JSON text,
    exception instances are raised.
    """

    def __init__(self, *replies):
        super().__init__(api_key="test-key", base_url="http://llm.test")
        self.replies = list(replies)
        self.calls = []

    def chat(self, messages, model=None, response_format=None):
        self.calls.append(messages)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, (dict, list)):
            return json.dumps(reply)
        return reply

    @property
    def last_prompt(self) -> str:
        return self.calls[-1][-1]["content"]


@pytest.fixture
def fake_llm():
    return FakeLLM
