"""
Session scopes and the agent result envelope.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import OperationalError

from agents.base import Agent
from agents.llm import RateLimitError
from db.database import init_db, make_engine, session_scope
from db.models import Profile
from models import ValidationFailed


class TestSessionScope:
    def test_commits_on_success(self, session_factory):
        with session_scope(session_factory) as session:
            session.add(Profile(name="Grace", email="grace@example.com"))

        with session_scope(session_factory) as session:
            assert session.query(Profile).filter(Profile.email == "grace@example.com").count() == 1

    def test_rolls_back_on_error(self, session_factory):
        with pytest.raises(ValidationFailed):
            with session_scope(session_factory) as session:
                session.add(Profile(name="Grace", email="grace@example.com"))
                session.flush()
                raise ValidationFailed("bad input")

        with session_scope(session_factory) as session:
            assert session.query(Profile).count() == 0

    def test_init_db_on_fresh_engine(self):
        engine = make_engine("sqlite://")
        init_db(engine)
        assert "outreach_activity" in inspect(engine).get_table_names()


class Doubler(Agent):
    def __init__(self, error=None):
        super().__init__(name="Doubler")
        self.error = error

    def run(self, n):
        if self.error is not None:
            raise self.error
        return n * 2


class TestAgentExecute:
    def test_success(self):
        result = Doubler().execute(21)
        assert result.success
        assert result.data == 42
        assert result.duration_seconds is not None
        assert result.summary().startswith("Doubler ok in")

    @pytest.mark.parametrize("error", [
        ValidationFailed("no topics"),
        RateLimitError("slow down"),
        KeyError("choices"),
    ])
    def test_failures_become_results(self, error):
        result = Doubler(error).execute(1)
        assert not result.success
        assert result.error_type == type(error).__name__
        assert type(error).__name__ in result.summary()

    def test_database_errors_propagate(self):
        error = OperationalError("SELECT 1", {}, Exception("database is locked"))
        with pytest.raises(OperationalError):
            Doubler(error).execute(1)
