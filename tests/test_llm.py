"""
LLM gateway client: HTTP status mapping and JSON extraction.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
import requests
from agents.llm import (
    LLMClient,
    LLMError,
    LLMResponseParseError,
    PaymentRequiredError,
    RateLimitError,
    extract_json,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def completion(content):
    return {"choices": [{"message": {"content": content}}]}


def client(response=None, error=None):
    session = FakeSession(response, error)
    return LLMClient(api_key="k", base_url="http://gateway/v1/", model="m", session=session), session


class TestExtractJson:
    def test_plain(self):
        assert extract_json('{"score": 80}') == {"score": 80}

    def test_fenced(self):
        assert extract_json('```json\n{"score": 80, "reason": "ok"}\n```') == {"score": 80, "reason": "ok"}

    def test_chatter_around_object(self):
        assert extract_json('Sure! Here it is: {"a": [1, 2]} Hope that helps.') == {"a": [1, 2]}

    def test_array(self):
        assert extract_json('```\n[{"topic": "AI", "relevance": 0.9}]\n```') == [{"topic": "AI", "relevance": 0.9}]

    def test_garbage(self):
        with pytest.raises(LLMResponseParseError):
            extract_json("I cannot score this.")

    def test_none(self):
        with pytest.raises(LLMResponseParseError):
            extract_json(None)


class TestLLMClient:
    def test_posts_to_chat_completions(self):
        llm, session = client(FakeResponse(200, completion("  hello  ")))
        assert llm.chat([{"role": "user", "content": "hi"}]) == "hello"
        url, kwargs = session.requests[0]
        assert url == "http://gateway/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer k"
        assert kwargs["json"]["model"] == "m"
        assert "response_format" not in kwargs["json"]

    def test_response_format_forwarded(self):
        llm, session = client(FakeResponse(200, completion("{}")))
        llm.chat([], response_format={"type": "json_object"})
        assert session.requests[0][1]["json"]["response_format"] == {"type": "json_object"}

    def test_chat_json(self):
        llm, session = client(FakeResponse(200, completion('```json\n{"score": 55}\n```')))
        assert llm.chat_json("score it") == {"score": 55}
        messages = session.requests[0][1]["json"]["messages"]
        assert messages[0]["role"] == "system"
        assert messages[1] == {"role": "user", "content": "score it"}

    @pytest.mark.parametrize("status,exc", [
        (429, RateLimitError),
        (402, PaymentRequiredError),
        (500, LLMError),
    ])
    def test_error_statuses(self, status, exc):
        llm, _ = client(FakeResponse(status, text="boom"))
        with pytest.raises(exc):
            llm.chat([])

    def test_missing_key(self):
        llm = LLMClient(api_key="", session=FakeSession())
        with pytest.raises(LLMError):
            llm.chat([])

    def test_network_error(self):
        llm, _ = client(error=requests.ConnectionError("down"))
        with pytest.raises(LLMError):
            llm.chat([])

    def test_empty_content(self):
        llm, _ = client(FakeResponse(200, completion("")))
        with pytest.raises(LLMError):
            llm.chat([])

    def test_malformed_payload(self):
        llm, _ = client(FakeResponse(200, {"unexpected": True}))
        with pytest.raises(LLMError):
            llm.chat([])
