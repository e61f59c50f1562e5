"""
LLM Gateway Client
------------------
Thin wrapper around an OpenAI-compatible chat-completions endpoint.

  LLMClient.chat(messages) -> str        (first choice content)
  extract_json(text)       -> dict|list  (tolerates markdown fences / chatter)
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import requests

from config.settings import settings

logger = logging.getLogger(__name__)

JSON_ONLY_SYSTEM_PROMPT = (
    "You are a JSON-only assistant. Return only valid JSON without markdown formatting."
)


class LLMError(RuntimeError):
    """Gateway call failed or returned nothing usable."""


class RateLimitError(LLMError):
    """HTTP 429 from the gateway."""


class PaymentRequiredError(LLMError):
    """HTTP 402 from the gateway (workspace out of credits)."""


class LLMResponseParseError(LLMError):
    """Model output did not contain parseable JSON."""


_FENCE_RE = re.compile(r"```(?:json)?\s*\n?|\n?```")


def extract_json(text: str) -> Any:
    """
    Parse JSON out of a model reply.
    Strips ``` fences first; if that still fails, falls back to the widest
    {...} or [...] substring.
    """
    if text is None:
        raise LLMResponseParseError("Empty model response")
    cleaned = _FENCE_RE.sub("", text).strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    candidates = []
    for opener, closer in (("{", "}"), ("[", "]")):
        start, end = cleaned.find(opener), cleaned.rfind(closer)
        if start != -1 and end > start:
            candidates.append((start, cleaned[start:end + 1]))
    for _, chunk in sorted(candidates):
        try:
            return json.loads(chunk)
        except json.JSONDecodeError:
            continue
    raise LLMResponseParseError(f"No JSON found in model response: {text[:200]!r}")


class LLMClient:
    """
    Chat-completions client. One POST per call, no retries: callers decide
    whether a failure skips an item or aborts the request.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.LLM_API_KEY
        self.base_url = (base_url or settings.LLM_BASE_URL).rstrip("/")
        self.model = model or settings.LLM_MODEL
        self.timeout = timeout or settings.LLM_TIMEOUT
        self.session = session or requests.Session()

    def chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        response_format: Optional[Dict[str, str]] = None,
    ) -> str:
        if not self.api_key:
            raise LLMError("LLM_API_KEY is not configured")

        payload: Dict[str, Any] = {"model": model or self.model, "messages": messages}
        if response_format:
            payload["response_format"] = response_format

        try:
            resp = self.session.post(
                f"{self.base_url}/chat/completions",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise LLMError(f"AI gateway unreachable: {e}") from e

        if resp.status_code == 429:
            raise RateLimitError("Rate limit exceeded, please try again later.")
        if resp.status_code == 402:
            raise PaymentRequiredError("Payment required, please add funds to your workspace.")
        if not resp.ok:
            logger.error(f"AI request failed: {resp.status_code} {resp.text[:300]}")
            raise LLMError(f"AI request failed with status {resp.status_code}")

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMError(f"Malformed AI response: {e}") from e
        if not content:
            raise LLMError("No content from AI")
        return content.strip()

    def chat_json(self, prompt: str, system: str = JSON_ONLY_SYSTEM_PROMPT, **kwargs) -> Any:
        """Send a single prompt and parse the reply as JSON."""
        content = self.chat(
            [{"role": "system", "content": system}, {"role": "user", "content": prompt}],
            **kwargs,
        )
        return extract_json(content)
