"""
Remote AI eco scorer client.

The scorer endpoint receives the product's text fields and answers
``{"eco_score": 0..1, "ai_confidence": 0..1}`` (optionally wrapped in
``{"data": {...}}``). Every failure mode is reported as a
``RemoteScoreOutcome`` carrying an error message; nothing is raised to callers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

import requests

from .eco_score import ProductSignal


@dataclass(frozen=True)
class RemoteScore:
    eco_score: float
    ai_confidence: float


@dataclass(frozen=True)
class RemoteScoreOutcome:
    result: Optional[RemoteScore] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None

    @classmethod
    def success(cls, eco_score: float, ai_confidence: float) -> 'RemoteScoreOutcome':
        return cls(result=RemoteScore(eco_score=eco_score, ai_confidence=ai_confidence))

    @classmethod
    def failure(cls, error: str) -> 'RemoteScoreOutcome':
        return cls(error=error)


def _unit_interval(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        value = float(value)
    except (OverflowError, ValueError):
        return None
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        return None
    return value


def parse_score_payload(payload: Any) -> RemoteScoreOutcome:
    """Validate a decoded scorer response."""
    if isinstance(payload, dict) and isinstance(payload.get('data'), dict):
        payload = payload['data']
    if not isinstance(payload, dict):
        return RemoteScoreOutcome.failure("malformed response: expected an object")

    eco_score = _unit_interval(payload.get('eco_score'))
    ai_confidence = _unit_interval(payload.get('ai_confidence'))
    if eco_score is None or ai_confidence is None:
        return RemoteScoreOutcome.failure(
            "malformed response: eco_score and ai_confidence must be numbers in [0, 1]"
        )
    return RemoteScoreOutcome.success(eco_score, ai_confidence)


class RemoteEcoScorer:
    """HTTP client for the AI scoring endpoint."""

    def __init__(self, url: str = '', api_key: str = '', timeout: float = 8.0,
                 session: Optional[requests.Session] = None):
        self.url = (url or '').strip()
        self.api_key = api_key or ''
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if self.api_key:
            self._session.headers.update({"Authorization": f"Bearer {self.api_key}"})

    def is_configured(self) -> bool:
        return bool(self.url)

    def score(self, signal: ProductSignal) -> RemoteScoreOutcome:
        if not self.url:
            return RemoteScoreOutcome.failure("remote scorer not configured")

        try:
            response = self._session.post(self.url, json=signal.to_dict(), timeout=self.timeout)
        except requests.exceptions.Timeout:
            return RemoteScoreOutcome.failure(f"timed out after {self.timeout}s")
        except requests.exceptions.RequestException as e:
            return RemoteScoreOutcome.failure(f"request failed: {e}")

        if not 200 <= response.status_code < 300:
            return RemoteScoreOutcome.failure(
                f"upstream error ({response.status_code}): {response.text[:200]}"
            )

        try:
            payload = response.json()
        except ValueError:
            return RemoteScoreOutcome.failure("response is not valid JSON")

        return parse_score_payload(payload)
