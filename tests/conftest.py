"""Shared fakes for HTTP-backed components."""

from __future__ import annotations

from typing import Any, List, Optional

import pytest
import requests


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("no JSON body")
        return self._payload


class FakeSession:
    """Record requests and replay queued responses or exceptions."""

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.calls: List[dict[str, Any]] = []

    def _next(self, method: str, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self.responses:
            raise requests.ConnectionError("no response queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._next("POST", url, **kwargs)


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


def make_response(status_code: int = 200, payload: Optional[Any] = None, text: str = "") -> FakeResponse:
    return FakeResponse(status_code, payload, text)
