"""Shared fixtures for the mosaia test-suite."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Callable

import pytest

from mosaia.config import ConfigurationManager


def _fake_response(
    status_code: int = 200,
    body: Any = None,
    *,
    reason: str = "",
    text: str | None = None,
) -> SimpleNamespace:
    """Return a minimal stand-in for :class:`requests.Response`."""
    resp = SimpleNamespace()
    resp.status_code = status_code
    resp.ok = 200 <= status_code < 300
    resp.reason = reason
    if text is not None:
        resp.text = text
        resp.content = text.encode()

        def _raise() -> Any:
            raise ValueError("not json")

        resp.json = _raise
    else:
        resp.text = "" if body is None else repr(body)
        resp.content = b"" if body is None else b"{...}"
        resp.json = lambda: body
    return resp


class FakeSession:
    """Records ``request`` calls and replays queued responses."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> Any:
        self.calls.append({"method": method, "url": url, **kwargs})
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture(autouse=True)
def _reset_singleton():
    """Make sure no test leaks the process-wide manager into another."""
    ConfigurationManager._instance = None
    yield
    ConfigurationManager._instance = None


@pytest.fixture()
def manager() -> ConfigurationManager:
    """Return an isolated, uninitialized configuration manager."""
    return ConfigurationManager()


@pytest.fixture()
def fake_response() -> Callable[..., SimpleNamespace]:
    """Factory for fake ``requests.Response`` objects."""
    return _fake_response


@pytest.fixture()
def fake_session() -> type[FakeSession]:
    """The :class:`FakeSession` class, for building recording sessions."""
    return FakeSession
