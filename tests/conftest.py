from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode

import pytest
from starlette.requests import Request

from ravengate.auth.models.errors import ResponseParseError
from ravengate.auth.models.response import WebauthResponse


class StubResponseParser:
    """Parser returning pre-registered responses for known raw strings."""

    def __init__(self):
        self.responses: dict[str, WebauthResponse] = {}
        self.calls: list[str] = []

    def register(self, raw: str, response: WebauthResponse) -> str:
        self.responses[raw] = response
        return raw

    def parse(self, raw_response: str) -> WebauthResponse:
        self.calls.append(raw_response)
        try:
            return self.responses[raw_response]
        except KeyError:
            raise ResponseParseError(f"Unknown response: {raw_response!r}") from None


def build_request(
    path: str = "/",
    query_string: str = "",
    method: str = "GET",
    headers: dict[str, str] | None = None,
    session: dict[str, Any] | None = None,
) -> Request:
    scope = {
        "type": "http",
        "http_version": "1.1",
        "method": method,
        "scheme": "https",
        "server": ("app.example.com", 443),
        "root_path": "",
        "path": path,
        "raw_path": path.encode(),
        "query_string": query_string.encode("latin-1"),
        "headers": [
            (k.lower().encode("latin-1"), v.encode("latin-1"))
            for k, v in (headers or {"host": "app.example.com"}).items()
        ],
    }
    if session is not None:
        scope["session"] = session
    return Request(scope)


def build_response(**overrides: Any) -> WebauthResponse:
    fields = {
        "ver": 3,
        "status": 200,
        "issue": datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc),
        "id": "1714564800-1234-5",
        "url": "https://app.example.com/login",
        "principal": "abc123",
        "ptags": ["current"],
        "auth": "pwd",
        "kid": "901",
        "sig": "c2lnbmF0dXJl",
    }
    fields.update(overrides)
    return WebauthResponse(**fields)


@pytest.fixture
def make_request():
    """Factory building Starlette requests from bare ASGI scopes."""
    return build_request


@pytest.fixture
def make_response():
    """Factory building parsed WLS responses with sensible defaults."""
    return build_response


@pytest.fixture
def response_query():
    """Factory encoding a raw response value as a WLS-Response query string."""

    def _response_query(raw: str, **extra: str) -> str:
        return urlencode({"WLS-Response": raw, **extra})

    return _response_query


@pytest.fixture
def stub_parser():
    return StubResponseParser()


@pytest.fixture
def fixed_now():
    return datetime(2024, 5, 1, 12, 0, 5, tzinfo=timezone.utc)
