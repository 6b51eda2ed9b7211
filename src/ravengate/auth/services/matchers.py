"""Request matchers deciding which inbound requests carry a WLS response.

Matchers are pure predicates over a Starlette request. They hold no mutable
state and are safe to share between concurrent requests.
"""

from __future__ import annotations

import re
from typing import Protocol

from starlette.requests import Request

from ravengate.auth.primitives.query import iter_parameter_names

RESPONSE_PARAMETER_NAME = "WLS-Response"


class RequestMatcher(Protocol):
    def matches(self, request: Request) -> bool: ...


class AnyRequestMatcher:
    """Matches every request."""

    def matches(self, request: Request) -> bool:
        return True

    def __repr__(self) -> str:
        return "AnyRequestMatcher()"


class PathRequestMatcher:
    """Matches requests whose path fully matches a regular expression."""

    def __init__(self, pattern: str):
        self.pattern = re.compile(pattern)

    def matches(self, request: Request) -> bool:
        return self.pattern.fullmatch(request.url.path) is not None

    def __repr__(self) -> str:
        return f"PathRequestMatcher({self.pattern.pattern!r})"


class AndRequestMatcher:
    """Matches requests that every wrapped matcher matches."""

    def __init__(self, *matchers: RequestMatcher):
        if not matchers:
            raise ValueError("AndRequestMatcher needs at least one matcher")
        self.matchers = matchers

    def matches(self, request: Request) -> bool:
        return all(m.matches(request) for m in self.matchers)

    def __repr__(self) -> str:
        return f"AndRequestMatcher({', '.join(map(repr, self.matchers))})"


class ResponseParameterMatcher:
    """Matches requests whose query string names the WLS response parameter.

    Names are percent-decoded before comparison and compared case-sensitively.
    Values are ignored, so ``?WLS-Response`` and ``?WLS-Response=`` match.
    """

    def __init__(self, parameter_name: str = RESPONSE_PARAMETER_NAME):
        if not parameter_name:
            raise ValueError("parameter_name must not be empty")
        self.parameter_name = parameter_name

    def matches(self, request: Request) -> bool:
        query_string = request.scope.get("query_string", b"").decode("latin-1")
        return any(
            name == self.parameter_name for name in iter_parameter_names(query_string)
        )

    def __repr__(self) -> str:
        return f"ResponseParameterMatcher({self.parameter_name!r})"
