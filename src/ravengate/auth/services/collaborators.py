"""Interfaces of the external collaborators the handshake depends on.

Signature checking, wire decoding and request persistence live outside
ravengate. Hosts plug in implementations of these protocols.
"""

from __future__ import annotations

from typing import Protocol

from starlette.requests import Request

from ravengate.auth.models.challenge import ChallengeDescriptor
from ravengate.auth.models.response import WebauthResponse


class ResponseParser(Protocol):
    """Decodes the raw ``WLS-Response`` value into a structured response."""

    def parse(self, raw_response: str) -> WebauthResponse:
        """Parse a raw signed response string.

        Raises:
            ResponseParseError: If the string is not a well-formed response.
                ``ValueError`` (including pydantic's ``ValidationError``) is
                treated the same way.
        """
        ...


class ResponseValidator(Protocol):
    """Checks a response's signature and freshness against its challenge."""

    async def validate(
        self,
        challenge: ChallengeDescriptor,
        response: WebauthResponse,
        received_at_millis: int,
    ) -> None:
        """Validate a response.

        Implementations are responsible for replay protection, using the
        response's ``id`` and ``issue`` time.

        Raises:
            ResponseValidationError: If the response must not be trusted
        """
        ...


class RequestCache(Protocol):
    """Stores the request a visitor made before being redirected to the WLS."""

    async def save(self, request: Request) -> None:
        """Remember ``request`` so it can be recovered after the redirect."""
        ...

    async def get(self, request: Request) -> Request | None:
        """Return the saved request for the current one, without removing it."""
        ...

    async def remove(self, request: Request) -> None:
        """Forget the saved request for the current one."""
        ...
