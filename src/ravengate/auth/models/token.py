"""Credential tokens for a single Webauth handshake.

A ``CredentialToken`` starts unauthenticated, built from the challenge that
was sent, the response that came back and the time it arrived. Validation
turns it into a new, authenticated token. Erasing credentials turns either
into an ``ErasedCredentialToken``, which has no credential fields at all and
keeps only the principal, authorities and authentication outcome.

Tokens are immutable values. Every transition returns a new token.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from ravengate.auth.models.challenge import ChallengeDescriptor
from ravengate.auth.models.errors import AlreadyAuthenticated
from ravengate.auth.models.response import WebauthResponse


def _grant(token: Any, authorities: frozenset[Any]) -> Any:
    object.__setattr__(token, "authorities", authorities)
    object.__setattr__(token, "authenticated", True)
    return token


@dataclass(frozen=True)
class CredentialToken:
    """Authentication state of one login attempt that still has credentials.

    ``challenge``, ``response`` and ``received_at`` are always present.
    ``authenticated`` and ``authorities`` are not constructor arguments: a
    token only gains them through ``authenticate()``.
    """

    principal: Any
    challenge: ChallengeDescriptor
    response: WebauthResponse
    received_at: datetime
    authorities: frozenset[Any] = field(default=frozenset(), init=False)
    authenticated: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.principal is None:
            raise ValueError("principal must not be None")
        if self.challenge is None or self.response is None or self.received_at is None:
            raise ValueError("challenge, response and received_at are required")

    @classmethod
    def from_response(
        cls,
        challenge: ChallengeDescriptor,
        response: WebauthResponse,
        received_at: datetime,
    ) -> CredentialToken:
        """Create an unauthenticated token from a received WLS response.

        The principal is the response's raw principal string, which may be
        empty.
        """
        return cls(
            principal=response.principal if response is not None else None,
            challenge=challenge,
            response=response,
            received_at=received_at,
        )

    @property
    def has_credentials(self) -> bool:
        return True

    @property
    def credentials(self) -> WebauthResponse:
        return self.response

    @property
    def received_at_millis(self) -> int:
        """Receipt time as integer milliseconds since the epoch."""
        return int(self.received_at.timestamp() * 1000)

    def authenticate(
        self, principal: Any, authorities: Iterable[Any] = ()
    ) -> CredentialToken:
        """Derive the authenticated token for this login attempt.

        Args:
            principal: Resolved identity, e.g. a user record
            authorities: Capabilities granted to the principal

        Returns:
            A new authenticated token with the same challenge, response and
            receipt time

        Raises:
            AlreadyAuthenticated: If this token is already authenticated
        """
        if self.authenticated:
            raise AlreadyAuthenticated("Token is already authenticated")

        return _grant(replace(self, principal=principal), frozenset(authorities))

    def erase_credentials(self) -> ErasedCredentialToken:
        """Drop the challenge, response and receipt time.

        Principal, authorities and the authentication outcome carry over to
        the erased token unchanged.
        """
        erased = ErasedCredentialToken(self.principal)
        if self.authenticated:
            _grant(erased, self.authorities)
        return erased

    def __repr__(self) -> str:
        return (
            f"CredentialToken(principal={self.principal!r}, "
            f"authenticated={self.authenticated}, "
            f"authorities={sorted(map(str, self.authorities))}, "
            f"has_credentials=True)"
        )


@dataclass(frozen=True)
class ErasedCredentialToken:
    """A token whose credentials have been erased.

    Only ``CredentialToken.erase_credentials()`` produces an authenticated
    one. An erased token can never be validated again.
    """

    principal: Any
    authorities: frozenset[Any] = field(default=frozenset(), init=False)
    authenticated: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        if self.principal is None:
            raise ValueError("principal must not be None")

    @property
    def has_credentials(self) -> bool:
        return False

    @property
    def credentials(self) -> None:
        return None

    def erase_credentials(self) -> ErasedCredentialToken:
        return self
