"""Principal resolution hooks.

Once a WLS response has been validated, a ``PrincipalResolver`` decides who
the user is inside the application and what they may do, and returns the
authenticated credential token.

Strategies:
- Trust the WLS principal string verbatim (``TrustedPrincipalResolver``)
- Look up a user record and its authorities (``UserDirectoryPrincipalResolver``)
- Custom resolvers subclassing ``BasePrincipalResolver``
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol

from ravengate.auth.models.errors import AlreadyAuthenticated, PrincipalNotFound
from ravengate.auth.models.token import CredentialToken

logger = logging.getLogger(__name__)


class PrincipalResolver(Protocol):
    """Protocol for turning a validated token into an authenticated one."""

    async def resolve(self, token: CredentialToken) -> CredentialToken:
        """Resolve the principal of a validated, unauthenticated token.

        Args:
            token: Unauthenticated token whose response has been validated

        Returns:
            Authenticated token (``token.authenticated`` must be true)

        Raises:
            AlreadyAuthenticated: If ``token`` is already authenticated
            PrincipalNotFound: If no identity exists for the principal
        """
        ...


class BasePrincipalResolver(ABC):
    """Base resolver: subclasses supply ``lookup`` returning the identity.

    ``resolve`` enforces the unauthenticated-token precondition and derives
    the authenticated token with ``CredentialToken.authenticate``.
    """

    async def resolve(self, token: CredentialToken) -> CredentialToken:
        if token.authenticated:
            raise AlreadyAuthenticated(
                f"{type(self).__name__} must not be given an authenticated token"
            )

        principal, authorities = await self.lookup(token)
        return token.authenticate(principal, authorities)

    @abstractmethod
    async def lookup(self, token: CredentialToken) -> tuple[Any, Iterable[Any]]:
        """Return ``(principal, authorities)`` for a validated token."""
        ...

    def get_username(self, token: CredentialToken) -> str:
        """Get the username to resolve.

        Defaults to the token's principal, which for an unauthenticated token
        is the ``principal`` field of the WLS response. Override to map
        usernames.
        """
        return str(token.principal)


class TrustedPrincipalResolver(BasePrincipalResolver):
    """Uses the WLS principal verbatim and grants a fixed set of authorities."""

    def __init__(self, authorities: Iterable[Any] = ()):
        self.authorities = frozenset(authorities)

    async def lookup(self, token: CredentialToken) -> tuple[Any, Iterable[Any]]:
        username = self.get_username(token)
        if not username:
            raise PrincipalNotFound(username)
        return username, self.authorities


@dataclass(frozen=True)
class UserRecord:
    """Application user as returned by a ``UserDirectory``."""

    username: str
    authorities: frozenset[str] = field(default_factory=frozenset)
    enabled: bool = True


class UserDirectory(Protocol):
    """Looks up application users by username."""

    async def get_user(self, username: str) -> UserRecord | None: ...


class UserDirectoryPrincipalResolver(BasePrincipalResolver):
    """Resolves principals to user records from a ``UserDirectory``.

    The authenticated token's principal is the ``UserRecord``; its
    authorities are the record's authorities. Disabled users are treated as
    not found.
    """

    def __init__(self, directory: UserDirectory):
        self.directory = directory

    async def lookup(self, token: CredentialToken) -> tuple[Any, Iterable[Any]]:
        username = self.get_username(token)
        user = await self.directory.get_user(username)

        if user is None or not user.enabled:
            logger.info(f"No enabled user for principal {username!r}")
            raise PrincipalNotFound(username)

        return user, user.authorities


class InMemoryUserDirectory:
    """User directory backed by a dict, for tests and small deployments."""

    def __init__(self, users: Iterable[UserRecord] = ()):
        self._users = {user.username: user for user in users}

    async def get_user(self, username: str) -> UserRecord | None:
        return self._users.get(username)

    def add(self, user: UserRecord) -> None:
        self._users[user.username] = user
