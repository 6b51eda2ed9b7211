"""Tests for principal resolution hooks."""

from datetime import datetime, timezone

import pytest

from ravengate.auth.models.challenge import ChallengeDescriptor, ChallengeParameter
from ravengate.auth.models.errors import AlreadyAuthenticated, PrincipalNotFound
from ravengate.auth.models.token import CredentialToken
from ravengate.auth.services.resolvers import (
    BasePrincipalResolver,
    InMemoryUserDirectory,
    TrustedPrincipalResolver,
    UserDirectoryPrincipalResolver,
    UserRecord,
)


@pytest.fixture
def token(make_response):
    challenge = ChallengeDescriptor(
        {ChallengeParameter.VERSION: 3, ChallengeParameter.RETURN_URL: "/"}
    )
    return CredentialToken.from_response(
        challenge, make_response(principal="abc123"), datetime.now(timezone.utc)
    )


class TestTrustedPrincipalResolver:
    async def test_uses_principal_verbatim(self, token):
        # Arrange
        resolver = TrustedPrincipalResolver(authorities=["ROLE_USER"])

        # Act
        result = await resolver.resolve(token)

        # Assert
        assert result.authenticated
        assert result.principal == "abc123"
        assert result.authorities == {"ROLE_USER"}
        assert result.response is token.response

    async def test_empty_principal_not_found(self, make_response):
        token = CredentialToken.from_response(
            ChallengeDescriptor(
                {ChallengeParameter.VERSION: 3, ChallengeParameter.RETURN_URL: "/"}
            ),
            make_response(principal=""),
            datetime.now(timezone.utc),
        )

        with pytest.raises(PrincipalNotFound):
            await TrustedPrincipalResolver().resolve(token)

    async def test_rejects_authenticated_token(self, token):
        authenticated = token.authenticate("abc123", [])

        with pytest.raises(AlreadyAuthenticated):
            await TrustedPrincipalResolver().resolve(authenticated)


class TestUserDirectoryPrincipalResolver:
    def setup_method(self):
        self.user = UserRecord("abc123", frozenset({"ROLE_USER", "ROLE_STAFF"}))
        self.directory = InMemoryUserDirectory(
            [self.user, UserRecord("gone99", enabled=False)]
        )
        self.resolver = UserDirectoryPrincipalResolver(self.directory)

    async def test_resolves_user_record_and_authorities(self, token):
        # Act
        result = await self.resolver.resolve(token)

        # Assert
        assert result.authenticated
        assert result.principal is self.user
        assert result.authorities == {"ROLE_USER", "ROLE_STAFF"}

    async def test_unknown_user_not_found(self, token):
        self.directory = InMemoryUserDirectory()
        resolver = UserDirectoryPrincipalResolver(self.directory)

        with pytest.raises(PrincipalNotFound) as exc_info:
            await resolver.resolve(token)

        assert exc_info.value.username == "abc123"

    async def test_disabled_user_not_found(self, make_response):
        token = CredentialToken.from_response(
            ChallengeDescriptor(
                {ChallengeParameter.VERSION: 3, ChallengeParameter.RETURN_URL: "/"}
            ),
            make_response(principal="gone99"),
            datetime.now(timezone.utc),
        )

        with pytest.raises(PrincipalNotFound):
            await self.resolver.resolve(token)

    async def test_get_username_can_be_overridden(self, token):
        # Arrange
        class DomainUserResolver(UserDirectoryPrincipalResolver):
            def get_username(self, token):
                return f"{token.principal}@cam.ac.uk"

        self.directory.add(UserRecord("abc123@cam.ac.uk", frozenset({"ROLE_ALUMNI"})))

        # Act
        result = await DomainUserResolver(self.directory).resolve(token)

        # Assert
        assert result.principal.username == "abc123@cam.ac.uk"


class TestBasePrincipalResolver:
    async def test_lookup_result_builds_authenticated_token(self, token):
        class StaticResolver(BasePrincipalResolver):
            async def lookup(self, token):
                return {"id": 7}, ("ROLE_A",)

        result = await StaticResolver().resolve(token)

        assert result.principal == {"id": 7}
        assert result.authorities == {"ROLE_A"}

    def test_lookup_is_abstract(self):
        with pytest.raises(TypeError):
            BasePrincipalResolver()
