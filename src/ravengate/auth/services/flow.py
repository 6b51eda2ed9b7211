"""Webauth handshake orchestration service.

Coordinates everything between the WLS redirecting a visitor back and the
application holding an authenticated credential token: response extraction
and parsing, original request recovery, challenge regeneration, external
validation and principal resolution.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

from starlette.requests import Request

from ravengate.auth.models.challenge import ChallengeDescriptor
from ravengate.auth.models.errors import (
    AlreadyAuthenticated,
    AuthenticationFailure,
    BadStatusCredentials,
    ChallengeReconstructionFailed,
    CredentialsErased,
    MalformedCredentials,
    MissingCredentials,
    OriginalRequestLost,
    ResolverContractViolation,
    ResponseParseError,
    ResponseValidationError,
    ValidationFailed,
)
from ravengate.auth.models.response import SUCCESS_STATUS, WebauthResponse
from ravengate.auth.models.token import CredentialToken, ErasedCredentialToken
from ravengate.auth.services.challenge import ChallengeCreator
from ravengate.auth.services.collaborators import (
    RequestCache,
    ResponseParser,
    ResponseValidator,
)
from ravengate.auth.services.matchers import (
    RESPONSE_PARAMETER_NAME,
    AndRequestMatcher,
    AnyRequestMatcher,
    RequestMatcher,
    ResponseParameterMatcher,
)
from ravengate.auth.services.resolvers import PrincipalResolver

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class HandshakeState(str, Enum):
    """Progress of one handshake attempt."""

    AWAITING_RESPONSE = "awaiting_response"
    RESPONSE_RECEIVED = "response_received"
    VALIDATING = "validating"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


class WebauthFlowManager:
    """Orchestrates the return leg of a Webauth login.

    Handles a WLS redirect-back from the raw response parameter through to
    an authenticated credential token:
    - Response parameter extraction and parsing
    - Original request recovery from the request cache
    - Challenge regeneration for the original request
    - External signature and freshness validation
    - Principal resolution via the configured resolver

    Holds no per-request state, so one instance serves concurrent requests.
    Every failure is terminal for the attempt; nothing is retried.
    """

    def __init__(
        self,
        parser: ResponseParser,
        validator: ResponseValidator,
        request_cache: RequestCache,
        challenge_creator: ChallengeCreator,
        resolver: PrincipalResolver,
        response_parameter_name: str = RESPONSE_PARAMETER_NAME,
        requires_authentication: RequestMatcher | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize the flow manager.

        Args:
            parser: Decodes the raw WLS response string
            validator: Checks response signature and freshness
            request_cache: Holds the request made before the WLS redirect
            challenge_creator: Regenerates the challenge for that request
            resolver: Resolves the validated principal
            response_parameter_name: Query parameter carrying the response
            requires_authentication: Host matcher for endpoints that process
                logins; defaults to every endpoint
            clock: Time source for response receipt timestamps
        """
        self.parser = parser
        self.validator = validator
        self.request_cache = request_cache
        self.challenge_creator = challenge_creator
        self.resolver = resolver
        self.response_parameter_name = response_parameter_name
        self.clock = clock
        self._matcher = AndRequestMatcher(
            requires_authentication or AnyRequestMatcher(),
            ResponseParameterMatcher(response_parameter_name),
        )

    def requires_authentication(self, request: Request) -> bool:
        """Check if ``request`` is a WLS redirect-back this manager should handle."""
        return self._matcher.matches(request)

    async def authenticate(self, request: Request) -> CredentialToken:
        """Authenticate the WLS response carried by ``request``.

        Args:
            request: Inbound redirect-back request from the WLS

        Returns:
            CredentialToken: Authenticated token from the resolver

        Raises:
            MissingCredentials: If the response parameter is absent
            MalformedCredentials: If the response does not parse
            OriginalRequestLost: If the request cache has no saved request
            ChallengeReconstructionFailed: If the challenge cannot be
                regenerated for the saved request
            BadStatusCredentials: If validation fails and the WLS reported a
                non-success status
            ValidationFailed: If validation fails otherwise
            PrincipalNotFound: If the resolver finds no identity
            ResolverContractViolation: If the resolver returns an
                unauthenticated token
        """
        # Single clock read per handshake
        received_at = self.clock()
        logger.debug(f"Handshake {HandshakeState.AWAITING_RESPONSE.value}")

        try:
            response = self._parse_response(self._get_raw_response(request))
            logger.debug(
                f"Handshake {HandshakeState.RESPONSE_RECEIVED.value}: "
                f"response id {response.id}, status {response.status}"
            )

            original_request = await self._get_original_request(request)
            challenge = self._recreate_challenge(original_request)

            token = CredentialToken.from_response(challenge, response, received_at)
            return await self.validate_token(token)

        except AuthenticationFailure as e:
            logger.warning(
                f"Handshake {HandshakeState.REJECTED.value}: {type(e).__name__}: {e}"
            )
            raise

    async def validate_token(
        self, token: CredentialToken | ErasedCredentialToken
    ) -> CredentialToken:
        """Validate an unauthenticated token and resolve its principal.

        Raises:
            CredentialsErased: If the token no longer has credentials
            AlreadyAuthenticated: If the token is already authenticated
            BadStatusCredentials: If validation fails on a non-success response
            ValidationFailed: If validation fails otherwise
            ResolverContractViolation: If the resolver breaks its contract
        """
        if not token.has_credentials:
            raise CredentialsErased("Credentials have been erased before authentication")
        if token.authenticated:
            raise AlreadyAuthenticated("Token has already been validated and resolved")

        response = token.response
        logger.debug(
            f"Handshake {HandshakeState.VALIDATING.value}: response id {response.id}"
        )

        try:
            await self.validator.validate(
                token.challenge, response, token.received_at_millis
            )
        except ResponseValidationError as e:
            if response.status is not None and response.status != SUCCESS_STATUS:
                raise BadStatusCredentials(
                    response.status, response.status_reason()
                ) from e
            raise ValidationFailed("WLS response did not validate") from e

        result = await self.resolver.resolve(token)

        if result is None or not result.authenticated:
            logger.error(
                f"Principal resolver {self.resolver!r} returned an "
                f"unauthenticated token: {result!r}"
            )
            raise ResolverContractViolation(
                f"PrincipalResolver returned an unauthenticated token. "
                f"resolver: {self.resolver!r}, token: {result!r}"
            )

        logger.info(
            f"Handshake {HandshakeState.AUTHENTICATED.value}: "
            f"principal {response.principal!r}"
        )
        return result

    def _get_raw_response(self, request: Request) -> str:
        raw_response = request.query_params.get(self.response_parameter_name)
        if raw_response is None:
            raise MissingCredentials(
                f"Request contained no query parameter named: "
                f"{self.response_parameter_name}"
            )
        return raw_response

    def _parse_response(self, raw_response: str) -> WebauthResponse:
        try:
            return self.parser.parse(raw_response)
        except (ResponseParseError, ValueError) as e:
            raise MalformedCredentials(
                f"Invalid {self.response_parameter_name} parameter"
            ) from e

    async def _get_original_request(self, request: Request) -> Request:
        original_request = await self.request_cache.get(request)
        if original_request is None:
            raise OriginalRequestLost("Original request not in request cache")
        return original_request

    def _recreate_challenge(self, original_request: Request) -> ChallengeDescriptor:
        try:
            challenge = self.challenge_creator.create_challenge(original_request)
        except Exception as e:
            raise ChallengeReconstructionFailed(
                f"Failed to recreate challenge for {original_request.url.path}: {e}"
            ) from e

        if challenge is None:
            raise ChallengeReconstructionFailed(
                f"{type(self.challenge_creator).__name__}.create_challenge() returned None"
            )
        return challenge
