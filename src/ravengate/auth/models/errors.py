"""Exception hierarchy for the Webauth redirect handshake.

Provides specific exception types for different failure modes so hosts can
tell configuration defects, user-facing authentication failures and broken
application hooks apart.
"""

from __future__ import annotations


class WebauthError(Exception):
    """Base exception for all Webauth handshake errors."""

    pass


# Challenge construction


class ChallengeError(WebauthError):
    """Raised when a challenge cannot be built."""

    pass


class InvalidParameterValue(ChallengeError, ValueError):
    """Raised when a challenge parameter's value fails its validator."""

    def __init__(self, parameter: object, value: object, reason: str):
        super().__init__(f"Invalid value for parameter {parameter}: {value!r} - {reason}")
        self.parameter = parameter
        self.value = value
        self.reason = reason


class ProducerInvariantViolation(InvalidParameterValue):
    """Raised when a dynamic producer returns a value its parameter rejects.

    This indicates a defect in the configured producer, not bad caller input.
    """

    pass


class MissingRequiredParameter(ChallengeError, ValueError):
    """Raised when a required challenge parameter has no value or producer."""

    def __init__(self, missing: frozenset):
        names = ", ".join(sorted(str(p) for p in missing))
        super().__init__(f"Not all required parameters were provided, missing: {names}")
        self.missing = missing


# Authentication failures


class AuthenticationFailure(WebauthError):
    """Base for failures that end a login attempt.

    ``user_message`` is safe to show to the end user; ``str(exc)`` may carry
    internal detail and should only be logged.
    """

    user_message = "Authentication failed."


class ChallengeReconstructionFailed(ChallengeError, AuthenticationFailure):
    """Raised when the challenge for the original request cannot be regenerated."""

    user_message = "Your login session expired, please log in again."


class MissingCredentials(AuthenticationFailure):
    """Raised when the inbound request carries no WLS response parameter."""

    user_message = "You are not logged in, please try logging in again."


class MalformedCredentials(AuthenticationFailure):
    """Raised when the WLS response string cannot be parsed."""

    pass


class OriginalRequestLost(AuthenticationFailure):
    """Raised when the request that triggered the login is not in the cache.

    The handshake cannot be completed without knowing what the user wanted,
    so this is never worth retrying with the same response.
    """

    user_message = "Your login session expired, please log in again."


class CredentialsErased(AuthenticationFailure):
    """Raised when a token reaches validation after its credentials were erased."""

    pass


class BadStatusCredentials(AuthenticationFailure):
    """Raised when the WLS response carries a non-success status code."""

    def __init__(self, status: int, reason: str | None = None):
        super().__init__(f"Response contained unsuccessful status: {status}")
        self.status = status
        self.reason = reason

    @property
    def user_message(self) -> str:
        if self.reason:
            return f"Login was not completed: {self.reason}."
        return AuthenticationFailure.user_message


class ValidationFailed(AuthenticationFailure):
    """Raised when the WLS response fails signature or freshness validation.

    Always treat this as a potential attack or a clock/key configuration
    problem.
    """

    pass


class PrincipalNotFound(AuthenticationFailure):
    """Raised when the principal resolver finds no identity for a login."""

    def __init__(self, username: str):
        super().__init__(f"No user found for principal: {username!r}")
        self.username = username


# Programming contract violations


class TokenStateError(WebauthError):
    """Raised when a credential token is used in the wrong lifecycle state."""

    pass


class AlreadyAuthenticated(TokenStateError):
    """Raised when authenticating or resolving an already authenticated token."""

    pass


class ResolverContractViolation(WebauthError):
    """Raised when a principal resolver returns an unauthenticated token.

    This indicates the deployed resolver is broken, not that the user failed
    to log in.
    """

    pass


# Collaborator errors


class ResponseParseError(WebauthError):
    """Raised by response parsers when the raw response string is malformed."""

    pass


class ResponseValidationError(WebauthError):
    """Raised by response validators when a response is rejected."""

    pass
