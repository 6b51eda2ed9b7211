"""Settings for a Webauth-protected application.

Settings can be built directly or read from ``RAVENGATE_*`` environment
variables (and a ``.env`` file, via python-dotenv):

    RAVENGATE_RETURN_URL=https://app.example.com/login
    RAVENGATE_DESCRIPTION=Example application
    RAVENGATE_AUTH_URL=https://demo.raven.cam.ac.uk/auth/authenticate.html
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from ravengate.auth.models.challenge import ChallengeParameter
from ravengate.auth.services.challenge import DEFAULT_VERSION, ChallengeBuilder
from ravengate.auth.services.entry_point import DEFAULT_WLS_AUTH_URL
from ravengate.auth.services.matchers import RESPONSE_PARAMETER_NAME
from ravengate.auth.services.request_cache import DEFAULT_SESSION_KEY, SessionRequestCache

ENV_PREFIX = "RAVENGATE_"

# Settings fields that map onto optional challenge parameters
_OPTIONAL_CHALLENGE_FIELDS = {
    "description": ChallengeParameter.DESCRIPTION,
    "auth_types": ChallengeParameter.AUTH_TYPES,
    "interactive": ChallengeParameter.INTERACTIVE,
    "message": ChallengeParameter.MESSAGE,
    "extra_params": ChallengeParameter.EXTRA_PARAMS,
    "failure_mode": ChallengeParameter.FAILURE_MODE,
}


class WebauthSettings(BaseModel):
    """Configuration for the WLS redirect and response handling."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    return_url: str
    auth_url: str = DEFAULT_WLS_AUTH_URL
    version: int = Field(default=DEFAULT_VERSION, ge=1)
    response_parameter_name: str = Field(default=RESPONSE_PARAMETER_NAME, min_length=1)
    session_key: str = DEFAULT_SESSION_KEY

    description: str | None = None
    auth_types: str | None = None
    interactive: str | None = None
    message: str | None = None
    extra_params: str | None = None
    failure_mode: str | None = None

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: Mapping[str, str] | None = None,
        dotenv: bool = True,
    ) -> WebauthSettings:
        """Read settings from environment variables named ``<prefix><FIELD>``.

        Args:
            prefix: Variable name prefix
            environ: Mapping to read instead of ``os.environ``
            dotenv: Load a ``.env`` file into the environment first

        Raises:
            pydantic.ValidationError: If a value is missing or invalid
        """
        if dotenv and environ is None:
            load_dotenv(find_dotenv(usecwd=True))
        env = os.environ if environ is None else environ

        values = {}
        for name in cls.model_fields:
            key = f"{prefix}{name.upper()}"
            if key in env:
                values[name] = env[key]
        return cls(**values)

    def challenge_builder(self) -> ChallengeBuilder:
        """Create a challenge builder preloaded with these settings."""
        builder = ChallengeBuilder.for_return_url(self.return_url, self.version)
        for name, parameter in _OPTIONAL_CHALLENGE_FIELDS.items():
            value = getattr(self, name)
            if value is not None:
                builder.with_value(parameter, value)
        return builder

    def session_request_cache(self) -> SessionRequestCache:
        return SessionRequestCache(self.session_key)
