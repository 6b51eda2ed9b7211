"""Entry point redirecting unauthenticated visitors to the WLS."""

from __future__ import annotations

import logging

from starlette.requests import Request
from starlette.responses import RedirectResponse

from ravengate.auth.services.challenge import ChallengeCreator
from ravengate.auth.services.collaborators import RequestCache

logger = logging.getLogger(__name__)

DEFAULT_WLS_AUTH_URL = "https://raven.cam.ac.uk/auth/authenticate.html"


class WebauthEntryPoint:
    """Starts a login by redirecting the visitor to the WLS.

    The visitor's request is saved in the request cache first (when one is
    configured) so the flow manager can regenerate the challenge when the
    WLS redirects back.
    """

    def __init__(
        self,
        challenge_creator: ChallengeCreator,
        request_cache: RequestCache | None = None,
        auth_url: str = DEFAULT_WLS_AUTH_URL,
    ):
        if challenge_creator is None:
            raise ValueError("challenge_creator is required")
        if not auth_url:
            raise ValueError("auth_url is required")

        self.challenge_creator = challenge_creator
        self.request_cache = request_cache
        self.auth_url = auth_url

    def login_url(self, request: Request) -> str:
        """Build the WLS login URL for ``request``."""
        challenge = self.challenge_creator.create_challenge(request)
        return challenge.build_login_url(self.auth_url)

    async def commence(self, request: Request) -> RedirectResponse:
        """Save ``request`` and return the redirect to the WLS."""
        if self.request_cache is not None:
            await self.request_cache.save(request)

        url = self.login_url(request)
        logger.info(f"Redirecting {request.url.path} to WLS at {self.auth_url}")
        return RedirectResponse(url, status_code=302)
