"""Request cache implementations.

Before redirecting a visitor to the WLS, the entry point saves their request.
When the WLS redirects back, the flow manager recovers it to regenerate the
challenge; the host can also use it to send the visitor on to where they
were going.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Hashable

from pydantic import BaseModel, ConfigDict
from starlette.requests import Request

logger = logging.getLogger(__name__)

DEFAULT_SESSION_KEY = "ravengate.saved_request"

# Headers replayed to challenge producers. Cookies and credentials are
# never stored in the session.
SAVED_HEADERS = frozenset(
    {"host", "accept", "accept-language", "referer", "user-agent"}
)

DEFAULT_MAX_ENTRIES = 1024


class SavedRequest(BaseModel):
    """Enough of an HTTP request to rebuild it after the WLS round trip."""

    model_config = ConfigDict(frozen=True)

    method: str
    scheme: str
    server: tuple[str, int | None] | None = None
    root_path: str = ""
    path: str
    query_string: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_request(cls, request: Request) -> SavedRequest:
        scope = request.scope
        return cls(
            method=request.method,
            scheme=request.url.scheme,
            server=scope.get("server"),
            root_path=scope.get("root_path", ""),
            path=scope.get("path", request.url.path),
            query_string=scope.get("query_string", b"").decode("latin-1"),
            headers=tuple(
                (name, value)
                for name, value in request.headers.items()
                if name in SAVED_HEADERS
            ),
        )

    @property
    def url(self) -> str:
        return str(self.to_request().url)

    def to_request(self) -> Request:
        """Rebuild a Starlette request from the saved data.

        The rebuilt request has no body and no session.
        """
        scope = {
            "type": "http",
            "http_version": "1.1",
            "method": self.method,
            "scheme": self.scheme,
            "server": self.server,
            "root_path": self.root_path,
            "path": self.path,
            "raw_path": self.path.encode("utf-8"),
            "query_string": self.query_string.encode("latin-1"),
            "headers": [
                (name.encode("latin-1"), value.encode("latin-1"))
                for name, value in self.headers
            ],
        }
        return Request(scope)


class SessionRequestCache:
    """Request cache storing the saved request in the visitor's session.

    Requires ``request.session``, e.g. Starlette's ``SessionMiddleware``.
    Reads are non-destructive.
    """

    def __init__(self, session_key: str = DEFAULT_SESSION_KEY):
        self.session_key = session_key

    async def save(self, request: Request) -> None:
        saved = SavedRequest.from_request(request)
        request.session[self.session_key] = saved.model_dump(mode="json")
        logger.debug(f"Saved request {saved.method} {saved.path} in session")

    async def get(self, request: Request) -> Request | None:
        data = request.session.get(self.session_key)
        if data is None:
            return None
        return SavedRequest.model_validate(data).to_request()

    async def remove(self, request: Request) -> None:
        request.session.pop(self.session_key, None)


class InMemoryRequestCache:
    """Request cache keeping saved requests in process memory.

    Entries are keyed by ``key_func(request)``, typically a session or
    browser cookie. Suitable for tests and single-process deployments.

    Logins that are never completed leave their entry behind, so at most
    ``max_entries`` are kept; saving beyond that evicts the oldest entry.
    """

    def __init__(
        self,
        key_func: Callable[[Request], Hashable | None],
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ):
        if max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._key_func = key_func
        self.max_entries = max_entries
        self._saved: dict[Hashable, SavedRequest] = {}

    async def save(self, request: Request) -> None:
        key = self._key_func(request)
        if key is None:
            logger.warning("Not saving request: no cache key for request")
            return

        # Re-saving moves the key to the newest position
        self._saved.pop(key, None)
        while len(self._saved) >= self.max_entries:
            oldest = next(iter(self._saved))
            del self._saved[oldest]
            logger.debug(f"Evicted saved request for key {oldest!r}")
        self._saved[key] = SavedRequest.from_request(request)

    async def get(self, request: Request) -> Request | None:
        key = self._key_func(request)
        saved = self._saved.get(key) if key is not None else None
        return saved.to_request() if saved is not None else None

    async def remove(self, request: Request) -> None:
        key = self._key_func(request)
        if key is not None:
            self._saved.pop(key, None)

    def __len__(self) -> int:
        return len(self._saved)
