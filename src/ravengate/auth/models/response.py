"""Parsed WLS response model.

A ``WebauthResponse`` is what a ``ResponseParser`` produces from the signed
``WLS-Response`` string. The wire encoding itself is the parser's concern.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

SUCCESS_STATUS = 200

STATUS_REASONS: dict[int, str] = {
    200: "successful authentication",
    410: "the user cancelled the authentication request",
    510: "no mutually acceptable authentication types available",
    520: "unsupported protocol version",
    530: "general request parameter error",
    540: "interaction would be required",
    560: "web application agent not authorised",
    570: "authentication declined",
}


def describe_status(status: int) -> str | None:
    """Return a human readable reason for a WLS status code, if known."""
    return STATUS_REASONS.get(status)


class WebauthResponse(BaseModel):
    """Structured WLS authentication response.

    Immutable once parsed. ``principal`` may be empty for unsuccessful
    responses but is never missing.
    """

    model_config = ConfigDict(frozen=True)

    ver: int
    status: int
    msg: str | None = None
    issue: datetime
    id: str
    url: str
    principal: str = ""
    ptags: tuple[str, ...] = ()
    auth: str | None = None
    sso: tuple[str, ...] = ()
    life: int | None = Field(default=None, ge=0)  # Seconds
    params: str | None = None
    kid: str | None = None
    sig: str | None = None

    def is_success(self) -> bool:
        """Check if the WLS reported a successful authentication."""
        return self.status == SUCCESS_STATUS

    def status_reason(self) -> str | None:
        return describe_status(self.status)
