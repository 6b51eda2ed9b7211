"""Query string encoding for Webauth challenges and responses.

The WLS expects spaces as ``%20``. ``urllib.parse.urlencode`` uses ``+``
(form encoding), so challenge query strings are built with ``quote`` instead.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from urllib.parse import quote, unquote


def encode_component(value: str) -> str:
    """Percent-encode a query string name or value.

    Every reserved character, including ``/``, ``&``, ``=`` and space, is
    encoded. Space becomes ``%20``, never ``+``.
    """
    return quote(value, safe="")


def encode_query(pairs: Iterable[tuple[str, str]]) -> str:
    """Join name/value pairs into a query string, preserving their order."""
    return "&".join(
        f"{encode_component(name)}={encode_component(value)}" for name, value in pairs
    )


def iter_parameter_names(query_string: str | None) -> Iterator[str]:
    """Yield the percent-decoded name of every parameter in a raw query string.

    Only the part before the first ``=`` of each ``&``-separated segment is
    decoded. ``+`` is left as-is, matching path-style decoding.

    Args:
        query_string: Raw query string without the leading ``?``, or None

    Yields:
        Decoded parameter names in order of appearance
    """
    if not query_string:
        return

    for segment in query_string.split("&"):
        name = segment.split("=", 1)[0]
        yield unquote(name)
