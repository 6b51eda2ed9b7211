"""Challenge construction for redirects to the WLS.

A ``ChallengeBuilder`` collects fixed values and per-request producers and
builds a ``DefaultChallengeCreator``. The creator turns each inbound request
into a concrete ``ChallengeDescriptor``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from starlette.requests import Request

from ravengate.auth.models.challenge import (
    REQUIRED_PARAMETERS,
    ChallengeDescriptor,
    ChallengeParameter,
)
from ravengate.auth.models.errors import (
    InvalidParameterValue,
    MissingRequiredParameter,
    ProducerInvariantViolation,
)

logger = logging.getLogger(__name__)

DEFAULT_VERSION = 3

# Computes a parameter's value for a specific inbound request
ValueProducer = Callable[[ChallengeParameter, Request], Any]


class ChallengeCreator(Protocol):
    """Creates the challenge to send to the WLS for an inbound request.

    Implementations must be deterministic: the same request must always
    produce the same challenge, since the challenge is regenerated (not
    stored) when the WLS response comes back.
    """

    def create_challenge(self, request: Request) -> ChallengeDescriptor: ...


def _fixed(value: Any) -> ValueProducer:
    return lambda parameter, request: value


def _require_parameter(parameter: Any) -> None:
    if not isinstance(parameter, ChallengeParameter):
        raise TypeError(f"Not a challenge parameter: {parameter!r}")


class DefaultChallengeCreator:
    """Challenge creator backed by fixed values and dynamic producers."""

    def __init__(
        self,
        producers: Mapping[ChallengeParameter, ValueProducer],
        dynamic: frozenset[ChallengeParameter] = frozenset(),
    ):
        missing = REQUIRED_PARAMETERS.difference(producers)
        if missing:
            raise MissingRequiredParameter(frozenset(missing))

        self._producers = {
            p: producers[p] for p in ChallengeParameter if p in producers
        }
        self._dynamic = frozenset(dynamic)

    @property
    def parameters(self) -> frozenset[ChallengeParameter]:
        return frozenset(self._producers)

    def create_challenge(self, request: Request) -> ChallengeDescriptor:
        """Create the challenge for ``request``.

        Every producer is invoked with the request and its value validated.
        A producer may return None for an optional parameter to leave it out.

        Raises:
            ProducerInvariantViolation: If a producer returns a value its
                parameter rejects
        """
        values: dict[ChallengeParameter, Any] = {}
        for parameter, producer in self._producers.items():
            value = producer(parameter, request)
            if value is None and not parameter.is_required:
                continue
            try:
                parameter.validate(value)
            except InvalidParameterValue as e:
                if parameter in self._dynamic:
                    raise ProducerInvariantViolation(
                        parameter, value, f"producer returned invalid value: {e.reason}"
                    ) from e
                raise
            values[parameter] = value

        return ChallengeDescriptor(values)


class ChallengeBuilder:
    """Collects challenge parameter values and builds a challenge creator.

    Fixed values are validated as soon as they are set. Dynamic values are
    validated each time a challenge is created.

    Example:
        creator = (
            ChallengeBuilder.for_return_url("https://app.example.com/login")
            .with_value(ChallengeParameter.DESCRIPTION, "Example app")
            .build()
        )
    """

    def __init__(self):
        self._producers: dict[ChallengeParameter, ValueProducer] = {}
        self._dynamic: set[ChallengeParameter] = set()

    @classmethod
    def for_return_url(
        cls, return_url: str, version: int = DEFAULT_VERSION
    ) -> ChallengeBuilder:
        """Start a builder with the protocol version and return URL set."""
        return (
            cls()
            .with_value(ChallengeParameter.VERSION, version)
            .with_value(ChallengeParameter.RETURN_URL, return_url)
        )

    def with_value(self, parameter: ChallengeParameter, value: Any) -> ChallengeBuilder:
        """Set a fixed value for a parameter.

        Raises:
            TypeError: If ``parameter`` is not a ``ChallengeParameter``
            InvalidParameterValue: If the parameter's validator rejects the value
        """
        _require_parameter(parameter)
        if value is None:
            raise InvalidParameterValue(parameter, value, "value must not be None")
        parameter.validate(value)

        self._producers[parameter] = _fixed(value)
        self._dynamic.discard(parameter)
        return self

    def with_dynamic_value(
        self, parameter: ChallengeParameter, producer: ValueProducer
    ) -> ChallengeBuilder:
        """Compute a parameter's value from each inbound request.

        Validation of the produced value is deferred until a challenge is
        created.
        """
        _require_parameter(parameter)
        if not callable(producer):
            raise TypeError(f"Producer for {parameter} is not callable: {producer!r}")

        self._producers[parameter] = producer
        self._dynamic.add(parameter)
        return self

    def build(self) -> DefaultChallengeCreator:
        """Build the challenge creator.

        Raises:
            MissingRequiredParameter: If a required parameter has no value
        """
        creator = DefaultChallengeCreator(self._producers, frozenset(self._dynamic))
        logger.debug(
            f"Built challenge creator with parameters "
            f"{', '.join(str(p) for p in creator.parameters)}"
        )
        return creator
