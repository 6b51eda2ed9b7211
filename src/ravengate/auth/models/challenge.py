"""Challenge parameter registry and the concrete challenge sent to the WLS.

The registry is closed: ``ChallengeParameter`` enumerates every parameter a
challenge may carry, whether it is required, and how its value is checked.

## Parameters

| Member          | Wire name | Required | Value   |
|-----------------|-----------|----------|---------|
| VERSION         | ``ver``     | yes      | integer |
| RETURN_URL      | ``url``     | yes      | string  |
| DESCRIPTION     | ``desc``    | no       | string  |
| AUTH_TYPES      | ``aauth``   | no       | string  |
| INTERACTIVE     | ``iact``    | no       | string  |
| MESSAGE         | ``msg``     | no       | string  |
| EXTRA_PARAMS    | ``params``  | no       | string  |
| FAILURE_MODE    | ``fail``    | no       | string  |

Enumeration order is the order parameters appear on the wire.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from ravengate.auth.models.errors import InvalidParameterValue, MissingRequiredParameter
from ravengate.auth.primitives.query import encode_query

ParameterValidator = Callable[[Any], None]


def require_int(value: Any) -> None:
    # bool is an int subclass but never a valid protocol version
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected an integer, got: {value!r}")


def require_str(value: Any) -> None:
    if not isinstance(value, str):
        raise ValueError(f"Expected a string, got: {value!r}")


class ChallengeParameter(Enum):
    """A parameter of the challenge sent to the WLS."""

    VERSION = ("ver", True, require_int)
    RETURN_URL = ("url", True, require_str)
    DESCRIPTION = ("desc", False, require_str)
    AUTH_TYPES = ("aauth", False, require_str)
    INTERACTIVE = ("iact", False, require_str)
    MESSAGE = ("msg", False, require_str)
    EXTRA_PARAMS = ("params", False, require_str)
    FAILURE_MODE = ("fail", False, require_str)

    def __init__(
        self,
        wire_name: str,
        is_required: bool,
        validator: ParameterValidator | None,
    ):
        self.wire_name = wire_name
        self.is_required = is_required
        self._validator = validator

    def __str__(self) -> str:
        return self.wire_name

    def validate(self, value: Any) -> None:
        """Check a value against this parameter's validator.

        Raises:
            InvalidParameterValue: If the validator rejects the value
        """
        if self._validator is None:
            return
        try:
            self._validator(value)
        except ValueError as e:
            raise InvalidParameterValue(self, value, str(e)) from e

    @classmethod
    def from_wire_name(cls, wire_name: str) -> ChallengeParameter:
        for parameter in cls:
            if parameter.wire_name == wire_name:
                return parameter
        raise KeyError(f"Unknown challenge parameter: {wire_name!r}")


REQUIRED_PARAMETERS: frozenset[ChallengeParameter] = frozenset(
    p for p in ChallengeParameter if p.is_required
)


def required_parameters() -> frozenset[ChallengeParameter]:
    """Return the parameters every challenge must carry."""
    return REQUIRED_PARAMETERS


def validate(parameter: ChallengeParameter, value: Any) -> None:
    """Validate a value for a parameter.

    Raises:
        InvalidParameterValue: If the parameter's validator rejects the value
    """
    parameter.validate(value)


@dataclass(frozen=True)
class ChallengeDescriptor:
    """The concrete challenge sent to the WLS for one request.

    Immutable. Every required parameter is present and every value has
    passed its parameter's validator.
    """

    values: Mapping[ChallengeParameter, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        values = dict(self.values)

        missing = REQUIRED_PARAMETERS.difference(values)
        if missing:
            raise MissingRequiredParameter(frozenset(missing))

        for parameter, value in values.items():
            if not isinstance(parameter, ChallengeParameter):
                raise TypeError(f"Not a challenge parameter: {parameter!r}")
            parameter.validate(value)

        ordered = {p: values[p] for p in ChallengeParameter if p in values}
        object.__setattr__(self, "values", MappingProxyType(ordered))

    def get(self, parameter: ChallengeParameter, default: Any = None) -> Any:
        return self.values.get(parameter, default)

    def __getitem__(self, parameter: ChallengeParameter) -> Any:
        return self.values[parameter]

    def __contains__(self, parameter: object) -> bool:
        return parameter in self.values

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChallengeDescriptor):
            return NotImplemented
        return dict(self.values) == dict(other.values)

    def __hash__(self) -> int:
        return hash(tuple((p, str(v)) for p, v in self.values.items()))

    def to_wire_params(self) -> dict[str, str]:
        """Return the challenge as wire name to string value, in registry order."""
        return {p.wire_name: str(v) for p, v in self.values.items()}

    def to_query_string(self) -> str:
        """Serialize the challenge as a query string.

        Parameters appear in registry order; names and values are
        percent-encoded with space as ``%20``.
        """
        return encode_query(self.to_wire_params().items())

    def build_login_url(self, auth_url: str) -> str:
        """Build the WLS login URL by replacing the query of ``auth_url``."""
        base = auth_url.split("#", 1)[0].split("?", 1)[0]
        return f"{base}?{self.to_query_string()}"
