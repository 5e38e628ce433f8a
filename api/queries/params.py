"""
Request parameter binding.

Turns raw query-string values into typed SQL parameters according to the
endpoint's declared parameter specs. Nothing here touches FastAPI or the
database, so it can be exercised directly in unit tests.

Supported declared types:
- int      -> int (ASCII digits, optional sign, signed 64-bit range)
- decimal  -> decimal.Decimal (exact; never float)
- string   -> str, unchanged
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping, Sequence
from decimal import Decimal
from typing import Any

from .schemas import ParameterSpec

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_DECIMAL_PATTERN = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")

# ASCII whitespace only.
_WHITESPACE = " \t\n\r\f\v"


class ParameterBindingError(ValueError):
    """
    A request parameter is missing or malformed. Safe to show to the client.
    """


class MissingRequiredParameter(ParameterBindingError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Required parameter '{name}' is missing")
        self.name = name


class InvalidParameterFormat(ParameterBindingError):
    def __init__(self, name: str, declared_type: str) -> None:
        super().__init__(f"Parameter '{name}' has invalid format for type '{declared_type}'")
        self.name = name
        self.declared_type = declared_type


# A configuration defect, not a client error.
class UnsupportedParameterType(RuntimeError):
    def __init__(self, declared_type: str) -> None:
        super().__init__(f"Unsupported parameter type: {declared_type}")
        self.declared_type = declared_type


def _parse_int(raw: str) -> int | None:
    text = raw.strip(_WHITESPACE)
    if not _INT_PATTERN.fullmatch(text):
        return None
    value = int(text)
    if not INT64_MIN <= value <= INT64_MAX:
        return None
    return value


def _parse_decimal(raw: str) -> Decimal | None:
    text = raw.strip(_WHITESPACE)
    if not _DECIMAL_PATTERN.fullmatch(text):
        return None
    return Decimal(text)


def _parse_string(raw: str) -> str:
    return raw


_PARSERS: dict[str, Callable[[str], Any]] = {
    "int": _parse_int,
    "decimal": _parse_decimal,
    "string": _parse_string,
}

SUPPORTED_TYPES = frozenset(_PARSERS)


def is_supported_type(declared_type: str) -> bool:
    return declared_type.lower() in SUPPORTED_TYPES


def coerce_value(name: str, raw: str, declared_type: str) -> int | Decimal | str:
    """
    Convert one raw value to its declared type.

    Raises InvalidParameterFormat when the value does not parse and
    UnsupportedParameterType when the declared type is unknown.
    """
    parser = _PARSERS.get(declared_type.lower())
    if parser is None:
        raise UnsupportedParameterType(declared_type)
    value = parser(raw)
    if value is None:
        raise InvalidParameterFormat(name, declared_type)
    return value


def _first_value(values: str | Sequence[str] | None) -> str | None:
    if values is None or isinstance(values, str):
        return values
    return values[0] if values else None


def bind_parameters(
    specs: Mapping[str, ParameterSpec] | None,
    query_params: Mapping[str, str | Sequence[str]],
) -> dict[str, Any]:
    """
    Validate and convert request parameters against their specs.

    Returns one entry per declared parameter, in declaration order; optional
    parameters that were not supplied (or supplied empty) map to None. Only the
    first value of a repeated parameter is used.

    The first failure is raised immediately, so callers never see a partial
    mapping.
    """
    parameters: dict[str, Any] = {}
    for name, spec in (specs or {}).items():
        raw = _first_value(query_params.get(name))
        if not raw:
            if not spec.optional:
                raise MissingRequiredParameter(name)
            parameters[name] = None
            continue
        parameters[name] = coerce_value(name, raw, spec.type)
    return parameters
