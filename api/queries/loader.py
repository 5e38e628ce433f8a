"""
Endpoint configuration loading.

The configuration is a JSON document with one top-level `endpoints` array:

    {
      "endpoints": [
        {
          "route": "/customers/by-id",
          "method": "GET",
          "query": "SELECT * FROM Customers WHERE Id = $id",
          "parameters": {"id": {"type": "int", "optional": false}},
          "returnType": "Single"
        }
      ]
    }

It is read once when the app is built; the result is an immutable tuple.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from . import params
from .schemas import EndpointDefinition, EndpointsConfig

logger = logging.getLogger(__name__)

SUPPORTED_METHODS = frozenset({"GET"})


class EndpointConfigError(RuntimeError):
    pass


def parse_endpoint_definitions(text: str) -> tuple[EndpointDefinition, ...]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EndpointConfigError(f"Invalid configuration format: {exc}") from exc

    try:
        config = EndpointsConfig.model_validate(data)
    except ValidationError as exc:
        raise EndpointConfigError(f"Invalid configuration format: {exc}") from exc

    return tuple(config.endpoints)


def config_problems(definition: EndpointDefinition) -> list[str]:
    """
    Return human-readable defects of one definition (empty when it is fine).
    """
    problems: list[str] = []
    if definition.method not in SUPPORTED_METHODS:
        problems.append(f"method '{definition.method}' is not served")
    for name, spec in definition.parameters.items():
        if not params.is_supported_type(spec.type):
            problems.append(f"parameter '{name}' has unsupported type '{spec.type}'")
    return problems


def load_endpoint_definitions(path: Path, *, strict: bool = False) -> tuple[EndpointDefinition, ...]:
    """
    Read and validate the endpoint configuration file.

    Non-GET methods and unsupported parameter types are logged and left in
    place (they surface as "no route" and HTTP 500 respectively). With
    `strict=True` they are rejected here instead.
    """
    if not path.is_file():
        raise EndpointConfigError(f"Configuration file not found: {path}")

    definitions = parse_endpoint_definitions(path.read_text(encoding="utf-8"))

    for definition in definitions:
        for problem in config_problems(definition):
            if strict:
                raise EndpointConfigError(f"Endpoint {definition.route}: {problem}")
            logger.warning("endpoint_config_warning route=%s problem=%s", definition.route, problem)

    return definitions
