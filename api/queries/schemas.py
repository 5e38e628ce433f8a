"""
Pydantic schemas for the endpoint configuration document.

Field names are matched case-insensitively (`returnType`, `ReturnType`,
`returntype` and `return_type` all land on the same field). Parameter names,
which are the keys of `parameters`, are kept verbatim.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ReturnType(str, Enum):
    SINGLE = "Single"
    ARRAY = "Array"


class _ConfigModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _match_field_names(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        names: dict[str, str] = {}
        for field_name in cls.model_fields:
            names[field_name.lower()] = field_name
            names[field_name.replace("_", "").lower()] = field_name
        return {names.get(str(key).lower(), key): value for key, value in data.items()}


class ParameterSpec(_ConfigModel):
    type: str = Field(..., min_length=1)
    optional: bool = False


class EndpointDefinition(_ConfigModel):
    route: str = Field(..., min_length=1)
    method: str = Field(..., min_length=1)
    query: str = Field(..., min_length=1)
    parameters: dict[str, ParameterSpec] = Field(default_factory=dict)
    return_type: ReturnType

    @field_validator("route")
    @classmethod
    def _route_is_absolute(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("route must start with '/'")
        return value

    @field_validator("method")
    @classmethod
    def _normalize_method(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("return_type", mode="before")
    @classmethod
    def _match_return_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            for member in ReturnType:
                if member.value.lower() == value.strip().lower():
                    return member
        return value

    @field_validator("parameters", mode="before")
    @classmethod
    def _null_parameters(cls, value: Any) -> Any:
        return {} if value is None else value


class EndpointsConfig(_ConfigModel):
    endpoints: list[EndpointDefinition]
