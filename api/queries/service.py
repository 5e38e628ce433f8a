"""
Result shaping for configured endpoints.

- Single: first row as a JSON object, or 404 with an empty body
- Array:  every row, in database order, as a JSON array

Binary columns are sent as base64 text. Decimal columns stay JSON numbers
unless a float would change their value, in which case the exact digits are
sent as a string.
"""

from __future__ import annotations

import base64
from decimal import Decimal
from typing import Any

from fastapi import Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from .schemas import ReturnType


def _encode_bytes(value: bytes) -> str:
    return base64.b64encode(value).decode("ascii")


def _encode_decimal(value: Decimal) -> int | float | str:
    if not value.is_finite():
        return str(value)
    if value == value.to_integral_value():
        return int(value)
    as_float = float(value)
    if Decimal(repr(as_float)) == value:
        return as_float
    return str(value)


_ENCODERS = {
    bytes: _encode_bytes,
    bytearray: _encode_bytes,
    memoryview: lambda value: _encode_bytes(value.tobytes()),
    Decimal: _encode_decimal,
}


def encode_rows(rows: Any) -> Any:
    return jsonable_encoder(rows, custom_encoder=_ENCODERS)


def shape_result(return_type: ReturnType, rows: list[dict]) -> Response:
    if return_type is ReturnType.SINGLE:
        if not rows:
            return Response(status_code=status.HTTP_404_NOT_FOUND)
        return JSONResponse(content=encode_rows(rows[0]))

    return JSONResponse(content=encode_rows(rows))
