"""
Query execution for configured endpoints (raw SQL).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from core import db


async def run_query(database: db.Database, sql: str, parameters: Mapping[str, Any]) -> list[dict]:
    """
    Run one configured query on a freshly borrowed connection.

    Every parameter is bound under its `$name` placeholder; None binds SQL NULL.
    """
    async with database.connection() as conn:
        return await conn.fetch_all(sql, parameters)
