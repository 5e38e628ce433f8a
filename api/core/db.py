"""
Async database access helpers (raw SQL).

`Database` owns the process-wide connection resources. FastAPI opens it on
startup and closes it on shutdown (see `api/main.py`); request handlers borrow
one connection per request through `Database.connection()`.

Backends, picked from the DATABASE_URL scheme:
- sqlite:///path/to/file.db  -> stdlib sqlite3, one connection per request,
  driven from a worker thread
- postgresql://...            -> asyncpg pool

SQL parameter style:
- queries use named placeholders: $country, $minRevenue, ...
- sqlite3 understands those natively
- asyncpg only knows positional $1, $2, ...; named placeholders are compiled
  before the query is sent
"""

from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from decimal import Decimal
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import asyncpg
from fastapi import Request

logger = logging.getLogger(__name__)

SQLITE_PREFIX = "sqlite:///"
POSTGRES_SCHEMES = ("postgres", "postgresql")

# Single-quoted literals are matched first so placeholders inside them are left alone.
_PLACEHOLDER_PATTERN = re.compile(r"'(?:''|[^'])*'|\$([A-Za-z_][A-Za-z0-9_]*)(?![A-Za-z0-9_$])")


class DatabaseError(RuntimeError):
    pass


def _sanitize_database_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def compile_named_placeholders(sql: str, parameters: Mapping[str, Any]) -> tuple[str, list[Any]]:
    """
    Rewrite `$name` placeholders to asyncpg's `$1..$n`.

    A name used several times maps to the same position. Raises DatabaseError
    when the SQL references a name that has no bound value.
    """
    positions: dict[str, int] = {}
    args: list[Any] = []

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name is None:
            return match.group(0)
        if name not in parameters:
            raise DatabaseError(f"No value bound for placeholder ${name}.")
        if name not in positions:
            args.append(parameters[name])
            positions[name] = len(args)
        return f"${positions[name]}"

    return _PLACEHOLDER_PATTERN.sub(_replace, sql), args


_SQLITE_INTEGER_MIN = -(2**63)
_SQLITE_INTEGER_MAX = 2**63 - 1


def _sqlite_value(value: Any) -> Any:
    # SQLite has no exact decimal storage class, and INTEGER is signed 64-bit.
    if isinstance(value, Decimal):
        if value == value.to_integral_value() and _SQLITE_INTEGER_MIN <= value <= _SQLITE_INTEGER_MAX:
            return int(value)
        return float(value)
    return value


class SqliteConnection:
    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def _fetch_sync(self, sql: str, parameters: dict[str, Any]) -> list[dict[str, Any]]:
        cursor = self._conn.execute(sql, parameters)
        try:
            columns = [column[0] for column in cursor.description or ()]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
        finally:
            cursor.close()

    async def fetch_all(self, sql: str, parameters: Mapping[str, Any]) -> list[dict[str, Any]]:
        values = {name: _sqlite_value(value) for name, value in parameters.items()}
        return await asyncio.to_thread(self._fetch_sync, sql, values)

    async def execute_script(self, sql: str) -> None:
        await asyncio.to_thread(self._conn.executescript, sql)


class PostgresConnection:
    def __init__(self, conn: asyncpg.Connection) -> None:
        self._conn = conn

    async def fetch_all(self, sql: str, parameters: Mapping[str, Any]) -> list[dict[str, Any]]:
        compiled, args = compile_named_placeholders(sql, parameters)
        rows = await self._conn.fetch(compiled, *args)
        return [dict(row) for row in rows]

    async def execute_script(self, sql: str) -> None:
        # Without arguments asyncpg uses the simple protocol, which allows several statements.
        await self._conn.execute(sql)


Connection = SqliteConnection | PostgresConnection


class Database:
    def __init__(self, url: str, *, base_dir: Path | None = None) -> None:
        self.url = (url or "").strip()
        self.base_dir = base_dir or Path.cwd()
        self._pool: asyncpg.Pool | None = None

    @property
    def dialect(self) -> str:
        if not self.url:
            raise DatabaseError("DATABASE_URL is not set.")
        if self.url.startswith(SQLITE_PREFIX):
            return "sqlite"
        if urlsplit(self.url).scheme in POSTGRES_SCHEMES:
            return "postgres"
        raise DatabaseError(f"Unsupported DATABASE_URL scheme: {urlsplit(self.url).scheme or self.url}")

    def sqlite_path(self) -> Path:
        path = Path(self.url[len(SQLITE_PREFIX):])
        return path if path.is_absolute() else self.base_dir / path

    async def open(self) -> None:
        if self.dialect == "sqlite":
            path = self.sqlite_path()
            path.parent.mkdir(parents=True, exist_ok=True)
            logger.info("database_opened dialect=sqlite path=%s", path)
            return None

        if self._pool is not None:
            return None
        self._pool = await asyncpg.create_pool(
            dsn=_sanitize_database_url(self.url),
            min_size=1,
            max_size=5,
            command_timeout=30,
        )
        logger.info("database_opened dialect=postgres")

    async def close(self) -> None:
        if self._pool is None:
            return None
        await self._pool.close()
        self._pool = None
        logger.info("database_closed dialect=postgres")

    def pool(self) -> asyncpg.Pool:
        if self._pool is None:
            raise DatabaseError("DB pool is not initialized. Call open() on startup.")
        return self._pool

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[Connection]:
        """
        Borrow a connection for the duration of the block.

        The connection is closed (sqlite) or released to the pool (postgres)
        on every exit path.
        """
        if self.dialect == "sqlite":
            conn = await asyncio.to_thread(
                sqlite3.connect,
                str(self.sqlite_path()),
                check_same_thread=False,
            )
            try:
                yield SqliteConnection(conn)
            finally:
                await asyncio.to_thread(conn.close)
            return

        async with self.pool().acquire() as conn:
            yield PostgresConnection(conn)


def get_database(request: Request) -> Database:
    """
    FastAPI dependency returning the app's Database.
    """
    return request.app.state.database
