"""
Migration runner.

Executes every `*.sql` file of the migrations directory, in ascending
filename order, as one script each. There is no bookkeeping table: the
shipped migrations are written to be re-runnable.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from core import db

logger = logging.getLogger(__name__)


class MigrationsDirectoryNotFound(FileNotFoundError):
    pass


class MigrationFailed(RuntimeError):
    def __init__(self, filename: str) -> None:
        super().__init__(f"Migration failed: {filename}")
        self.filename = filename


@dataclass(frozen=True)
class MigrationRun:
    directory: Path
    applied: list[str]


def discover_migration_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        raise MigrationsDirectoryNotFound(f"Migrations directory not found: {directory}")
    return sorted(
        (path for path in directory.glob("*.sql") if path.is_file()),
        key=lambda path: path.name,
    )


async def apply_migrations(database: db.Database, directory: Path) -> MigrationRun:
    """
    Apply all migration files found in `directory`.

    Stops at the first file that fails and raises MigrationFailed; files
    before it stay applied.
    """
    files = discover_migration_files(directory)
    applied: list[str] = []
    if not files:
        return MigrationRun(directory=directory, applied=applied)

    async with database.connection() as conn:
        for path in files:
            sql = path.read_text(encoding="utf-8")
            try:
                await conn.execute_script(sql)
            except Exception as exc:
                logger.exception("migration_failed file=%s", path.name)
                raise MigrationFailed(path.name) from exc
            applied.append(path.name)
            logger.info("migration_applied file=%s", path.name)

    return MigrationRun(directory=directory, applied=applied)
