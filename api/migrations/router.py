"""
Migration API endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request

from core import db

from . import service

router = APIRouter()


@router.post("/migrate")
async def migrate(
    request: Request,
    database: db.Database = Depends(db.get_database),
) -> dict:
    """
    Apply every *.sql file of the configured migrations directory.
    """
    directory = request.app.state.settings.migrations_path
    try:
        run = await service.apply_migrations(database, directory)
    except service.MigrationsDirectoryNotFound as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except service.MigrationFailed as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    if not run.applied:
        return {"message": "No migration files found", "appliedMigrations": []}
    return {
        "message": "Migrations applied successfully",
        "appliedMigrations": run.applied,
    }
