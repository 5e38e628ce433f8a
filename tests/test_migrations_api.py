from __future__ import annotations

import sqlite3
from dataclasses import replace
from pathlib import Path

from core.settings import Settings


def _db_path(settings: Settings) -> Path:
    return Path(settings.database_url[len("sqlite:///"):])


def test_migrate_applies_shipped_migrations(client) -> None:
    response = client.post("/migrate")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Migrations applied successfully"
    assert body["appliedMigrations"] == ["001_create_customers.sql", "002_seed_customers.sql"]


def test_migrate_is_repeatable(client) -> None:
    assert client.post("/migrate").status_code == 200
    assert client.post("/migrate").status_code == 200

    assert len(client.get("/customers/all").json()) == 5


def test_migrate_with_empty_directory(settings: Settings, make_client, tmp_path: Path) -> None:
    empty = tmp_path / "empty-migrations"
    empty.mkdir()
    (empty / "README.txt").write_text("not a migration", encoding="utf-8")
    client = make_client(replace(settings, migrations_path=empty))

    response = client.post("/migrate")

    assert response.status_code == 200
    assert response.json() == {"message": "No migration files found", "appliedMigrations": []}


def test_migrate_applies_files_in_filename_order(settings: Settings, make_client, tmp_path: Path) -> None:
    directory = tmp_path / "migrations"
    directory.mkdir()
    (directory / "010_third.sql").write_text("INSERT INTO steps (name) VALUES ('third');", encoding="utf-8")
    (directory / "001_first.sql").write_text(
        "CREATE TABLE steps (id INTEGER PRIMARY KEY AUTOINCREMENT, name TEXT);",
        encoding="utf-8",
    )
    (directory / "002_second.sql").write_text(
        "INSERT INTO steps (name) VALUES ('second-a');\nINSERT INTO steps (name) VALUES ('second-b');",
        encoding="utf-8",
    )
    (directory / "notes.md").write_text("ignored", encoding="utf-8")
    client = make_client(replace(settings, migrations_path=directory))

    response = client.post("/migrate")

    assert response.status_code == 200
    assert response.json()["appliedMigrations"] == ["001_first.sql", "002_second.sql", "010_third.sql"]

    conn = sqlite3.connect(_db_path(settings))
    try:
        names = [row[0] for row in conn.execute("SELECT name FROM steps ORDER BY id")]
    finally:
        conn.close()
    assert names == ["second-a", "second-b", "third"]


def test_migrate_with_missing_directory(settings: Settings, make_client, tmp_path: Path) -> None:
    missing = tmp_path / "does-not-exist"
    client = make_client(replace(settings, migrations_path=missing))

    response = client.post("/migrate")

    assert response.status_code == 500
    assert response.json()["detail"] == f"Migrations directory not found: {missing}"


def test_migrate_stops_at_failing_file(settings: Settings, make_client, tmp_path: Path) -> None:
    directory = tmp_path / "migrations"
    directory.mkdir()
    (directory / "001_ok.sql").write_text("CREATE TABLE ok_table (id INTEGER);", encoding="utf-8")
    (directory / "002_broken.sql").write_text("CREATE TABL broken (id INTEGER);", encoding="utf-8")
    (directory / "003_never.sql").write_text("CREATE TABLE never_table (id INTEGER);", encoding="utf-8")
    client = make_client(replace(settings, migrations_path=directory))

    response = client.post("/migrate")

    assert response.status_code == 500
    assert response.json()["detail"] == "Migration failed: 002_broken.sql"

    conn = sqlite3.connect(_db_path(settings))
    try:
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    finally:
        conn.close()
    assert "ok_table" in tables
    assert "never_table" not in tables
