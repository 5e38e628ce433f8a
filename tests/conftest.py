from __future__ import annotations

import json
from contextlib import ExitStack
from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from core.settings import Settings
from main import create_app

ROOT_DIR = Path(__file__).resolve().parents[1]


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        content_root=ROOT_DIR,
        database_url=f"sqlite:///{tmp_path / 'data' / 'test.db'}",
        endpoints_config_path=ROOT_DIR / "config" / "database-endpoints.json",
        migrations_path=ROOT_DIR / "db" / "migrations",
        cors_origins=(),
        log_level="WARNING",
    )


@pytest.fixture
def make_client():
    with ExitStack() as stack:

        def _make(settings: Settings) -> TestClient:
            return stack.enter_context(TestClient(create_app(settings)))

        yield _make


@pytest.fixture
def client(settings: Settings, make_client) -> TestClient:
    return make_client(settings)


@pytest.fixture
def migrated_client(client: TestClient) -> TestClient:
    response = client.post("/migrate")
    assert response.status_code == 200
    return client


@pytest.fixture
def write_config(tmp_path: Path):
    def _write(endpoints: list[dict], name: str = "endpoints.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps({"endpoints": endpoints}), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def client_for_config(settings: Settings, make_client, write_config):
    """
    Build a client whose endpoints come from an ad-hoc config, on the
    migrated sample database.
    """

    def _make(endpoints: list[dict]) -> TestClient:
        client = make_client(replace(settings, endpoints_config_path=write_config(endpoints)))
        assert client.post("/migrate").status_code == 200
        return client

    return _make
