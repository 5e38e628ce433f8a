"""
Process settings, read from environment variables.

Relative paths are resolved against the content root (the repository root by
default), so the app behaves the same no matter which directory uvicorn is
started from.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_CONTENT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENDPOINTS_CONFIG_PATH = "config/database-endpoints.json"
DEFAULT_MIGRATIONS_PATH = "db/migrations"

# Local dev server of the manual test console.
DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return raw not in {"0", "false", "False", "no"}


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _resolve(root: Path, raw: str) -> Path:
    path = Path(raw)
    return path if path.is_absolute() else root / path


@dataclass(frozen=True)
class Settings:
    content_root: Path
    database_url: str
    endpoints_config_path: Path
    migrations_path: Path
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    strict_endpoint_config: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> Settings:
        """
        Build settings from the environment.

        - APP_CONTENT_ROOT: base directory for relative paths
        - DATABASE_URL: sqlite:///path/to/file.db or postgresql://...
        - DATABASE_ENDPOINTS_CONFIG_PATH: endpoint definitions (JSON)
        - MIGRATIONS_PATH: directory holding *.sql migrations
        - CORS_ALLOW_ORIGINS: comma-separated origins
        - STRICT_ENDPOINT_CONFIG: "1" to reject config defects at startup
        - LOG_LEVEL: root log level
        """
        root = Path(_env_str("APP_CONTENT_ROOT", str(DEFAULT_CONTENT_ROOT)))
        return cls(
            content_root=root,
            # Checked when the database is opened, not here.
            database_url=os.environ.get("DATABASE_URL", "").strip(),
            endpoints_config_path=_resolve(
                root,
                _env_str("DATABASE_ENDPOINTS_CONFIG_PATH", DEFAULT_ENDPOINTS_CONFIG_PATH),
            ),
            migrations_path=_resolve(root, _env_str("MIGRATIONS_PATH", DEFAULT_MIGRATIONS_PATH)),
            cors_origins=_env_list("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS),
            strict_endpoint_config=_env_bool("STRICT_ENDPOINT_CONFIG", False),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        )
