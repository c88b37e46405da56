"""
Centralized settings loaded from environment variables (+ optional .env).

Every variable is prefixed with TEAMTRACK_, e.g. TEAMTRACK_DATABASE_URL.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TEAMTRACK"

# Resolve project root: go up from src/core/ to project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    log_dir: Path

    # ---- Database ----
    database_url: str

    # ---- Auth ----
    secret_key: str
    jwt_algorithm: str
    access_token_expire_hours: int
    bcrypt_rounds: int

    # ---- HTTP ----
    cors_origins: list[str]

    @staticmethod
    def from_env() -> "Settings":
        log_dir = _env_path(_k("LOG_DIR"), PROJECT_ROOT / ".local" / "logs")
        database_url = _env(
            _k("DATABASE_URL"), f"sqlite:///{PROJECT_ROOT / 'teamtrack.db'}"
        )
        return Settings(
            app_name=_env(_k("APP_NAME"), "TeamTrack"),
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
            log_dir=log_dir,
            database_url=database_url,
            secret_key=_env(
                _k("SECRET_KEY"), "teamtrack-secret-key-change-in-production"
            ),
            jwt_algorithm=_env(_k("JWT_ALGORITHM"), "HS256"),
            access_token_expire_hours=_env_int(_k("ACCESS_TOKEN_EXPIRE_HOURS"), 72),
            bcrypt_rounds=_env_int(_k("BCRYPT_ROUNDS"), 12),
            cors_origins=_env_list(_k("CORS_ORIGINS"), ["*"]),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
