# backend/shopkeep/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta

from flask import current_app


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration, built once at startup and handed to create_app().

    Nothing else in the package reads the environment; request code reaches
    these values through current_settings().
    """
    database_url: str = "sqlite:///shopkeep.sqlite3"
    secret_key: str = "dev-secret-key-change-me"
    log_level: str = "INFO"
    # Optional rotating log file in addition to stderr
    log_file: str | None = None

    # Session token lifetimes
    session_absolute_timeout: timedelta = timedelta(hours=24)
    session_idle_timeout: timedelta = timedelta(hours=2)

    # bcrypt cost factor; tests lower it
    bcrypt_rounds: int = 12

    # Create tables on startup when no migration has been run (dev/test)
    auto_create_schema: bool = False

    host: str = "0.0.0.0"
    port: int = 3002

    cors_origins: frozenset[str] = field(default_factory=lambda: frozenset({
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3001",
    }))

    testing: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.environ.get("CORS_ORIGINS")
        kwargs = {}
        if origins:
            kwargs["cors_origins"] = frozenset(o.strip() for o in origins.split(",") if o.strip())

        return cls(
            database_url=os.environ.get("DATABASE_URL", cls.database_url),
            secret_key=os.environ.get("SECRET_KEY", cls.secret_key),
            log_level=os.environ.get("LOG_LEVEL", cls.log_level).upper(),
            log_file=os.environ.get("LOG_FILE") or None,
            session_absolute_timeout=timedelta(
                hours=int(os.environ.get("SESSION_ABSOLUTE_HOURS", "24"))
            ),
            session_idle_timeout=timedelta(
                minutes=int(os.environ.get("SESSION_IDLE_MINUTES", "120"))
            ),
            auto_create_schema=_env_bool("AUTO_CREATE_SCHEMA", False),
            host=os.environ.get("HOST", cls.host),
            port=int(os.environ.get("PORT", str(cls.port))),
            **kwargs,
        )

    def flask_config(self) -> dict:
        """Keys Flask and its extensions read from app.config."""
        return {
            "SECRET_KEY": self.secret_key,
            "SQLALCHEMY_DATABASE_URI": self.database_url,
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "TESTING": self.testing,
        }


SETTINGS_EXTENSION_KEY = "shopkeep.settings"


def current_settings() -> Settings:
    """Settings of the running app (only valid inside an app context)."""
    return current_app.extensions[SETTINGS_EXTENSION_KEY]
