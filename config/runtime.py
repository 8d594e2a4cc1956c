"""Runtime configuration - environment-driven settings.

Reads environment variables and applies defaults for production runtime.
"""

import os
from pathlib import Path

from .base import (
    DEFAULT_ARTIFACT_BUCKET,
    DEFAULT_ARTIFACT_LINK_TTL_SECONDS,
    DEFAULT_ARTIFACT_ROOT,
    DEFAULT_DB_URI,
    DEFAULT_JWT_ACCESS_TOKEN_EXPIRES_MINUTES,
    DEFAULT_JWT_SECRET_KEY,
    DEFAULT_REOPEN_DELETES_ARTIFACTS,
)
from .schema import RuntimeConfig


def _env_flag(name, default=False):
    """Read a boolean environment variable."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


def _env_int(name, default):
    """Read an integer environment variable."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _resolve_db_uri(db_env: str | None, default_uri: str) -> str:
    """Resolve DB URI from env value or fallback to default."""
    if not db_env:
        return default_uri
    db_env = db_env.strip()
    if "://" not in db_env:
        return f"sqlite:///{Path(db_env).resolve().as_posix()}"
    if db_env.startswith("postgres://"):
        return db_env.replace("postgres://", "postgresql+psycopg://", 1)
    if db_env.startswith("postgresql://"):
        return db_env.replace("postgresql://", "postgresql+psycopg://", 1)
    return db_env


def get_runtime_config(flask_config_name="default") -> RuntimeConfig:
    """
    Build runtime configuration from environment variables.

    Args:
        flask_config_name: Flask config profile name (default/production/testing)

    Returns:
        RuntimeConfig instance
    """
    db_env = os.environ.get("DATABASE_URL")
    if flask_config_name == "production" and not db_env:
        raise RuntimeError("DATABASE_URL is required in production.")

    return RuntimeConfig(
        db_uri=_resolve_db_uri(db_env, DEFAULT_DB_URI),
        jwt_secret_key=os.environ.get("JWT_SECRET_KEY", DEFAULT_JWT_SECRET_KEY),
        jwt_cookie_secure=_env_flag(
            "JWT_COOKIE_SECURE", default=(flask_config_name == "production")
        ),
        jwt_access_token_expires_minutes=_env_int(
            "JWT_ACCESS_TOKEN_EXPIRES_MINUTES",
            default=DEFAULT_JWT_ACCESS_TOKEN_EXPIRES_MINUTES,
        ),
        artifact_root=Path(
            os.environ.get("ARTIFACT_ROOT", str(DEFAULT_ARTIFACT_ROOT))
        ),
        artifact_bucket=os.environ.get("ARTIFACT_BUCKET", DEFAULT_ARTIFACT_BUCKET),
        artifact_link_ttl_seconds=_env_int(
            "ARTIFACT_LINK_TTL_SECONDS", default=DEFAULT_ARTIFACT_LINK_TTL_SECONDS
        ),
        reopen_deletes_artifacts=_env_flag(
            "REOPEN_DELETES_ARTIFACTS", default=DEFAULT_REOPEN_DELETES_ARTIFACTS
        ),
    )


__all__ = ["get_runtime_config", "_env_flag", "_env_int", "_resolve_db_uri"]
