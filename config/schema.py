"""Configuration schema dataclasses."""

from dataclasses import dataclass, field
from pathlib import Path

from .base import (
    DEFAULT_ARTIFACT_BUCKET,
    DEFAULT_ARTIFACT_LINK_TTL_SECONDS,
    DEFAULT_JWT_ACCESS_TOKEN_EXPIRES_MINUTES,
    DEFAULT_JWT_SECRET_KEY,
    DEFAULT_SECRET_KEY,
)


@dataclass
class RuntimeConfig:
    """Runtime configuration - environment-driven settings."""

    # Database
    db_uri: str

    # JWT
    jwt_secret_key: str = DEFAULT_JWT_SECRET_KEY
    jwt_cookie_secure: bool = False
    jwt_access_token_expires_minutes: int = DEFAULT_JWT_ACCESS_TOKEN_EXPIRES_MINUTES

    # Artifacts (generated question paper / answer key PDFs)
    artifact_root: Path = field(default_factory=lambda: Path("data/artifacts"))
    artifact_bucket: str = DEFAULT_ARTIFACT_BUCKET
    artifact_link_ttl_seconds: int = DEFAULT_ARTIFACT_LINK_TTL_SECONDS
    reopen_deletes_artifacts: bool = True

    def __post_init__(self):
        """Validate after initialization."""
        if self.jwt_access_token_expires_minutes < 5:
            raise ValueError("JWT_ACCESS_TOKEN_EXPIRES_MINUTES must be >= 5")
        if self.artifact_link_ttl_seconds <= 0:
            raise ValueError("ARTIFACT_LINK_TTL_SECONDS must be > 0")
        if not self.artifact_bucket:
            raise ValueError("ARTIFACT_BUCKET must not be empty")
        if not isinstance(self.artifact_root, Path):
            self.artifact_root = Path(self.artifact_root)


@dataclass
class AppConfig:
    """Application configuration."""

    runtime: RuntimeConfig

    # Flask-specific settings
    secret_key: str = DEFAULT_SECRET_KEY

    @property
    def uses_default_secrets(self) -> bool:
        return (
            not self.secret_key
            or self.secret_key == DEFAULT_SECRET_KEY
            or not self.runtime.jwt_secret_key
            or self.runtime.jwt_secret_key == DEFAULT_JWT_SECRET_KEY
        )


__all__ = ["RuntimeConfig", "AppConfig"]
