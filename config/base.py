"""Default values shared by the configuration builders."""

from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]

DEFAULT_SECRET_KEY = "dev-secret-key-change-in-production"
DEFAULT_JWT_SECRET_KEY = "dev-jwt-secret-key"

DEFAULT_DB_URI = f"sqlite:///{(BASE_DIR / 'data' / 'papers.db').as_posix()}"

DEFAULT_JWT_ACCESS_TOKEN_EXPIRES_MINUTES = 720

# Generated question papers and answer keys live under
# <root>/institute_<id>/papers/<paper_id>/<file>.pdf
DEFAULT_ARTIFACT_ROOT = BASE_DIR / "data" / "artifacts"
DEFAULT_ARTIFACT_BUCKET = "papers_bucket"
DEFAULT_ARTIFACT_LINK_TTL_SECONDS = 3600
DEFAULT_REOPEN_DELETES_ARTIFACTS = True
