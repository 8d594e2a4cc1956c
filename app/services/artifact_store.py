from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

from flask import current_app

from app.services.errors import ArtifactStoreError

logger = logging.getLogger(__name__)


def institute_prefix(institute_id: str) -> str:
    return f"institute_{institute_id}/"


def paper_storage_path(institute_id: str, paper_id: str, file_type: str) -> str:
    """institute_<id>/papers/<paper_id>/<file_type>.pdf"""
    return f"{institute_prefix(institute_id)}papers/{paper_id}/{file_type}.pdf"


class LocalArtifactStore:
    """Generated PDFs kept on local disk under a single root directory.

    Locations are either storage paths relative to the root or public URLs of
    the form ``https://host/.../public/<bucket>/<storage path>``. Every
    operation is scoped to one institute: a location only resolves when it
    lies under that institute's ``institute_<id>/`` directory.
    """

    def __init__(self, root: Path | str, bucket: str):
        self.root = Path(root)
        self.bucket = bucket

    def storage_path(self, location: str) -> str | None:
        if not location:
            return None
        value = location.strip()
        if value.startswith(("http://", "https://")):
            segments = [s for s in urlparse(value).path.split("/") if s]
            try:
                public_index = segments.index("public")
            except ValueError:
                return None
            # Skip 'public' and the bucket name.
            if public_index + 2 >= len(segments):
                return None
            return unquote("/".join(segments[public_index + 2 :]))
        value = value.lstrip("/")
        if value.startswith(f"{self.bucket}/"):
            value = value[len(self.bucket) + 1 :]
        return value or None

    def resolve(self, location: str, institute_id: str) -> Path:
        """Absolute path for `location` inside the institute's directory.

        Raises ArtifactStoreError when the location is malformed or points
        outside the institute's part of the store.
        """
        relative = self.storage_path(location)
        if not relative:
            raise ArtifactStoreError(
                "Artifact location is not a storage path", location=location
            )
        try:
            root = self.root.resolve()
            scope = (root / institute_prefix(institute_id)).resolve()
            candidate = (root / relative).resolve()
            candidate.relative_to(scope)
        except ValueError as exc:
            # Also covers embedded NUL bytes rejected by the OS layer.
            raise ArtifactStoreError(
                "Artifact location is outside this institute's storage",
                location=location,
            ) from exc
        return candidate

    def delete_if_present(self, location: str, institute_id: str) -> bool:
        """Delete the file behind `location`.

        Returns False when nothing was there. Raises ArtifactStoreError when
        the location cannot be mapped into the institute's storage or the
        filesystem refuses.
        """
        path = self.resolve(location, institute_id)
        try:
            path.unlink()
        except FileNotFoundError:
            logger.info("Artifact already absent: %s", location)
            return False
        except (OSError, ValueError) as exc:
            raise ArtifactStoreError(
                f"Failed to delete artifact: {exc}", location=location
            ) from exc
        logger.info("Artifact deleted: %s", location)
        return True


def get_artifact_store() -> LocalArtifactStore:
    return LocalArtifactStore(
        current_app.config["ARTIFACT_ROOT"],
        current_app.config.get("ARTIFACT_BUCKET", "papers_bucket"),
    )


__all__ = [
    "LocalArtifactStore",
    "get_artifact_store",
    "institute_prefix",
    "paper_storage_path",
]
