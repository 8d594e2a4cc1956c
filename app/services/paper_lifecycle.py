"""Test paper lifecycle: finalize / reopen / force-clear artifacts.

This module is the ONLY place that changes a paper's status, artifact URLs
or finalized_at. Transitions are validated against a single table:

    (review,    finalize) -> finalized
    (finalized, reopen)   -> review

force_clear_artifacts keeps the status and nulls both artifact URLs; it is the
repair path for rows left with artifacts while not finalized.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Protocol

from app.services.errors import ArtifactStoreError, InvalidPaperState, PaperNotFound

logger = logging.getLogger(__name__)


class PaperStatus(str, Enum):
    DRAFT = "draft"
    REVIEW = "review"
    FINALIZED = "finalized"


class PaperAction(str, Enum):
    FINALIZE = "finalize"
    REOPEN = "reopen"


TRANSITIONS: dict[tuple[PaperStatus, PaperAction], PaperStatus] = {
    (PaperStatus.REVIEW, PaperAction.FINALIZE): PaperStatus.FINALIZED,
    (PaperStatus.FINALIZED, PaperAction.REOPEN): PaperStatus.REVIEW,
}

_INVALID_STATE_MESSAGES = {
    PaperAction.FINALIZE: "Only papers in review can be finalized. Reopen a finalized paper first.",
    PaperAction.REOPEN: "Paper is not finalized. Only finalized papers can be reopened.",
}


def required_status(action: PaperAction) -> PaperStatus:
    for (source, candidate), _ in TRANSITIONS.items():
        if candidate == action:
            return source
    raise KeyError(action)


def next_status(current: str, action: PaperAction, paper_id: str | None = None) -> PaperStatus:
    """Target status for `action` from `current`, or InvalidPaperState."""
    try:
        source = PaperStatus(current)
    except ValueError:
        source = None
    target = TRANSITIONS.get((source, action)) if source else None
    if target is None:
        raise InvalidPaperState(
            _INVALID_STATE_MESSAGES[action],
            paper_id=paper_id,
            current_status=current,
            required_status=required_status(action).value,
        )
    return target


class PaperRow(Protocol):
    id: str
    status: str
    pdf_url: Optional[str]
    answer_key_url: Optional[str]
    finalized_at: Optional[datetime]


class PaperRowStore(Protocol):
    def get_by_id(self, paper_id: str, institute_id: str) -> PaperRow: ...

    def update_by_id(
        self,
        paper_id: str,
        institute_id: str,
        patch: dict,
        expected_status: Optional[str] = None,
    ) -> Optional[PaperRow]: ...


class ArtifactStore(Protocol):
    def delete_if_present(self, location: str, institute_id: str) -> bool: ...


@dataclass
class ArtifactCleanup:
    pdf: bool = False
    answer_key: bool = False
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {"pdf": self.pdf, "answer_key": self.answer_key}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaperLifecycleManager:
    def __init__(
        self,
        store: PaperRowStore,
        artifacts: ArtifactStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
        reopen_deletes_artifacts: bool = True,
    ):
        self.store = store
        self.artifacts = artifacts
        self.clock = clock
        self.reopen_deletes_artifacts = reopen_deletes_artifacts

    def finalize(
        self,
        paper_id: str,
        institute_id: str,
        pdf_url: str,
        answer_key_url: Optional[str] = None,
    ) -> dict:
        if not pdf_url:
            raise ValueError("pdf_url is required to finalize a paper")

        finalized_at = self.clock()
        paper = self._transition(
            paper_id,
            institute_id,
            PaperAction.FINALIZE,
            {
                "pdf_url": pdf_url,
                "answer_key_url": answer_key_url or None,
                "finalized_at": finalized_at,
            },
        )
        logger.info("Paper %s finalized at %s", paper_id, finalized_at.isoformat())
        return {
            "paper_id": paper.id,
            "status": paper.status,
            "finalized_at": finalized_at.isoformat(),
        }

    def reopen(self, paper_id: str, institute_id: str) -> dict:
        before = self.store.get_by_id(paper_id, institute_id)
        stale_pdf, stale_answer_key = before.pdf_url, before.answer_key_url

        paper = self._transition(
            paper_id,
            institute_id,
            PaperAction.REOPEN,
            {"finalized_at": None, "pdf_url": None, "answer_key_url": None},
            current=before,
        )
        logger.info("Paper %s reopened for editing", paper_id)

        result = {"paper_id": paper.id, "status": paper.status}
        if self.reopen_deletes_artifacts:
            # Row is already authoritative; file reclamation is best-effort.
            cleanup = self._delete_artifacts(
                paper_id, institute_id, stale_pdf, stale_answer_key
            )
            result["deleted"] = cleanup.to_dict()
        return result

    def force_clear_artifacts(self, paper_id: str, institute_id: str) -> dict:
        """Delete both artifacts best-effort, then null both URL columns.

        The row update is unconditional: status is left as it is and the URLs
        are nulled whatever the file deletions reported. A finalize that
        commits between the read and the write loses its new URLs while the
        row stays finalized; the paper then needs a reopen and a fresh
        finalize.
        """
        paper = self.store.get_by_id(paper_id, institute_id)
        logger.info(
            "Force clearing artifacts for paper %s (status=%s, pdf_url=%s, answer_key_url=%s)",
            paper_id,
            paper.status,
            paper.pdf_url,
            paper.answer_key_url,
        )

        cleanup = self._delete_artifacts(
            paper_id, institute_id, paper.pdf_url, paper.answer_key_url
        )

        updated = self.store.update_by_id(
            paper_id,
            institute_id,
            {"pdf_url": None, "answer_key_url": None},
        )
        if updated is None:
            raise PaperNotFound(paper_id)

        return {
            "paper_id": paper_id,
            "status": updated.status,
            "deleted": cleanup.to_dict(),
            "errors": list(cleanup.errors),
        }

    def _transition(
        self,
        paper_id: str,
        institute_id: str,
        action: PaperAction,
        patch: dict,
        current: Optional[PaperRow] = None,
    ) -> PaperRow:
        if current is None:
            current = self.store.get_by_id(paper_id, institute_id)
        source = current.status
        target = next_status(source, action, paper_id)

        updated = self.store.update_by_id(
            paper_id,
            institute_id,
            {**patch, "status": target.value},
            expected_status=source,
        )
        if updated is None:
            # Lost a race; report against the row as it is now.
            latest = self.store.get_by_id(paper_id, institute_id)
            next_status(latest.status, action, paper_id)
            raise InvalidPaperState(
                "Paper changed while the request was in flight. Retry.",
                paper_id=paper_id,
                current_status=latest.status,
                required_status=required_status(action).value,
            )
        return updated

    def _delete_artifacts(
        self,
        paper_id: str,
        institute_id: str,
        pdf_url: Optional[str],
        answer_key_url: Optional[str],
    ) -> ArtifactCleanup:
        cleanup = ArtifactCleanup()
        for attr, label, location in (
            ("pdf", "Question paper", pdf_url),
            ("answer_key", "Answer key", answer_key_url),
        ):
            if not location:
                continue
            try:
                deleted = self.artifacts.delete_if_present(location, institute_id)
                setattr(cleanup, attr, bool(deleted))
            except ArtifactStoreError as exc:
                cleanup.errors.append(f"{label}: {exc}")
            except Exception as exc:
                # Any collaborator failure counts against this file only.
                logger.exception("Unexpected artifact store failure for %s", location)
                cleanup.errors.append(f"{label}: {exc}")
        if not cleanup.success:
            logger.warning(
                "Artifact cleanup for paper %s had errors: %s", paper_id, cleanup.errors
            )
        return cleanup


def get_lifecycle_manager() -> PaperLifecycleManager:
    from flask import current_app

    from app.services.artifact_store import get_artifact_store
    from app.services.paper_store import PaperStore

    return PaperLifecycleManager(
        PaperStore(),
        get_artifact_store(),
        reopen_deletes_artifacts=bool(
            current_app.config.get("REOPEN_DELETES_ARTIFACTS", True)
        ),
    )


__all__ = [
    "ArtifactCleanup",
    "PaperAction",
    "PaperLifecycleManager",
    "PaperStatus",
    "TRANSITIONS",
    "get_lifecycle_manager",
    "next_status",
    "required_status",
]
