"""Institute-scoped row store for test papers.

Every read and write filters on both the paper id and the caller's
institute, so a paper owned by another institute is indistinguishable from a
missing one.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.models import TestPaper
from app.services.errors import PaperNotFound, PaperStoreError
from app.services.transaction import transaction

logger = logging.getLogger(__name__)

_MUTABLE_COLUMNS = {"status", "pdf_url", "answer_key_url", "finalized_at"}


class PaperStore:
    def get_by_id(self, paper_id: str, institute_id: str) -> TestPaper:
        paper = self._select_scoped(paper_id, institute_id)
        if paper is None:
            raise PaperNotFound(paper_id)
        return paper

    def update_by_id(
        self,
        paper_id: str,
        institute_id: str,
        patch: Mapping[str, Any],
        expected_status: Optional[str] = None,
    ) -> Optional[TestPaper]:
        """Apply `patch` and return the refreshed row.

        With `expected_status` the write only lands while the row still has
        that status; None is returned when no row matched.
        """
        unknown = set(patch) - _MUTABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported paper columns: {sorted(unknown)}")

        stmt = (
            update(TestPaper)
            .where(TestPaper.id == paper_id, TestPaper.institute_id == institute_id)
            .values(**patch, updated_at=datetime.now(timezone.utc))
            .execution_options(synchronize_session=False)
        )
        if expected_status is not None:
            stmt = stmt.where(TestPaper.status == expected_status)

        with transaction():
            matched = db.session.execute(stmt).rowcount
        if matched == 0:
            return None
        return self._select_scoped(paper_id, institute_id)

    def find_inconsistent(self, institute_id: Optional[str] = None) -> list[TestPaper]:
        """Rows carrying artifacts or finalized_at while not finalized."""
        stmt = select(TestPaper).where(
            TestPaper.status != TestPaper.STATUS_FINALIZED,
            or_(
                TestPaper.pdf_url.isnot(None),
                TestPaper.answer_key_url.isnot(None),
                TestPaper.finalized_at.isnot(None),
            ),
        )
        if institute_id is not None:
            stmt = stmt.where(TestPaper.institute_id == institute_id)
        try:
            return list(db.session.execute(stmt.order_by(TestPaper.id)).scalars())
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Inconsistent paper scan failed: %s", exc)
            raise PaperStoreError("Paper store is unavailable") from exc

    def _select_scoped(self, paper_id: str, institute_id: str) -> Optional[TestPaper]:
        stmt = (
            select(TestPaper)
            .where(TestPaper.id == paper_id, TestPaper.institute_id == institute_id)
            .execution_options(populate_existing=True)
        )
        try:
            return db.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            db.session.rollback()
            logger.error("Paper lookup failed for %s: %s", paper_id, exc)
            raise PaperStoreError("Paper store is unavailable", paper_id=paper_id) from exc


__all__ = ["PaperStore"]
