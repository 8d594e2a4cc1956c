#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Transaction Management Module

Commit happens in the service layer, never in route handlers.

Usage:
    with transaction():
        db.session.execute(update(TestPaper).where(...).values(...))
        # commit happens automatically on success, rollback on error
"""

import logging
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from app import db
from app.services.errors import PaperStoreError

logger = logging.getLogger(__name__)


@contextmanager
def transaction():
    """
    Context manager for database transactions.

    Commits on success, rolls back on exception. SQLAlchemy failures are
    re-raised as PaperStoreError so callers see a single store failure kind.
    """
    try:
        yield
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Transaction rolled back: %s", str(e))
        raise PaperStoreError("Paper store rejected the operation") from e
    except Exception as e:
        db.session.rollback()
        logger.error("Transaction rolled back: %s", str(e))
        raise


__all__ = ["transaction"]
