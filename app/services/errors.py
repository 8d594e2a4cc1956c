"""Error taxonomy for test paper lifecycle operations.

Each error carries the HTTP status and the stable `code` used by the JSON
error contract, so route handlers can translate them without a lookup table.
"""

from __future__ import annotations


class PaperLifecycleError(Exception):
    status = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, paper_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.paper_id = paper_id


class PaperNotFound(PaperLifecycleError):
    """Row is absent or belongs to another institute (deliberately identical)."""

    status = 404
    code = "PAPER_NOT_FOUND"

    def __init__(self, paper_id: str | None = None):
        super().__init__("Test paper not found or access denied", paper_id=paper_id)


class InvalidPaperState(PaperLifecycleError):
    status = 409
    code = "INVALID_STATE"

    def __init__(
        self,
        message: str,
        *,
        paper_id: str | None = None,
        current_status: str | None = None,
        required_status: str | None = None,
    ):
        super().__init__(message, paper_id=paper_id)
        self.current_status = current_status
        self.required_status = required_status


class PaperStoreError(PaperLifecycleError):
    """Row store unreachable or rejected the statement. Not retried internally."""

    status = 500
    code = "STORE_FAILURE"


class ArtifactStoreError(Exception):
    """Raised by the artifact store on transport / filesystem failure."""

    def __init__(self, message: str, *, location: str | None = None):
        super().__init__(message)
        self.location = location


__all__ = [
    "ArtifactStoreError",
    "InvalidPaperState",
    "PaperLifecycleError",
    "PaperNotFound",
    "PaperStoreError",
]
