"""JSON API for test paper lifecycle (finalize / reopen / force-clear)."""

from flask import Blueprint, current_app, request

from app.services.api_response import (
    error_response,
    lifecycle_error_response,
    success_response,
)
from app.services.artifact_links import issue_link
from app.services.artifact_store import get_artifact_store
from app.services.errors import ArtifactStoreError, PaperLifecycleError
from app.services.paper_lifecycle import get_lifecycle_manager
from app.services.paper_store import PaperStore
from app.services.teacher_scope import attach_current_teacher, current_scope

api_test_papers_bp = Blueprint(
    "api_test_papers", __name__, url_prefix="/api/test-papers"
)


@api_test_papers_bp.before_request
def attach_teacher():
    return attach_current_teacher(require=True)


def _clean_url(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError
    if any(ord(ch) < 32 or ord(ch) == 127 for ch in value):
        raise ValueError
    return value.strip() or None


@api_test_papers_bp.post("/<paper_id>/finalize")
def finalize_paper(paper_id):
    scope = current_scope()
    data = request.get_json(silent=True) or {}
    try:
        pdf_url = _clean_url(data.get("pdf_url"))
        answer_key_url = _clean_url(data.get("answer_key_url"))
    except ValueError:
        return error_response(
            message="pdf_url and answer_key_url must be plain strings.",
            code="VALIDATION_ERROR",
        )
    if not pdf_url:
        return error_response(message="pdf_url is required.", code="VALIDATION_ERROR")
    try:
        store = get_artifact_store()
        for location in filter(None, (pdf_url, answer_key_url)):
            store.resolve(location, scope.institute_id)
    except ArtifactStoreError:
        return error_response(
            message="Artifact URLs must point into this institute's storage.",
            code="VALIDATION_ERROR",
        )

    current_app.logger.info(
        "[FINALIZE] paper_id=%s teacher_id=%s", paper_id, scope.teacher_id
    )
    try:
        result = get_lifecycle_manager().finalize(
            paper_id, scope.institute_id, pdf_url, answer_key_url
        )
    except PaperLifecycleError as exc:
        return lifecycle_error_response(exc)
    return success_response(
        data=result,
        code="PAPER_FINALIZED",
        message="Paper finalized.",
    )


@api_test_papers_bp.post("/<paper_id>/reopen")
def reopen_paper(paper_id):
    scope = current_scope()
    current_app.logger.info(
        "[REOPEN] paper_id=%s teacher_id=%s", paper_id, scope.teacher_id
    )
    try:
        result = get_lifecycle_manager().reopen(paper_id, scope.institute_id)
    except PaperLifecycleError as exc:
        return lifecycle_error_response(exc)
    return success_response(
        data=result,
        code="PAPER_REOPENED",
        message="Paper reopened for editing.",
    )


@api_test_papers_bp.post("/<paper_id>/force-clear-pdfs")
def force_clear_pdfs(paper_id):
    scope = current_scope()
    current_app.logger.info(
        "[FORCE_CLEAR_PDFS] paper_id=%s teacher_id=%s", paper_id, scope.teacher_id
    )
    try:
        result = get_lifecycle_manager().force_clear_artifacts(
            paper_id, scope.institute_id
        )
    except PaperLifecycleError as exc:
        return lifecycle_error_response(exc)
    return success_response(
        data=result,
        code="PDFS_CLEARED",
        message="PDF URLs cleared.",
    )


@api_test_papers_bp.get("/<paper_id>/state")
def paper_state(paper_id):
    scope = current_scope()
    try:
        paper = PaperStore().get_by_id(paper_id, scope.institute_id)
    except PaperLifecycleError as exc:
        return lifecycle_error_response(exc)
    return success_response(
        data={
            "paper_id": paper.id,
            "title": paper.title,
            "status": paper.status,
            "pdf_url": paper.pdf_url,
            "answer_key_url": paper.answer_key_url,
            "finalized_at": (
                paper.finalized_at.isoformat() if paper.finalized_at else None
            ),
            "pdf_url_is_null": paper.pdf_url is None,
            "answer_key_url_is_null": paper.answer_key_url is None,
            "consistent": paper.is_consistent,
        }
    )


def _artifact_link(paper_id, kind, column):
    scope = current_scope()
    try:
        paper = PaperStore().get_by_id(paper_id, scope.institute_id)
    except PaperLifecycleError as exc:
        return lifecycle_error_response(exc)
    if not getattr(paper, column):
        return error_response(
            message="PDF not generated yet.",
            code="ARTIFACT_NOT_AVAILABLE",
            status=404,
        )
    return success_response(data=issue_link(paper.id, paper.institute_id, kind))


@api_test_papers_bp.get("/<paper_id>/pdf-url")
def pdf_url(paper_id):
    return _artifact_link(paper_id, "pdf", "pdf_url")


@api_test_papers_bp.get("/<paper_id>/answer-key-url")
def answer_key_url(paper_id):
    return _artifact_link(paper_id, "answer_key", "answer_key_url")
