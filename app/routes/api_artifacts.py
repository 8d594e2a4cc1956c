"""Serves generated artifacts behind signed links."""

from flask import Blueprint, current_app, send_file

from app.services.api_response import error_response, lifecycle_error_response
from app.services.artifact_links import ArtifactLinkError, load_link
from app.services.artifact_store import get_artifact_store
from app.services.errors import ArtifactStoreError, PaperLifecycleError
from app.services.paper_store import PaperStore

api_artifacts_bp = Blueprint("api_artifacts", __name__, url_prefix="/api/artifacts")

_COLUMN_BY_KIND = {"pdf": "pdf_url", "answer_key": "answer_key_url"}


@api_artifacts_bp.get("/<token>")
def download(token):
    try:
        link = load_link(token)
    except ArtifactLinkError as exc:
        return error_response(message=str(exc), code=exc.code, status=exc.status)

    try:
        paper = PaperStore().get_by_id(link.paper_id, link.institute_id)
    except PaperLifecycleError as exc:
        return lifecycle_error_response(exc)

    location = getattr(paper, _COLUMN_BY_KIND[link.kind])
    try:
        path = get_artifact_store().resolve(location, paper.institute_id)
    except ArtifactStoreError:
        path = None
    if path is None or not path.is_file():
        current_app.logger.warning(
            "Artifact missing for paper %s (%s): %s", paper.id, link.kind, location
        )
        return error_response(
            message="Artifact not found.", code="ARTIFACT_NOT_FOUND", status=404
        )

    return send_file(
        path,
        mimetype="application/pdf",
        download_name=f"{paper.id}_{link.kind}.pdf",
    )
