"""Signed, expiring download links for generated paper artifacts.

A token names the paper, its institute and the artifact kind, not a file
path: the path is looked up again when the link is used, so a link stops
working as soon as the paper is reopened or its artifacts are cleared.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, url_for
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

ARTIFACT_KINDS = ("pdf", "answer_key")
_SALT = "paper-artifact-link"


class ArtifactLinkError(Exception):
    status = 404
    code = "ARTIFACT_NOT_FOUND"


class ArtifactLinkExpired(ArtifactLinkError):
    status = 410
    code = "LINK_EXPIRED"


@dataclass(frozen=True)
class ArtifactLink:
    paper_id: str
    institute_id: str
    kind: str


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_SALT)


def link_ttl_seconds() -> int:
    return int(current_app.config.get("ARTIFACT_LINK_TTL_SECONDS", 3600))


def issue_link(paper_id: str, institute_id: str, kind: str) -> dict:
    if kind not in ARTIFACT_KINDS:
        raise ValueError(f"Unknown artifact kind: {kind}")
    token = _serializer().dumps({"p": paper_id, "i": institute_id, "k": kind})
    return {
        "url": url_for("api_artifacts.download", token=token, _external=True),
        "expires_in": link_ttl_seconds(),
    }


def load_link(token: str) -> ArtifactLink:
    try:
        payload = _serializer().loads(token, max_age=link_ttl_seconds())
    except SignatureExpired as exc:
        raise ArtifactLinkExpired("Download link has expired.") from exc
    except BadSignature as exc:
        raise ArtifactLinkError("Artifact not found.") from exc
    if not isinstance(payload, dict) or payload.get("k") not in ARTIFACT_KINDS:
        raise ArtifactLinkError("Artifact not found.")
    return ArtifactLink(
        paper_id=str(payload.get("p") or ""),
        institute_id=str(payload.get("i") or ""),
        kind=payload["k"],
    )
