"""Request-scoped caller resolution.

Resolves the calling teacher once per request (JWT identity -> Teacher row)
and exposes the caller's institute to handlers through `g.request_scope`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from flask import g
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException, NoAuthorizationError
from jwt.exceptions import PyJWTError

from app import db
from app.models import Teacher
from app.services.api_response import error_response as _error_response


@dataclass(frozen=True)
class RequestScope:
    institute_id: str
    teacher_id: str
    role: str


def _unauthorized(message: str = "Authentication required."):
    return _error_response(
        message=message,
        code="UNAUTHORIZED",
        status=401,
    )


def _load_teacher(identity) -> Optional[Teacher]:
    if identity in (None, ""):
        return None
    teacher = db.session.get(Teacher, str(identity))
    if teacher is None or not teacher.is_active:
        return None
    return teacher


def attach_current_teacher(require: bool = False):
    """Attach caller to request context (g.current_teacher, g.request_scope)."""
    teacher = None
    error = None

    try:
        verify_jwt_in_request(optional=not require)
    except NoAuthorizationError:
        error = _unauthorized()
    except (JWTExtendedException, PyJWTError) as exc:
        error = _unauthorized(str(exc) or "Invalid session.")
    else:
        teacher = _load_teacher(get_jwt_identity())

    g.current_teacher = teacher
    g.request_scope = (
        RequestScope(
            institute_id=teacher.institute_id,
            teacher_id=teacher.id,
            role=teacher.role,
        )
        if teacher is not None
        else None
    )

    if teacher is None and error is not None:
        return error
    if require and teacher is None:
        return _unauthorized("Teacher not found.")
    return None


def current_teacher() -> Optional[Teacher]:
    return getattr(g, "current_teacher", None)


def current_scope() -> Optional[RequestScope]:
    return getattr(g, "request_scope", None)
