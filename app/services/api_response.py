from __future__ import annotations

from typing import Any

from flask import jsonify

from app.services.errors import PaperLifecycleError

_SUCCESS_CODE_BY_STATUS = {
    200: "OK",
    201: "CREATED",
    202: "ACCEPTED",
}

_SUCCESS_MESSAGE_BY_CODE = {
    "OK": "OK",
    "CREATED": "Created.",
    "ACCEPTED": "Accepted.",
}


def success_response(
    *,
    data: Any = None,
    status: int = 200,
    code: str | None = None,
    message: str | None = None,
):
    normalized_code = code or _SUCCESS_CODE_BY_STATUS.get(status, "OK")
    normalized_message = message or _SUCCESS_MESSAGE_BY_CODE.get(
        normalized_code, "Success."
    )
    payload = {
        "ok": True,
        "code": normalized_code,
        "message": normalized_message,
        "data": data,
    }
    return jsonify(payload), status


def error_response(
    *,
    message: str,
    code: str = "BAD_REQUEST",
    status: int = 400,
    data: Any = None,
):
    payload = {
        "ok": False,
        "code": code,
        "message": message,
        "data": data,
    }
    return jsonify(payload), status


def lifecycle_error_response(exc: PaperLifecycleError):
    """Translate a lifecycle exception into the standard error contract."""
    data = None
    current_status = getattr(exc, "current_status", None)
    required = getattr(exc, "required_status", None)
    if current_status is not None or required is not None:
        data = {"current_status": current_status, "required_status": required}
    return error_response(
        message=exc.message,
        code=exc.code,
        status=exc.status,
        data=data,
    )
