from flask import Blueprint, request
from flask_jwt_extended import (
    create_access_token,
    set_access_cookies,
    unset_jwt_cookies,
)
from app.models import Teacher
from app.services.api_response import (
    success_response as _ok_response,
    error_response as _api_error_response,
)
from app.services.teacher_scope import attach_current_teacher, current_teacher

api_auth_bp = Blueprint('api_auth', __name__)


def _error_response(message: str, code: str, *, status: int = 400):
    return _api_error_response(message=message, code=code, status=status)


def _teacher_payload(teacher: Teacher) -> dict:
    return {
        "id": teacher.id,
        "email": teacher.email,
        "name": teacher.name,
        "role": teacher.role,
        "institute_id": teacher.institute_id,
    }


@api_auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password')

    teacher = Teacher.query.filter_by(email=email, deleted_at=None).first()
    if not teacher or not teacher.check_password(password):
        return _error_response(
            "Bad username or password",
            "INVALID_CREDENTIALS",
            status=401,
        )

    access_token = create_access_token(identity=teacher.id)
    response, status = _ok_response(
        data={
            "access_token": access_token,
            "teacher": _teacher_payload(teacher),
        },
        code="AUTHENTICATED",
        message="Authenticated.",
    )
    set_access_cookies(response, access_token)
    return response, status


@api_auth_bp.route('/logout', methods=['POST'])
def logout():
    response, status = _ok_response(
        data=None,
        code="LOGGED_OUT",
        message="Logged out",
    )
    unset_jwt_cookies(response)
    return response, status


@api_auth_bp.route('/me', methods=['GET'])
def me():
    auth_error = attach_current_teacher(require=True)
    if auth_error is not None:
        return auth_error

    return _ok_response(
        data=_teacher_payload(current_teacher()),
        code="AUTH_TEACHER",
        message="Authenticated teacher.",
    )
