"""Flask 애플리케이션 팩토리"""

import json
import logging
import os
import time
import uuid
from datetime import timedelta

from flask import Flask, g, request
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy

from config import get_config, set_config_name

# SQLAlchemy 인스턴스 (다른 모듈에서 import 가능)
db = SQLAlchemy()
jwt = JWTManager()
_REQUEST_LOGGER_NAME = "paper_lifecycle.request"
_REQUEST_ID_HEADER = "X-Request-ID"
_ERROR_CODES = ("error_code", "code")


def _get_request_logger() -> logging.Logger:
    logger = logging.getLogger(_REQUEST_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    return logger


def _resolve_request_id() -> str:
    request_id = (request.headers.get(_REQUEST_ID_HEADER) or "").strip()
    if request_id:
        return request_id[:128]
    return uuid.uuid4().hex


def _resolve_route() -> str:
    rule = getattr(request, "url_rule", None)
    if rule and getattr(rule, "rule", None):
        return str(rule.rule)
    return request.path


def _resolve_error_code_from_response(response) -> str | None:
    status_code = int(getattr(response, "status_code", 0) or 0)
    if status_code < 400:
        return None

    if response.is_json:
        payload = response.get_json(silent=True)
        if isinstance(payload, dict):
            for key in _ERROR_CODES:
                value = payload.get(key)
                if value not in (None, ""):
                    return str(value)

    return f"HTTP_{status_code}"


def _request_latency_ms() -> float:
    started_at = getattr(g, "request_started_at", None)
    if started_at is None:
        return 0.0
    return round((time.perf_counter() - started_at) * 1000, 2)


def _log_request(
    request_logger: logging.Logger,
    *,
    request_id: str,
    route: str,
    status: int,
    latency: float,
    error_code: str | None,
) -> None:
    request_logger.info(
        json.dumps(
            {
                "request_id": request_id,
                "route": route,
                "status": status,
                "latency": latency,
                "error_code": error_code,
            },
            separators=(",", ":"),
        )
    )


def create_app(
    config_name="default",
    db_uri_override: str | None = None,
):
    """
    Flask 애플리케이션 팩토리

    Args:
        config_name: 설정 이름 ('development', 'production', 'default')
        db_uri_override: 테스트/스크립트용 DB URI

    Returns:
        Flask 앱 인스턴스
    """
    app = Flask(__name__)

    set_config_name(config_name)
    cfg = get_config(reload=True)

    if config_name == "production" and cfg.uses_default_secrets:
        raise RuntimeError(
            "SECRET_KEY and JWT_SECRET_KEY must be set to non-default values in production."
        )

    app.config["ENV_NAME"] = config_name
    effective_db_uri = db_uri_override or cfg.runtime.db_uri
    app.config["SQLALCHEMY_DATABASE_URI"] = effective_db_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    if str(effective_db_uri).startswith("postgres"):
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_pre_ping": True,
            "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "1800")),
            "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
            "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
        }
    app.config["SECRET_KEY"] = cfg.secret_key
    app.config["JWT_SECRET_KEY"] = cfg.runtime.jwt_secret_key
    app.config["JWT_TOKEN_LOCATION"] = ["headers", "cookies"]
    app.config["JWT_ACCESS_COOKIE_NAME"] = "auth_token"
    app.config["JWT_COOKIE_SAMESITE"] = "Lax"
    app.config["JWT_COOKIE_SECURE"] = cfg.runtime.jwt_cookie_secure
    app.config["JWT_ACCESS_TOKEN_EXPIRES"] = timedelta(
        minutes=cfg.runtime.jwt_access_token_expires_minutes
    )
    app.config["JWT_COOKIE_CSRF_PROTECT"] = config_name == "production"
    app.config["ARTIFACT_ROOT"] = str(cfg.runtime.artifact_root)
    app.config["ARTIFACT_BUCKET"] = cfg.runtime.artifact_bucket
    app.config["ARTIFACT_LINK_TTL_SECONDS"] = cfg.runtime.artifact_link_ttl_seconds
    app.config["REOPEN_DELETES_ARTIFACTS"] = cfg.runtime.reopen_deletes_artifacts

    db.init_app(app)
    jwt.init_app(app)

    artifact_root = app.config.get("ARTIFACT_ROOT")
    if artifact_root and not os.path.exists(artifact_root):
        os.makedirs(artifact_root)

    _register_blueprints(app)

    request_logger = _get_request_logger()

    @app.before_request
    def mark_request_started():
        g.request_id = _resolve_request_id()
        g.request_started_at = time.perf_counter()
        g.request_logged = False

    @app.after_request
    def log_request_response(response):
        request_id = getattr(g, "request_id", _resolve_request_id())
        _log_request(
            request_logger,
            request_id=request_id,
            route=_resolve_route(),
            status=int(getattr(response, "status_code", 0) or 0),
            latency=_request_latency_ms(),
            error_code=_resolve_error_code_from_response(response),
        )
        g.request_logged = True
        response.headers[_REQUEST_ID_HEADER] = request_id
        return response

    @app.teardown_request
    def log_request_exception(exc):
        if exc is None or getattr(g, "request_logged", False):
            return None

        status = int(getattr(exc, "code", 500) or 500)
        error_code = getattr(exc, "name", None) or getattr(exc, "code", None)
        if error_code in (None, ""):
            error_code = "INTERNAL_SERVER_ERROR"
        _log_request(
            request_logger,
            request_id=getattr(g, "request_id", _resolve_request_id()),
            route=_resolve_route(),
            status=status,
            latency=_request_latency_ms(),
            error_code=str(error_code),
        )
        g.request_logged = True
        return None

    return app


def _register_blueprints(app: Flask) -> None:
    from app.routes.api_auth import api_auth_bp
    from app.routes.api_test_papers import api_test_papers_bp
    from app.routes.api_artifacts import api_artifacts_bp

    app.register_blueprint(api_auth_bp, url_prefix="/api/auth")
    app.register_blueprint(api_test_papers_bp)
    app.register_blueprint(api_artifacts_bp)
