from __future__ import annotations

import logging
from functools import wraps

from flask import jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    NotFound,
    StorageFailure,
)

logger = logging.getLogger(__name__)


def error_status(e: DomainError) -> int:
    if isinstance(e, AuthenticationError):
        return 401
    if isinstance(e, AuthorizationError):
        return 403
    if isinstance(e, NotFound):
        return 404
    if isinstance(e, StorageFailure):
        return 503
    return 400


def json_error(message: str, status: int, *, kind: str | None = None):
    body = {"success": False, "message": message}
    if kind:
        body["kind"] = kind
    return jsonify(body), status


def domain_error_response(e: DomainError):
    return json_error(str(e), error_status(e), kind=e.kind)


def json_body() -> dict:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return json_error("Please sign in to continue.", 401)
        return view(*args, **kwargs)

    return wrapper


def role_required(role: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return json_error("Please sign in to continue.", 401)
            if session.get("role") != role.value:
                return json_error("You do not have permission for this action.", 403)
            return view(*args, **kwargs)

        return wrapper

    return decorator


def current_user_id() -> str:
    return str(session["user_id"])
