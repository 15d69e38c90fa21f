from __future__ import annotations

import logging
from functools import wraps

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import BadRequest, Forbidden, HTTPException, NotFound, Unauthorized

from ..core.enums import RejectionCode, Role
from ..container import Container
from .engine import CheckInRequest

logger = logging.getLogger(__name__)

BAD_REQUEST_CODES = frozenset(
    {
        RejectionCode.MISSING_DEVICE_ID,
        RejectionCode.MISSING_USER_AGENT,
        RejectionCode.INVALID_SESSION_ID,
        RejectionCode.INVALID_LOCATION_COORDS,
        RejectionCode.INVALID_LOCATION_ZERO,
        RejectionCode.MISSING_ACCURACY,
        RejectionCode.INVALID_ACCURACY,
        RejectionCode.NOT_SCHEDULED_TODAY,
        RejectionCode.ALREADY_CHECKED_IN,
        RejectionCode.TOO_EARLY,
        RejectionCode.LATE_STRICT_MODE,
    }
)
NOT_FOUND_CODES = frozenset({RejectionCode.USER_NOT_FOUND, RejectionCode.SESSION_NOT_FOUND})

VIEWER_ROLES = frozenset({Role.SUPER_ADMIN.value, Role.MANAGER.value, Role.PLATFORM_OWNER.value})


def status_for(code: RejectionCode) -> int:
    """HTTP status for a rejection. Everything location/device/assignment related is 403."""
    if code in BAD_REQUEST_CODES:
        return 400
    if code in NOT_FOUND_CODES:
        return 404
    if code == RejectionCode.INTERNAL_ERROR:
        return 500
    return 403


def register(app: Flask, container: Container) -> None:
    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session or "org_id" not in session:
                raise Unauthorized("Please log in to continue.")
            return view(*args, **kwargs)

        return wrapper

    def roles_required(roles):
        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                if session.get("role") not in roles:
                    raise Forbidden("Not authorized to view attendance reports.")
                return view(*args, **kwargs)

            return wrapper

        return decorator

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify({"status": "error", "message": e.description}), e.code

    @app.route("/api/attendance/scan", methods=["POST"], endpoint="attendance_scan")
    @login_required
    def scan():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise BadRequest("Request body must be a JSON object.")

        outcome = container.attendance_service.check_in(
            CheckInRequest(
                user_id=int(session["user_id"]),
                org_id=int(session["org_id"]),
                session_id=data.get("sessionId"),
                device_id=data.get("deviceId"),
                user_agent=data.get("userAgent"),
                location=data.get("userLocation"),
                accuracy=data.get("accuracy"),
                client_timestamp=data.get("timestamp"),
            )
        )
        if outcome.created:
            return jsonify(outcome.to_dict()), 201
        return jsonify(outcome.to_dict()), status_for(outcome.rejection.code)

    @app.route("/api/attendance/me", methods=["GET"], endpoint="attendance_me")
    @login_required
    def my_attendance():
        limit = request.args.get("limit", type=int)
        if limit is not None and limit <= 0:
            raise BadRequest("limit must be a positive integer.")
        entries = container.attendance_service.history(int(session["user_id"]), limit=limit)
        return jsonify({"records": [e.to_dict() for e in entries]})

    @app.route("/api/attendance/user/<int:user_id>", methods=["GET"], endpoint="attendance_user")
    @login_required
    @roles_required(VIEWER_ROLES)
    def user_attendance(user_id: int):
        entries = container.attendance_service.user_history(user_id, org_id=int(session["org_id"]))
        if entries is None:
            raise NotFound("User not found")
        return jsonify({"records": [e.to_dict() for e in entries]})

    @app.route("/api/attendance/session/<int:session_id>", methods=["GET"], endpoint="attendance_session")
    @login_required
    @roles_required(VIEWER_ROLES)
    def session_attendance(session_id: int):
        view = container.attendance_service.session_attendance(session_id, org_id=int(session["org_id"]))
        if view is None:
            raise NotFound("Session not found")
        return jsonify(view.to_dict())
