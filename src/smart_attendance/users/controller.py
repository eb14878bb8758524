from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..biometrics.image import CapturedImage
from ..common.web import current_user_id, json_body, json_error, login_required, role_required
from ..core.enums import Role
from ..core.exceptions import BiometricFailure, DuplicateIdentity, ValidationError
from ..container import Container
from .signup import SignupRequest

logger = logging.getLogger(__name__)


def _captured_image(data: dict):
    upload = request.files.get("image")
    if upload is not None:
        return CapturedImage(data=upload.read(), content_type=upload.mimetype or "")
    if data.get("image"):
        return CapturedImage.from_data_url(str(data["image"]))
    return None


def register(app: Flask, container: Container) -> None:
    faculty_required = role_required(Role.FACULTY)

    @app.route("/api/signup", methods=["POST"], endpoint="signup")
    def signup():
        data = json_body()
        try:
            role = Role(str(data.get("role") or Role.STUDENT.value).lower())
        except ValueError:
            return json_error("Invalid account type.", 400, kind=ValidationError.kind)

        try:
            image = _captured_image(data)
        except BiometricFailure as e:
            return json_error(str(e), 400, kind=e.kind)

        result = container.signup.signup(
            SignupRequest(
                name=str(data.get("name") or ""),
                email=str(data.get("email") or ""),
                password=str(data.get("password") or ""),
                role=role,
                roll_no=data.get("rollNo"),
                section=data.get("section"),
                image=image,
            )
        )
        if not result.success:
            status = 409 if result.error_kind == DuplicateIdentity.kind else 400
            return jsonify(result.to_dict()), status
        return jsonify(result.to_dict()), 201

    @app.route("/api/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        profile = container.auth_service.sign_in(
            str(data.get("email") or "").strip().lower(),
            str(data.get("password") or ""),
        )

        session.clear()
        session.permanent = bool(data.get("rememberMe"))
        session["user_id"] = profile.uid
        session["name"] = profile.name
        session["role"] = profile.role.value

        logger.info("Signed in: %s (%s)", profile.uid, profile.role.value)
        return jsonify({"success": True, "user": profile.to_dict()})

    @app.route("/api/logout", methods=["POST"], endpoint="logout")
    def logout():
        container.auth_service.sign_out(session.get("user_id"))
        session.clear()
        return jsonify({"success": True})

    @app.route("/api/me", methods=["GET"], endpoint="me")
    @login_required
    def me():
        profile = container.auth_service.current_profile(current_user_id())
        return jsonify({"success": True, "user": profile.to_dict()})

    @app.route("/api/students", methods=["GET"], endpoint="list_students")
    @faculty_required
    def list_students():
        students = container.students.list_students()
        return jsonify({"success": True, "students": [s.to_dict() for s in students]})

    @app.route("/api/students/<uid>", methods=["DELETE"], endpoint="delete_student")
    @faculty_required
    def delete_student(uid: str):
        container.students.delete_student(uid)
        return jsonify({"success": True})
