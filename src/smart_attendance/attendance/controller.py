from __future__ import annotations

import io

from flask import Flask, jsonify, request, send_file

from ..common.datetime_utils import now_local
from ..common.web import current_user_id, json_body, json_error, login_required, role_required
from ..core.enums import Role
from ..core.exceptions import InvalidToken, LocationUnavailable
from ..container import Container
from ..biometrics.image import CapturedImage
from ..geo.model import GeoPoint
from ..geo.provider import FixedLocationProvider
from ..qrcodes.codec import decode_image, render_data_url, render_png
from ..qrcodes.model import encode_token


def register(app: Flask, container: Container) -> None:
    faculty_required = role_required(Role.FACULTY)
    student_required = role_required(Role.STUDENT)

    def _reported_point(data: dict):
        provider = FixedLocationProvider.from_payload(data)
        try:
            return provider.current_position()
        except LocationUnavailable:
            return None

    @app.route("/api/sessions/start", methods=["POST"], endpoint="start_session")
    @faculty_required
    def start_session():
        data = json_body()
        course_id = str(data.get("courseId") or "").strip()
        if not course_id:
            return json_error("Please select a course first.", 400)

        faculty_id = current_user_id()
        container.course_service.get_owned(faculty_id=faculty_id, course_id=course_id)

        try:
            point = FixedLocationProvider.from_payload(data).current_position()
        except LocationUnavailable:
            container.sessions.stop(faculty_id)
            raise

        session_ = container.sessions.start(course_id=course_id, faculty_id=faculty_id, location=point)
        token = session_.current_token
        payload = encode_token(token)
        return jsonify({"success": True, "payload": payload, "qr": render_data_url(payload)})

    @app.route("/api/sessions/location", methods=["POST"], endpoint="report_session_location")
    @faculty_required
    def report_session_location():
        """Faculty device pushes its latest position; the next refresh uses it."""
        data = json_body()
        point: GeoPoint | None = _reported_point(data)
        container.sessions.report_location(current_user_id(), point)
        return jsonify({"success": True})

    @app.route("/api/sessions/current", methods=["GET"], endpoint="current_session")
    @faculty_required
    def current_session():
        faculty_id = current_user_id()
        token = container.sessions.current_token(faculty_id)
        if token is None:
            error = container.sessions.halted_error(faculty_id)
            if error is not None:
                return json_error(str(error), 409, kind=error.kind)
            return json_error("No active attendance session.", 404)

        payload = encode_token(token)
        return jsonify(
            {
                "success": True,
                "sessionId": token.session_id,
                "courseId": token.course_id,
                "issuedAt": token.issued_at,
                "payload": payload,
                "qr": render_data_url(payload),
            }
        )

    @app.route("/api/sessions/current.png", methods=["GET"], endpoint="current_session_png")
    @faculty_required
    def current_session_png():
        token = container.sessions.current_token(current_user_id())
        if token is None:
            return json_error("No active attendance session.", 404)
        buf = io.BytesIO(render_png(encode_token(token)))
        return send_file(buf, mimetype="image/png")

    @app.route("/api/sessions/stop", methods=["POST"], endpoint="stop_session")
    @faculty_required
    def stop_session():
        stopped = container.sessions.stop(current_user_id())
        return jsonify({"success": True, "stopped": stopped})

    @app.route("/api/attendance/scan", methods=["POST"], endpoint="scan_attendance")
    @student_required
    def scan_attendance():
        """Student check-in: token text (or a camera frame) plus the device position."""
        data = json_body()

        frame = request.files.get("frame")
        if frame is not None:
            try:
                token_text = decode_image(frame.stream)
            except InvalidToken as e:
                return json_error(str(e), 400, kind=e.kind)
        else:
            token_text = str(data.get("token") or data.get("qrCode") or "").strip()
        if not token_text:
            return json_error("QR code cannot be empty.", 400)

        probe = None
        face_file = request.files.get("face")
        if face_file is not None:
            probe = face_file.read()
        elif data.get("faceImage"):
            probe = CapturedImage.from_data_url(str(data["faceImage"])).data

        result = container.verifier.verify(
            token_text,
            current_user_id(),
            FixedLocationProvider.from_payload(data),
            probe_image=probe,
        )
        return jsonify(result.to_dict()), (200 if result.success else 400)

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="mark_attendance")
    @faculty_required
    def mark_attendance():
        data = json_body()
        student_id = str(data.get("studentId") or "").strip()
        course_id = str(data.get("courseId") or "").strip()
        if not student_id or not course_id:
            return json_error("studentId and courseId are required.", 400)

        record = container.attendance_service.mark_present(
            student_id=student_id,
            course_id=course_id,
            faculty_id=current_user_id(),
            day=now_local().date(),
        )
        return jsonify({"success": True, "record": record.to_dict()})

    @app.route("/api/attendance/live/<course_id>", methods=["GET"], endpoint="live_attendance")
    @faculty_required
    def live_attendance(course_id: str):
        view = container.attendance_service.live_attendance(
            course_id=course_id,
            faculty_id=current_user_id(),
            day=now_local().date(),
        )
        return jsonify({"success": True, **view.to_dict()})

    @app.route("/api/attendance/me", methods=["GET"], endpoint="my_attendance")
    @login_required
    def my_attendance():
        course_id = request.args.get("courseId") or None
        records = container.attendance_service.history_for_student(current_user_id(), course_id=course_id)
        return jsonify({"success": True, "records": [r.to_dict() for r in records]})
