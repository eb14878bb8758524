from __future__ import annotations

from flask import Flask, Response, jsonify

from ..common.web import current_user_id, role_required
from ..core.enums import Role
from ..container import Container


def register(app: Flask, container: Container) -> None:
    faculty_required = role_required(Role.FACULTY)
    student_required = role_required(Role.STUDENT)

    @app.route("/api/reports/<course_id>", methods=["GET"], endpoint="course_report")
    @faculty_required
    def course_report(course_id: str):
        report = container.report_service.course_report(course_id=course_id, faculty_id=current_user_id())
        return jsonify({"success": True, **report.to_dict()})

    @app.route("/api/reports/<course_id>/csv", methods=["GET"], endpoint="course_report_csv")
    @faculty_required
    def course_report_csv(course_id: str):
        report = container.report_service.course_report(course_id=course_id, faculty_id=current_user_id())
        filename = f"attendance_{report.course.course_id}.csv"
        return Response(
            container.report_service.to_csv(report),
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/reports/me", methods=["GET"], endpoint="my_report")
    @student_required
    def my_report():
        summaries = container.report_service.student_summaries(current_user_id())
        return jsonify({"success": True, "courses": [s.to_dict() for s in summaries]})
