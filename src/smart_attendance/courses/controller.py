from __future__ import annotations

from flask import Flask, jsonify, session

from ..common.web import current_user_id, json_body, login_required, role_required
from ..core.enums import Role
from ..container import Container


def register(app: Flask, container: Container) -> None:
    faculty_required = role_required(Role.FACULTY)

    @app.route("/api/courses", methods=["GET"], endpoint="list_courses")
    @login_required
    def list_courses():
        uid = current_user_id()
        if session.get("role") == Role.FACULTY.value:
            courses = container.course_service.list_for_faculty(uid)
        else:
            courses = container.course_service.list_for_student(uid)
        return jsonify({"success": True, "courses": [c.to_dict() for c in courses]})

    @app.route("/api/courses", methods=["POST"], endpoint="create_course")
    @faculty_required
    def create_course():
        data = json_body()
        course = container.course_service.create_course(faculty_id=current_user_id(), name=str(data.get("name") or ""))
        return jsonify({"success": True, "course": course.to_dict()}), 201

    @app.route("/api/timetable", methods=["GET"], endpoint="list_timetable")
    @login_required
    def list_timetable():
        uid = current_user_id()
        if session.get("role") == Role.FACULTY.value:
            slots = container.course_service.list_timetable(uid)
        else:
            slots = container.course_service.list_student_timetable(uid)
        return jsonify({"success": True, "slots": [s.to_dict() for s in slots]})

    @app.route("/api/timetable", methods=["POST"], endpoint="add_timetable_slot")
    @faculty_required
    def add_timetable_slot():
        data = json_body()
        slot = container.course_service.add_timetable_slot(
            faculty_id=current_user_id(),
            course_id=str(data.get("courseId") or ""),
            day=str(data.get("day") or ""),
            start_time=str(data.get("startTime") or ""),
            end_time=str(data.get("endTime") or ""),
        )
        return jsonify({"success": True, "slot": slot.to_dict()}), 201
