from __future__ import annotations

import uuid
from typing import Optional, Sequence

from ..core.enums import Weekday
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, store_errors
from ..events.feed import ChangeEvent, ChangeFeed
from .model import Course, TimetableSlot
from .repository import CourseRepository, TimetableRepository


class MySQLCourseRepository(CourseRepository):
    def __init__(self, conn_factory: DatabaseConnection, feed: Optional[ChangeFeed] = None):
        self._conn_factory = conn_factory
        self._feed = feed

    def create(self, *, name: str, faculty_id: str) -> Course:
        course = Course(course_id=uuid.uuid4().hex, name=name, faculty_id=faculty_id)
        with store_errors("create course"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO courses(course_id, name, faculty_id) VALUES(%s,%s,%s)",
                (course.course_id, course.name, course.faculty_id),
            )
        self._publish(course)
        return course

    def get(self, course_id: str) -> Optional[Course]:
        with store_errors("load course"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT course_id, name, faculty_id FROM courses WHERE course_id=%s", (course_id,))
            row = fetchone(cur)
            if not row:
                return None
            students = self._student_ids(cur, [course_id])
            return self._to_course(row, students)

    def list_for_faculty(self, faculty_id: str) -> Sequence[Course]:
        with store_errors("load courses"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT course_id, name, faculty_id FROM courses WHERE faculty_id=%s ORDER BY name",
                (faculty_id,),
            )
            rows = fetchall(cur)
            students = self._student_ids(cur, [r["course_id"] for r in rows])
            return [self._to_course(r, students) for r in rows]

    def list_for_student(self, student_id: str) -> Sequence[Course]:
        with store_errors("load courses"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT c.course_id, c.name, c.faculty_id
                FROM courses c
                JOIN course_students cs ON cs.course_id = c.course_id
                WHERE cs.student_id=%s
                ORDER BY c.name
                """,
                (student_id,),
            )
            rows = fetchall(cur)
            students = self._student_ids(cur, [r["course_id"] for r in rows])
            return [self._to_course(r, students) for r in rows]

    def add_student(self, course_id: str, student_id: str) -> None:
        with store_errors("update course enrollment"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO course_students(course_id, student_id) VALUES(%s,%s)",
                (course_id, student_id),
            )
            added = cur.rowcount > 0
        if added and self._feed:
            course = self.get(course_id)
            if course:
                self._publish(course)

    def _publish(self, course: Course) -> None:
        if self._feed:
            self._feed.publish(ChangeEvent("courses", course.course_id, course.to_dict()))

    @staticmethod
    def _student_ids(cur, course_ids: Sequence[str]) -> dict[str, set[str]]:
        out: dict[str, set[str]] = {cid: set() for cid in course_ids}
        if not course_ids:
            return out
        placeholders = ",".join(["%s"] * len(course_ids))
        cur.execute(
            f"SELECT course_id, student_id FROM course_students WHERE course_id IN ({placeholders})",
            tuple(course_ids),
        )
        for r in fetchall(cur):
            out.setdefault(r["course_id"], set()).add(r["student_id"])
        return out

    @staticmethod
    def _to_course(row: dict, students: dict[str, set[str]]) -> Course:
        return Course(
            course_id=row["course_id"],
            name=row["name"],
            faculty_id=row["faculty_id"],
            student_ids=frozenset(students.get(row["course_id"], ())),
        )


class MySQLTimetableRepository(TimetableRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add_slot(self, *, course_id: str, day: Weekday, start_time: str, end_time: str) -> TimetableSlot:
        slot = TimetableSlot(
            slot_id=uuid.uuid4().hex,
            course_id=course_id,
            day=day,
            start_time=start_time,
            end_time=end_time,
        )
        with store_errors("add timetable slot"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO timetable(slot_id, course_id, day, start_time, end_time) VALUES(%s,%s,%s,%s,%s)",
                (slot.slot_id, slot.course_id, slot.day.value, slot.start_time, slot.end_time),
            )
        return slot

    def list_for_courses(self, course_ids: Sequence[str]) -> Sequence[TimetableSlot]:
        if not course_ids:
            return []
        placeholders = ",".join(["%s"] * len(course_ids))
        with store_errors("load timetable"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT slot_id, course_id, day, start_time, end_time
                FROM timetable
                WHERE course_id IN ({placeholders})
                """,
                tuple(course_ids),
            )
            return [
                TimetableSlot(
                    slot_id=r["slot_id"],
                    course_id=r["course_id"],
                    day=Weekday(r["day"]),
                    start_time=r["start_time"],
                    end_time=r["end_time"],
                )
                for r in fetchall(cur)
            ]
