from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, store_errors
from ..events.feed import ChangeEvent, ChangeFeed
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = "attendance_id, student_id, course_id, att_date, status, marked_by"


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=r["attendance_id"],
        student_id=r["student_id"],
        course_id=r["course_id"],
        date=r["att_date"],
        status=AttendanceStatus(r["status"]),
        marked_by=r["marked_by"],
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection, feed: Optional[ChangeFeed] = None):
        self._conn_factory = conn_factory
        self._feed = feed

    def upsert(self, record: AttendanceRecord) -> None:
        with store_errors("save attendance"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance(attendance_id, student_id, course_id, att_date, status, marked_by)
                VALUES(%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    student_id=VALUES(student_id),
                    course_id=VALUES(course_id),
                    att_date=VALUES(att_date),
                    status=VALUES(status),
                    marked_by=VALUES(marked_by)
                """,
                (
                    record.record_id,
                    record.student_id,
                    record.course_id,
                    record.date,
                    record.status.value,
                    record.marked_by,
                ),
            )
        if self._feed:
            self._feed.publish(ChangeEvent("attendance", record.record_id, record.to_dict()))

    def get(self, record_id: str) -> Optional[AttendanceRecord]:
        with store_errors("load attendance"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance WHERE attendance_id=%s", (record_id,))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_course(self, course_id: str) -> Sequence[AttendanceRecord]:
        with store_errors("load attendance"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE course_id=%s ORDER BY att_date",
                (course_id,),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_course_and_date(self, course_id: str, day: date) -> Sequence[AttendanceRecord]:
        with store_errors("load attendance"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance WHERE course_id=%s AND att_date=%s",
                (course_id, day),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: str, *, course_id: Optional[str] = None) -> Sequence[AttendanceRecord]:
        sql = f"SELECT {_COLUMNS} FROM attendance WHERE student_id=%s"
        params: tuple = (student_id,)
        if course_id:
            sql += " AND course_id=%s"
            params += (course_id,)
        sql += " ORDER BY att_date DESC"

        with store_errors("load attendance"), db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return [_to_record(r) for r in fetchall(cur)]
