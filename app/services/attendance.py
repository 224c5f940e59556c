from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, joinedload

from app.core.errors import NotFound
from app.models.attendance import Attendance
from app.models.class_session import ClassSession, SessionOccurrence
from app.models.module import Module
from app.models.people import Student
from app.services.eligibility import as_absence, find_resolution
from app.services.progress import compute_progress

STATUS_ABSENT = "Absent"


def _percent(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return (part * 200 + total) // (2 * total)


def compute_absence_rate(db: Session, student_id: str, semester_id: Optional[int] = None) -> int:
    """Share of the student's attendance records marked absent, 0-100."""
    if db.get(Student, student_id) is None:
        raise NotFound("student not found")

    stmt = (
        select(
            func.count(Attendance.id),
            func.coalesce(func.sum(case((Attendance.present.is_(False), 1), else_=0)), 0),
        )
        .join(SessionOccurrence, Attendance.occurrence_id == SessionOccurrence.id)
        .join(ClassSession, SessionOccurrence.session_id == ClassSession.id)
        .join(Module, ClassSession.module_id == Module.id)
        .where(Attendance.student_id == student_id)
    )
    if semester_id is not None:
        stmt = stmt.where(Module.semester_id == semester_id)

    total, absent = db.execute(stmt).one()
    return _percent(int(absent), int(total))


def list_absences(db: Session, student_id: str) -> List[dict]:
    """Absences grouped by module, newest first, with their resolution status."""
    if db.get(Student, student_id) is None:
        raise NotFound("student not found")

    attendances = db.execute(
        select(Attendance)
        .options(
            joinedload(Attendance.occurrence)
            .joinedload(SessionOccurrence.session)
            .joinedload(ClassSession.day_time),
            joinedload(Attendance.occurrence)
            .joinedload(SessionOccurrence.session)
            .joinedload(ClassSession.module),
        )
        .join(SessionOccurrence, Attendance.occurrence_id == SessionOccurrence.id)
        .where(Attendance.student_id == student_id, Attendance.present.is_(False))
        .order_by(SessionOccurrence.date.desc(), Attendance.id.desc())
    ).unique().scalars().all()

    grouped: Dict[int, dict] = {}
    for attendance in attendances:
        absence = as_absence(attendance)
        resolution = find_resolution(db, attendance)
        progress = compute_progress(db, absence.module_id, absence.session_type, absence.session_id)

        entry = absence.to_dict()
        entry["status"] = resolution.status if resolution else STATUS_ABSENT
        entry["progress"] = progress.to_dict()

        bucket = grouped.setdefault(
            absence.module_id,
            {"module_id": absence.module_id, "module_name": absence.module_name, "absent_sessions": []},
        )
        bucket["absent_sessions"].append(entry)

    return list(grouped.values())
