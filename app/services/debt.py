from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from app.core.errors import MalformedTimeData, NotEligible, NotFound
from app.models.class_session import ClassSession, DayTime
from app.models.debt import StudentDebtModule, StudentDebtSession
from app.models.module import Module
from app.models.organization import Promotion, Semester
from app.models.people import Student
from app.services.capacity import seat_counts
from app.services.intervals import Interval, conflicts_with_any, format_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DebtModuleRow:
    module_id: int
    module_name: str
    specialty: str
    level: str
    semester: Optional[str]

    def to_dict(self) -> dict:
        return {
            "module_id": self.module_id,
            "module_name": self.module_name,
            "specialty_name": self.specialty,
            "study_level": self.level,
            "semester_name": self.semester,
        }


def list_debt_modules(db: Session, student_id: str) -> List[DebtModuleRow]:
    rows = db.execute(
        select(Module, Promotion, Semester)
        .join(StudentDebtModule, StudentDebtModule.module_id == Module.id)
        .join(Promotion, Module.promotion_id == Promotion.id)
        .outerjoin(Semester, Module.semester_id == Semester.id)
        .where(StudentDebtModule.student_id == student_id)
        .order_by(Module.name)
    ).all()
    return [
        DebtModuleRow(
            module_id=m.id,
            module_name=m.name,
            specialty=p.specialty,
            level=p.level,
            semester=s.name if s else None,
        )
        for m, p, s in rows
    ]


def has_debt_module(db: Session, student_id: str, module_id: int) -> bool:
    return db.get(StudentDebtModule, (student_id, module_id)) is not None


def registered_debt_session(db: Session, student_id: str, module_id: int, session_type: str) -> Optional[ClassSession]:
    return db.execute(
        select(ClassSession)
        .join(StudentDebtSession, StudentDebtSession.session_id == ClassSession.id)
        .where(
            StudentDebtSession.student_id == student_id,
            ClassSession.module_id == module_id,
            ClassSession.type == session_type,
        )
        .limit(1)
    ).scalar_one_or_none()


def weekly_commitments(db: Session, student: Student) -> List[Interval]:
    """Weekly slots of the student's own timetable plus debt sessions already registered."""
    own = select(DayTime).join(ClassSession, ClassSession.day_time_id == DayTime.id).where(
        (ClassSession.group_id == student.group_id) | (ClassSession.section_id == student.section_id)
    )
    debt = (
        select(DayTime)
        .join(ClassSession, ClassSession.day_time_id == DayTime.id)
        .join(StudentDebtSession, StudentDebtSession.session_id == ClassSession.id)
        .where(StudentDebtSession.student_id == student.matricule)
    )

    out: List[Interval] = []
    for stmt in (own, debt):
        for slot in db.execute(stmt).scalars().all():
            try:
                out.append(Interval.weekly(slot.day, slot.start_time, slot.end_time))
            except MalformedTimeData as exc:
                logger.warning("ignoring weekly slot %s of %s: %s", slot.id, student.matricule, exc)
    return out


def clashes_with_week(db: Session, student: Student, session: ClassSession) -> bool:
    slot = session.day_time
    try:
        interval = Interval.weekly(slot.day, slot.start_time, slot.end_time)
    except MalformedTimeData as exc:
        logger.warning("debt session %s has bad time data: %s", session.id, exc)
        return True
    return conflicts_with_any(interval, weekly_commitments(db, student))


def debt_session_candidates(db: Session, student_id: str, module_id: int, session_type: str) -> dict:
    student = db.get(Student, student_id)
    if student is None:
        raise NotFound("student not found")
    if not has_debt_module(db, student_id, module_id):
        raise NotEligible("student has no debt in this module", module_id=module_id)

    existing = registered_debt_session(db, student_id, module_id, session_type)
    if existing is not None:
        return {"hasExistingSession": True, "session_id": existing.id, "sessions": []}

    sessions = db.execute(
        select(ClassSession)
        .options(
            joinedload(ClassSession.day_time),
            joinedload(ClassSession.room),
            joinedload(ClassSession.professor),
            joinedload(ClassSession.module),
        )
        .where(ClassSession.module_id == module_id, ClassSession.type == session_type)
    ).unique().scalars().all()

    commitments = weekly_commitments(db, student)
    seats = seat_counts(db, [s.id for s in sessions])

    free = []
    for s in sessions:
        try:
            interval = Interval.weekly(s.day_time.day, s.day_time.start_time, s.day_time.end_time)
        except MalformedTimeData as exc:
            logger.warning("dropping debt candidate %s: %s", s.id, exc)
            continue
        if conflicts_with_any(interval, commitments):
            continue
        free.append((interval.start, s))

    free.sort(key=lambda item: (item[0], item[1].id))
    return {
        "hasExistingSession": False,
        "sessions": [
            {
                "session_id": s.id,
                "session_type": s.type,
                "module_name": s.module.name,
                "day": s.day_time.day,
                "start_time": format_time(s.day_time.start_time),
                "end_time": format_time(s.day_time.end_time),
                "room": s.room.code,
                "room_type": s.room.kind,
                "capacity": s.room.capacity,
                "available_slots": seats[s.id].available if s.id in seats else None,
                "professor": s.professor.full_name,
            }
            for _, s in free
        ],
    }
