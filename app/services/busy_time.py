from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, joinedload

from app.models.class_session import ClassSession, SessionOccurrence
from app.models.debt import StudentDebtSession
from app.models.makeup import MakeupEnrollment
from app.models.people import Student
from app.services.intervals import Interval

logger = logging.getLogger(__name__)

SOURCE_TIMETABLE = "timetable"
SOURCE_COMPENSATION = "compensation"
SOURCE_MAKEUP = "makeup"
SOURCE_DEBT = "debt"


@dataclass(frozen=True)
class BusyInterval:
    date: date
    day: str
    start: str
    end: str
    source: str
    occurrence_id: int

    def to_interval(self) -> Interval:
        return Interval.from_strings(self.date, self.start, self.end)


def _occurrence_query():
    return select(SessionOccurrence).options(
        joinedload(SessionOccurrence.session).joinedload(ClassSession.day_time),
        joinedload(SessionOccurrence.compensation_day_time),
    )


def _within(stmt, lower: date, upper: Optional[date]):
    # compensadas contam na data em que de fato acontecem
    stmt = stmt.where(SessionOccurrence.effective_date >= lower)
    if upper is not None:
        stmt = stmt.where(SessionOccurrence.effective_date <= upper)
    return stmt.order_by(SessionOccurrence.effective_date)


def _own_sessions(student: Student):
    return or_(
        ClassSession.group_id == student.group_id,
        ClassSession.section_id == student.section_id,
    )


def regular_occurrences(
    db: Session,
    student: Student,
    lower: date,
    upper: Optional[date] = None,
    include_cancelled: bool = False,
) -> List[SessionOccurrence]:
    """Occurrences of the student's own group (pw/dw) and section (cours) sessions."""
    stmt = _occurrence_query().join(ClassSession, SessionOccurrence.session_id == ClassSession.id)
    stmt = stmt.where(_own_sessions(student))
    if not include_cancelled:
        stmt = stmt.where(SessionOccurrence.prof_absence.is_(False))
    stmt = _within(stmt, lower, upper)
    return list(db.execute(stmt).unique().scalars().all())


def compensation_occurrences(
    db: Session, student: Student, lower: date, upper: Optional[date] = None
) -> List[SessionOccurrence]:
    stmt = _occurrence_query().join(ClassSession, SessionOccurrence.session_id == ClassSession.id)
    stmt = stmt.where(
        _own_sessions(student),
        SessionOccurrence.prof_absence.is_(True),
        SessionOccurrence.is_compensation.is_(True),
    )
    stmt = _within(stmt, lower, upper)
    return list(db.execute(stmt).unique().scalars().all())


def makeup_occurrences(
    db: Session, student: Student, lower: date, upper: Optional[date] = None
) -> List[SessionOccurrence]:
    stmt = _occurrence_query().join(
        MakeupEnrollment, MakeupEnrollment.occurrence_id == SessionOccurrence.id
    )
    stmt = stmt.where(MakeupEnrollment.student_id == student.matricule)
    stmt = _within(stmt, lower, upper)
    return list(db.execute(stmt).unique().scalars().all())


def debt_occurrences(
    db: Session, student: Student, lower: date, upper: Optional[date] = None
) -> List[SessionOccurrence]:
    stmt = _occurrence_query().join(
        StudentDebtSession, StudentDebtSession.session_id == SessionOccurrence.session_id
    )
    stmt = stmt.where(StudentDebtSession.student_id == student.matricule)
    stmt = _within(stmt, lower, upper)
    return list(db.execute(stmt).unique().scalars().all())


def _as_busy(occurrence: SessionOccurrence, source: str) -> BusyInterval:
    slot = occurrence.effective_day_time
    return BusyInterval(
        date=occurrence.effective_date,
        day=slot.day,
        start=slot.start_time,
        end=slot.end_time,
        source=source,
        occurrence_id=occurrence.id,
    )


def collect_busy_intervals(
    db: Session, student: Student, lower: date, upper: Optional[date] = None
) -> List[BusyInterval]:
    """
    Everything the student already has to attend between ``lower`` and
    ``upper`` (inclusive; ``None`` means unbounded).

    No dedup: callers only ask whether a conflict exists.
    """
    sources = (
        (SOURCE_TIMETABLE, regular_occurrences(db, student, lower, upper)),
        (SOURCE_COMPENSATION, compensation_occurrences(db, student, lower, upper)),
        (SOURCE_MAKEUP, makeup_occurrences(db, student, lower, upper)),
        (SOURCE_DEBT, debt_occurrences(db, student, lower, upper)),
    )

    busy: List[BusyInterval] = []
    for source, occurrences in sources:
        busy.extend(_as_busy(o, source) for o in occurrences)

    logger.debug(
        "busy time for %s between %s and %s: %d intervals",
        student.matricule, lower, upper or "open end", len(busy),
    )
    return busy
