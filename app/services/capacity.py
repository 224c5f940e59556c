from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models.class_session import ClassSession, SessionOccurrence
from app.models.debt import StudentDebtSession
from app.models.makeup import MakeupEnrollment
from app.models.module import Room
from app.models.organization import Group
from app.models.people import Student


@dataclass(frozen=True)
class SeatCount:
    session_id: int
    capacity: int
    roster: int = 0
    makeup: int = 0
    debt: int = 0

    @property
    def available(self) -> int:
        return self.capacity - self.roster - self.makeup - self.debt


def _counts(db: Session, stmt) -> Dict[int, int]:
    return {sid: int(n) for sid, n in db.execute(stmt).all()}


def seat_counts(db: Session, session_ids: Iterable[int]) -> Dict[int, SeatCount]:
    """
    Seats left per session: room capacity minus the regular roster, the
    makeup students booked on any occurrence and the debt students.
    """
    ids = sorted(set(session_ids))
    if not ids:
        return {}

    capacities = _counts(
        db,
        select(ClassSession.id, Room.capacity)
        .join(Room, ClassSession.room_id == Room.id)
        .where(ClassSession.id.in_(ids)),
    )

    group_roster = _counts(
        db,
        select(ClassSession.id, func.count(func.distinct(Student.matricule)))
        .join(Student, Student.group_id == ClassSession.group_id)
        .where(ClassSession.id.in_(ids))
        .group_by(ClassSession.id),
    )
    section_roster = _counts(
        db,
        select(ClassSession.id, func.count(func.distinct(Student.matricule)))
        .join(Group, Group.section_id == ClassSession.section_id)
        .join(Student, Student.group_id == Group.id)
        .where(ClassSession.id.in_(ids), ClassSession.group_id.is_(None))
        .group_by(ClassSession.id),
    )

    makeup = _counts(
        db,
        select(SessionOccurrence.session_id, func.count(func.distinct(MakeupEnrollment.student_id)))
        .join(MakeupEnrollment, MakeupEnrollment.occurrence_id == SessionOccurrence.id)
        .where(SessionOccurrence.session_id.in_(ids))
        .group_by(SessionOccurrence.session_id),
    )

    debt = _counts(
        db,
        select(StudentDebtSession.session_id, func.count(func.distinct(StudentDebtSession.student_id)))
        .where(StudentDebtSession.session_id.in_(ids))
        .group_by(StudentDebtSession.session_id),
    )

    return {
        sid: SeatCount(
            session_id=sid,
            capacity=capacity,
            roster=group_roster.get(sid, 0) + section_roster.get(sid, 0),
            makeup=makeup.get(sid, 0),
            debt=debt.get(sid, 0),
        )
        for sid, capacity in capacities.items()
    }


def available_seats(db: Session, session_id: int) -> int:
    counts = seat_counts(db, [session_id]).get(session_id)
    return counts.available if counts else 0
