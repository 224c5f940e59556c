"""
Enrollment transactions.

Every booking re-checks its preconditions inside the transaction that writes
it. The target session row is locked first (``FOR UPDATE`` on PostgreSQL; on
SQLite the whole transaction starts with ``BEGIN IMMEDIATE``), so two
concurrent requests for the last seat are serialized and the loser sees the
seat already taken. Nothing is left half-written: any failure rolls back.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from app.core.errors import AlreadyEnrolled, AlreadyResolved, CapacityConflict, Forbidden, NotEligible, NotFound
from app.db.transaction import run_atomically
from app.models.class_session import ClassSession, SessionOccurrence
from app.models.debt import StudentDebtSession
from app.models.makeup import (
    REQUEST_APPROVED,
    REQUEST_AWAITING,
    REQUEST_REJECTED,
    CompensationRequest,
    MakeupEnrollment,
)
from app.models.attendance import Attendance
from app.models.people import Student
from app.services.capacity import available_seats
from app.services.debt import clashes_with_week, has_debt_module, registered_debt_session
from app.services.eligibility import ENROLLED, as_absence, find_resolution, ineligibility_reason, load_absence_record
from app.services.policy import DIRECT_TYPE, REQUEST_TYPE, MakeupPolicy

logger = logging.getLogger(__name__)

REQUESTED = "Requested"
REGISTERED = "Registered"


@dataclass(frozen=True)
class EnrollmentOutcome:
    status: str
    record_id: str
    occurrence_id: Optional[int] = None
    session_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "success": True,
            "status": self.status,
            "record_id": self.record_id,
            "occurrence_id": self.occurrence_id,
            "session_id": self.session_id,
        }


def _lock_session(db: Session, session_id: int) -> ClassSession:
    target = db.execute(
        select(ClassSession).where(ClassSession.id == session_id).with_for_update()
    ).scalar_one_or_none()
    if target is None:
        raise NotFound("session not found", session_id=session_id)
    return target


# ----------------------------
# Makeup / compensation
# ----------------------------
def _recheck(
    db: Session, attendance: Attendance, student: Student, occurrence: SessionOccurrence, policy: MakeupPolicy
) -> None:
    # a listagem pode estar velha: mesmas regras, agora sob o lock
    reason = ineligibility_reason(db, as_absence(attendance), student, occurrence, policy)
    if reason is not None:
        raise NotEligible(reason, occurrence_id=occurrence.id)


def _book(db: Session, student_id: str, attendance_id: int, occurrence_id: int, policy: MakeupPolicy) -> EnrollmentOutcome:
    occurrence = db.execute(
        select(SessionOccurrence)
        .options(joinedload(SessionOccurrence.session))
        .where(SessionOccurrence.id == occurrence_id)
    ).unique().scalar_one_or_none()
    if occurrence is None:
        raise NotFound("session occurrence not found", occurrence_id=occurrence_id)

    target = _lock_session(db, occurrence.session_id)
    attendance = load_absence_record(db, student_id, attendance_id, lock=True)

    resolution = find_resolution(db, attendance)
    if resolution is not None:
        raise AlreadyResolved("absence already resolved", resolution=resolution.to_dict())

    original = attendance.occurrence.session
    student = db.get(Student, student_id)
    if (
        target.id == original.id
        or target.module_id != original.module_id
        or target.type != original.type
        or (target.group_id is not None and target.group_id == student.group_id)
    ):
        raise NotEligible("occurrence is not a valid replacement for this absence")
    if occurrence.is_cancelled:
        raise NotEligible("occurrence is cancelled")

    if target.type == DIRECT_TYPE:
        already = db.execute(
            select(MakeupEnrollment.id).where(
                MakeupEnrollment.student_id == student_id,
                MakeupEnrollment.occurrence_id == occurrence_id,
            )
        ).first()
        if already is not None:
            raise AlreadyEnrolled("student already enrolled in this makeup session")

        if available_seats(db, target.id) <= 0:
            raise CapacityConflict("no available slots in this session", occurrence_id=occurrence_id)

        _recheck(db, attendance, student, occurrence, policy)

        enrollment = MakeupEnrollment(
            student_id=student_id,
            occurrence_id=occurrence_id,
            attendance_id=attendance.id,
        )
        db.add(enrollment)
        attendance.is_makeup = True
        db.flush()
        return EnrollmentOutcome(ENROLLED, str(enrollment.id), occurrence_id, target.id)

    if target.type == REQUEST_TYPE:
        if not policy.is_capacity_exempt(target.type) and available_seats(db, target.id) <= 0:
            raise CapacityConflict("no available slots in this session", occurrence_id=occurrence_id)
        _recheck(db, attendance, student, occurrence, policy)

        request = CompensationRequest(
            id=str(uuid.uuid4()),
            occurrence_id=occurrence_id,
            attendance_id=attendance.id,
            status=REQUEST_AWAITING,
        )
        db.add(request)
        db.flush()
        return EnrollmentOutcome(REQUESTED, request.id, occurrence_id, target.id)

    raise NotEligible("invalid session type for makeup")


def enroll(
    db: Session,
    student_id: str,
    attendance_id: int,
    occurrence_id: int,
    policy: MakeupPolicy,
) -> EnrollmentOutcome:
    outcome = run_atomically(
        db,
        lambda: _book(db, student_id, attendance_id, occurrence_id, policy),
        what=f"booking of occurrence {occurrence_id} for attendance {attendance_id}",
    )
    logger.info("student %s: attendance %s -> %s (%s)", student_id, attendance_id, outcome.status, outcome.record_id)
    return outcome


# ----------------------------
# Debt sessions
# ----------------------------
def _register_debt(db: Session, student_id: str, session_id: int, policy: MakeupPolicy) -> EnrollmentOutcome:
    target = _lock_session(db, session_id)

    student = db.get(Student, student_id)
    if student is None:
        raise NotFound("student not found")
    if not has_debt_module(db, student_id, target.module_id):
        raise NotEligible("student has no debt in this module", module_id=target.module_id)
    if registered_debt_session(db, student_id, target.module_id, target.type) is not None:
        raise AlreadyEnrolled("a session is already registered for this module and type")
    if clashes_with_week(db, student, target):
        raise NotEligible("session clashes with the student's timetable")
    if not policy.is_capacity_exempt(target.type) and available_seats(db, target.id) <= 0:
        raise CapacityConflict("no available slots in this session", session_id=session_id)

    db.add(StudentDebtSession(student_id=student_id, session_id=target.id))
    db.flush()
    return EnrollmentOutcome(REGISTERED, f"{student_id}:{target.id}", session_id=target.id)


def register_debt_session(db: Session, student_id: str, session_id: int, policy: MakeupPolicy) -> EnrollmentOutcome:
    return run_atomically(
        db,
        lambda: _register_debt(db, student_id, session_id, policy),
        what=f"debt registration of {student_id} in session {session_id}",
        on_integrity=AlreadyEnrolled,
    )


# ----------------------------
# Compensation decisions
# ----------------------------
def _decide(db: Session, request_id: str, approve: bool, professor_id: str) -> CompensationRequest:
    request = db.execute(
        select(CompensationRequest)
        .options(joinedload(CompensationRequest.occurrence).joinedload(SessionOccurrence.session))
        .where(CompensationRequest.id == request_id)
        .with_for_update(of=CompensationRequest)
    ).unique().scalar_one_or_none()
    if request is None:
        raise NotFound("compensation request not found", request_id=request_id)
    if request.occurrence.session.professor_id != professor_id:
        raise Forbidden("you do not teach this session")
    if request.status != REQUEST_AWAITING:
        raise AlreadyResolved("request already decided", status=request.status)

    request.status = REQUEST_APPROVED if approve else REQUEST_REJECTED
    request.decided_at = datetime.utcnow()
    if approve:
        attendance = db.get(Attendance, request.attendance_id)
        attendance.is_makeup = True
    db.flush()
    return request


def decide_compensation_request(db: Session, request_id: str, approve: bool, professor_id: str) -> CompensationRequest:
    request = run_atomically(
        db,
        lambda: _decide(db, request_id, approve, professor_id),
        what=f"decision on compensation request {request_id}",
    )
    logger.info("compensation request %s -> %s by %s", request_id, request.status, professor_id)
    return request


def pending_requests(db: Session, professor_id: str) -> list:
    return db.execute(
        select(CompensationRequest)
        .join(SessionOccurrence, CompensationRequest.occurrence_id == SessionOccurrence.id)
        .join(ClassSession, SessionOccurrence.session_id == ClassSession.id)
        .where(ClassSession.professor_id == professor_id, CompensationRequest.status == REQUEST_AWAITING)
        .order_by(CompensationRequest.created_at, CompensationRequest.id)
    ).scalars().all()
