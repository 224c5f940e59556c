"""
Eligibility filter for makeup sessions.

Given an absence, list the occurrences of other groups' sessions (same module,
same type) the student can join:

* not overlapping anything the student already attends,
* with a free seat (``pw`` is exempt while the policy says so),
* not further along the syllabus than the missed session was.

Results are ordered earliest first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from app.core.errors import MalformedTimeData, NotEligible, NotFound
from app.models.attendance import Attendance
from app.models.class_session import ClassSession, SessionOccurrence
from app.models.makeup import REQUEST_REJECTED, CompensationRequest, MakeupEnrollment
from app.models.people import Student
from app.services.busy_time import BusyInterval, collect_busy_intervals
from app.services.capacity import SeatCount, seat_counts
from app.services.intervals import Interval, conflicts_with_any, format_time
from app.services.policy import MAKEUP_TYPES, MakeupPolicy
from app.services.progress import ProgressSummary, compute_progress, progress_for_sessions

logger = logging.getLogger(__name__)

STATUS_ELIGIBLE = "eligible"
STATUS_ALREADY_RESOLVED = "already_resolved"

ENROLLED = "Enrolled"
COMPENSATED = "Compensated"


def display_time(value: Optional[str]) -> Optional[str]:
    try:
        return format_time(value)
    except MalformedTimeData:
        return value


@dataclass(frozen=True)
class Absence:
    attendance_id: int
    student_id: str
    occurrence_id: int
    session_id: int
    module_id: int
    module_name: str
    session_type: str
    date: date
    day: str
    start: str
    end: str

    def to_dict(self) -> dict:
        return {
            "attendance_id": self.attendance_id,
            "occurrence_id": self.occurrence_id,
            "session_id": self.session_id,
            "module_id": self.module_id,
            "module_name": self.module_name,
            "session_type": self.session_type,
            "date": self.date.isoformat(),
            "day": self.day,
            "start_time": display_time(self.start),
            "end_time": display_time(self.end),
        }


@dataclass(frozen=True)
class Resolution:
    kind: str
    status: str
    record_id: Optional[str] = None
    occurrence_id: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "status": self.status,
            "record_id": self.record_id,
            "occurrence_id": self.occurrence_id,
        }


@dataclass(frozen=True)
class Candidate:
    session_id: int
    occurrence_id: int
    session_type: str
    date: date
    day: str
    start: str
    end: str
    module_name: str = ""
    professor: str = ""
    room: str = ""
    group_id: Optional[int] = None


@dataclass(frozen=True)
class EligibleSession:
    candidate: Candidate
    progress: ProgressSummary
    available_seats: Optional[int] = None

    def to_dict(self) -> dict:
        c = self.candidate
        return {
            "session_id": c.session_id,
            "occurrence_id": c.occurrence_id,
            "session_type": c.session_type,
            "module": c.module_name,
            "date": c.date.isoformat(),
            "day": c.day,
            "start_time": format_time(c.start),
            "end_time": format_time(c.end),
            "professor": c.professor,
            "room": c.room,
            "available_slots": self.available_seats,
            "progress": self.progress.to_dict(),
        }


@dataclass
class EligibilityResult:
    status: str
    original: Absence
    eligible_sessions: List[EligibleSession] = field(default_factory=list)
    progress_summary: Optional[ProgressSummary] = None
    resolution: Optional[Resolution] = None

    def to_dict(self) -> dict:
        return {
            "success": True,
            "status": self.status,
            "original_session": self.original.to_dict(),
            "eligible_sessions": [s.to_dict() for s in self.eligible_sessions],
            "progress_summary": self.progress_summary.to_dict() if self.progress_summary else None,
            "resolution": self.resolution.to_dict() if self.resolution else None,
        }


# ----------------------------
# Loading
# ----------------------------
def load_absence_record(db: Session, student_id: str, attendance_id: int, lock: bool = False) -> Attendance:
    stmt = (
        select(Attendance)
        .options(
            joinedload(Attendance.occurrence)
            .joinedload(SessionOccurrence.session)
            .joinedload(ClassSession.day_time),
            joinedload(Attendance.occurrence)
            .joinedload(SessionOccurrence.session)
            .joinedload(ClassSession.module),
        )
        .where(
            Attendance.id == attendance_id,
            Attendance.student_id == student_id,
            Attendance.present.is_(False),
        )
    )
    if lock:
        stmt = stmt.with_for_update(of=Attendance)
    attendance = db.execute(stmt).unique().scalar_one_or_none()
    if attendance is None:
        raise NotFound("absence not found", attendance_id=attendance_id)
    return attendance


def as_absence(attendance: Attendance) -> Absence:
    occurrence = attendance.occurrence
    session = occurrence.session
    return Absence(
        attendance_id=attendance.id,
        student_id=attendance.student_id,
        occurrence_id=occurrence.id,
        session_id=session.id,
        module_id=session.module_id,
        module_name=session.module.name,
        session_type=session.type,
        date=occurrence.date,
        day=session.day_time.day,
        start=session.day_time.start_time,
        end=session.day_time.end_time,
    )


def find_resolution(db: Session, attendance: Attendance) -> Optional[Resolution]:
    makeup = db.execute(
        select(MakeupEnrollment).where(MakeupEnrollment.attendance_id == attendance.id)
    ).scalar_one_or_none()
    if makeup is not None:
        return Resolution("makeup", ENROLLED, str(makeup.id), makeup.occurrence_id)

    request = db.execute(
        select(CompensationRequest)
        .where(
            CompensationRequest.attendance_id == attendance.id,
            CompensationRequest.status != REQUEST_REJECTED,
        )
        .order_by(CompensationRequest.created_at.desc())
        .limit(1)
    ).scalar_one_or_none()
    if request is not None:
        return Resolution("compensation", request.status, request.id, request.occurrence_id)

    if attendance.is_makeup:
        return Resolution("makeup", COMPENSATED)
    return None


def next_occurrence_date(db: Session, session_id: int, after: date) -> Optional[date]:
    return db.execute(
        select(func.min(SessionOccurrence.date)).where(
            SessionOccurrence.session_id == session_id,
            SessionOccurrence.date > after,
        )
    ).scalar_one_or_none()


def load_candidates(
    db: Session,
    absence: Absence,
    student: Student,
    lower: date,
    upper: Optional[date] = None,
) -> List[Candidate]:
    stmt = (
        select(SessionOccurrence)
        .join(ClassSession, SessionOccurrence.session_id == ClassSession.id)
        .options(
            joinedload(SessionOccurrence.session).joinedload(ClassSession.day_time),
            joinedload(SessionOccurrence.session).joinedload(ClassSession.professor),
            joinedload(SessionOccurrence.session).joinedload(ClassSession.room),
            joinedload(SessionOccurrence.session).joinedload(ClassSession.module),
            joinedload(SessionOccurrence.compensation_day_time),
        )
        .where(
            ClassSession.module_id == absence.module_id,
            ClassSession.type == absence.session_type,
            ClassSession.id != absence.session_id,
            # não dá para "recuperar" dentro do próprio grupo/seção
            or_(ClassSession.group_id.is_(None), ClassSession.group_id != student.group_id),
            or_(ClassSession.section_id.is_(None), ClassSession.section_id != student.section_id),
            # aula cancelada sem compensação não conta
            or_(SessionOccurrence.prof_absence.is_(False), SessionOccurrence.is_compensation.is_(True)),
            SessionOccurrence.effective_date >= lower,
        )
    )
    if upper is not None:
        stmt = stmt.where(SessionOccurrence.effective_date <= upper)

    return [as_candidate(o) for o in db.execute(stmt).unique().scalars().all()]


def as_candidate(occurrence: SessionOccurrence) -> Candidate:
    session = occurrence.session
    slot = occurrence.effective_day_time
    return Candidate(
        session_id=session.id,
        occurrence_id=occurrence.id,
        session_type=session.type,
        date=occurrence.effective_date,
        day=slot.day,
        start=slot.start_time,
        end=slot.end_time,
        module_name=session.module.name,
        professor=session.professor.full_name,
        room=session.room.code,
        group_id=session.group_id,
    )


# ----------------------------
# Filtering (pure)
# ----------------------------
def split_busy(busy: Iterable[BusyInterval]) -> Tuple[List[Interval], Set[date]]:
    intervals: List[Interval] = []
    blocked_dates: Set[date] = set()
    for b in busy:
        try:
            intervals.append(b.to_interval())
        except MalformedTimeData as exc:
            # sem saber o horário, o dia inteiro fica bloqueado
            logger.warning("busy occurrence %s has bad time data (%s); blocking %s", b.occurrence_id, exc, b.date)
            blocked_dates.add(b.date)
    return intervals, blocked_dates


def filter_candidates(
    candidates: Iterable[Candidate],
    busy: Iterable[BusyInterval],
    seats: Dict[int, SeatCount],
    progress: Dict[int, ProgressSummary],
    original_completed: int,
    policy: MakeupPolicy,
) -> List[EligibleSession]:
    busy_intervals, blocked_dates = split_busy(busy)

    kept = []
    for c in candidates:
        try:
            interval = Interval.from_strings(c.date, c.start, c.end)
        except MalformedTimeData as exc:
            logger.warning("dropping candidate occurrence %s: %s", c.occurrence_id, exc)
            continue

        if c.date in blocked_dates or conflicts_with_any(interval, busy_intervals):
            continue

        seat = seats.get(c.session_id)
        if not policy.is_capacity_exempt(c.session_type):
            if seat is None or seat.available <= 0:
                continue

        summary = progress.get(c.session_id, ProgressSummary(completed=0, total=0))
        if summary.completed > original_completed:
            continue

        kept.append(
            (
                interval.start,
                c.occurrence_id,
                EligibleSession(
                    candidate=c,
                    progress=summary,
                    available_seats=seat.available if seat else None,
                ),
            )
        )

    kept.sort(key=lambda item: (item[0], item[1]))
    return [item[2] for item in kept]


def search_window(db: Session, absence: Absence, policy: MakeupPolicy) -> Tuple[date, Optional[date]]:
    lower = absence.date
    upper = next_occurrence_date(db, absence.session_id, lower) if policy.bound_by_next_occurrence else None
    return lower, upper


def ineligibility_reason(
    db: Session,
    absence: Absence,
    student: Student,
    occurrence: SessionOccurrence,
    policy: MakeupPolicy,
) -> Optional[str]:
    """
    Why ``occurrence`` would not be offered for ``absence``, or ``None``.

    Same window, overlap and syllabus rules as the listing, evaluated for a
    single target. Capacity is checked by the caller under its lock.
    """
    candidate = as_candidate(occurrence)

    lower, upper = search_window(db, absence, policy)
    if candidate.date < lower:
        return "occurrence takes place before the absence"
    if upper is not None and candidate.date > upper:
        return "occurrence is after the next session of the missed class"

    try:
        interval = Interval.from_strings(candidate.date, candidate.start, candidate.end)
    except MalformedTimeData as exc:
        return f"occurrence has bad time data ({exc})"

    busy_intervals, blocked_dates = split_busy(collect_busy_intervals(db, student, candidate.date, candidate.date))
    if candidate.date in blocked_dates or conflicts_with_any(interval, busy_intervals):
        return "occurrence overlaps the student's schedule"

    summary = compute_progress(db, absence.module_id, absence.session_type, candidate.session_id)
    original = compute_progress(db, absence.module_id, absence.session_type, absence.session_id, as_of=absence.date)
    if summary.completed > original.completed:
        return "occurrence is further along the syllabus than the missed session"
    return None


# ----------------------------
# Entry point
# ----------------------------
def resolve_eligible_sessions(
    db: Session,
    student_id: str,
    attendance_id: int,
    policy: MakeupPolicy,
) -> EligibilityResult:
    attendance = load_absence_record(db, student_id, attendance_id)
    absence = as_absence(attendance)

    resolution = find_resolution(db, attendance)
    if resolution is not None:
        return EligibilityResult(status=STATUS_ALREADY_RESOLVED, original=absence, resolution=resolution)

    if absence.session_type not in MAKEUP_TYPES:
        raise NotEligible(f"'{absence.session_type}' sessions have no makeup", attendance_id=attendance_id)

    student = db.get(Student, student_id)
    if student is None:
        raise NotFound("student not found")

    lower, upper = search_window(db, absence, policy)

    busy = collect_busy_intervals(db, student, lower, upper)
    candidates = load_candidates(db, absence, student, lower, upper)
    session_ids = {c.session_id for c in candidates}
    seats = seat_counts(db, session_ids)
    progress = progress_for_sessions(db, absence.module_id, absence.session_type, session_ids)

    original_progress = compute_progress(
        db, absence.module_id, absence.session_type, absence.session_id, as_of=absence.date
    )

    eligible = filter_candidates(candidates, busy, seats, progress, original_progress.completed, policy)
    logger.info(
        "attendance %s: %d candidates, %d eligible (window %s..%s)",
        attendance_id, len(candidates), len(eligible), lower, upper or "open end",
    )
    return EligibilityResult(
        status=STATUS_ELIGIBLE,
        original=absence,
        eligible_sessions=eligible,
        progress_summary=original_progress,
    )
