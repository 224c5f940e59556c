import threading
from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

import app.services.enrollment as enrollment
from app.core.errors import (
    AlreadyEnrolled,
    AlreadyResolved,
    CapacityConflict,
    Forbidden,
    NotEligible,
    NotFound,
    StorageFailure,
)
from app.db.base import Base
from app.db.session import build_engine
from app.models.attendance import Attendance
from app.models.makeup import (
    REQUEST_APPROVED,
    REQUEST_AWAITING,
    REQUEST_REJECTED,
    CompensationRequest,
    MakeupEnrollment,
)
from app.services.eligibility import STATUS_ALREADY_RESOLVED, STATUS_ELIGIBLE, resolve_eligible_sessions
from app.services.enrollment import ENROLLED, REQUESTED, decide_compensation_request, enroll, pending_requests
from app.services.policy import MakeupPolicy

from conftest import Campus

POLICY = MakeupPolicy()


def _count(db, model):
    return db.execute(select(func.count()).select_from(model)).scalar_one()


# ----------------------------
# dw
# ----------------------------
def test_second_booking_for_same_absence_is_already_resolved(db, scenario):
    s, attendance = scenario["student"], scenario["attendance"]
    enroll(db, s.matricule, attendance.id, scenario["g3_occ"].id, POLICY)

    with pytest.raises(AlreadyResolved) as exc:
        enroll(db, s.matricule, attendance.id, scenario["g3_occ"].id, POLICY)
    assert exc.value.to_dict()["errorType"] == "already-resolved"
    assert _count(db, MakeupEnrollment) == 1


def test_full_session_is_a_capacity_conflict(db, scenario):
    s, attendance = scenario["student"], scenario["attendance"]
    with pytest.raises(CapacityConflict) as exc:
        enroll(db, s.matricule, attendance.id, scenario["g2_occ"].id, POLICY)
    assert exc.value.error_type == "seat-full"
    assert _count(db, MakeupEnrollment) == 0


def test_same_occurrence_twice_is_already_enrolled(campus, db, scenario):
    s = scenario["student"]
    other_missed = campus.occurrence(scenario["original"], date(2024, 3, 3))
    other_attendance = campus.absence(s, other_missed)
    db.commit()

    enroll(db, s.matricule, scenario["attendance"].id, scenario["g3_occ"].id, POLICY)
    with pytest.raises(AlreadyEnrolled):
        enroll(db, s.matricule, other_attendance.id, scenario["g3_occ"].id, POLICY)


def test_target_must_match_module_and_type(campus, db, scenario):
    s, attendance = scenario["student"], scenario["attendance"]
    g3 = scenario["groups"][2]
    wrong_type = campus.occurrence(campus.session("pw", g3, day="Tuesday"), date(2024, 3, 12))
    wrong_module = campus.occurrence(
        campus.session("dw", g3, module=campus.module_named("Networks")), date(2024, 3, 12)
    )
    db.commit()

    for occurrence in (wrong_type, wrong_module, scenario["missed"]):
        with pytest.raises(NotEligible):
            enroll(db, s.matricule, attendance.id, occurrence.id, POLICY)
    with pytest.raises(NotFound):
        enroll(db, s.matricule, attendance.id, 9999, POLICY)


def test_failure_after_insert_rolls_everything_back(db, scenario, monkeypatch):
    s, attendance = scenario["student"], scenario["attendance"]

    def broken(*args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(enrollment, "EnrollmentOutcome", broken)

    with pytest.raises(StorageFailure):
        enroll(db, s.matricule, attendance.id, scenario["g3_occ"].id, POLICY)

    assert _count(db, MakeupEnrollment) == 0
    assert db.get(Attendance, attendance.id).is_makeup is False


def test_race_for_the_last_seat(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'race.db'}")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    with Session() as setup:
        campus = Campus(setup)
        g1, g3 = campus.group("G1"), campus.group("G3")
        campus.student("G3-0", g3)
        original = campus.session("dw", g1)
        target = campus.session("dw", g3, day="Tuesday", start="10:00", end="11:30", capacity=2)
        missed = campus.occurrence(original, date(2024, 3, 10))
        occurrence = campus.occurrence(target, date(2024, 3, 12))
        bookings = [
            (student.matricule, campus.absence(student, missed).id)
            for student in (campus.student("S001", g1), campus.student("S002", g1))
        ]
        setup.commit()
        occurrence_id = occurrence.id

    barrier = threading.Barrier(2)
    results = []

    def book(student_id, attendance_id):
        with Session() as db:
            barrier.wait()
            try:
                results.append(enroll(db, student_id, attendance_id, occurrence_id, POLICY).status)
            except CapacityConflict as exc:
                results.append(exc.error_type)

    threads = [threading.Thread(target=book, args=b) for b in bookings]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(results) == sorted([ENROLLED, "seat-full"])
    with Session() as check:
        assert _count(check, MakeupEnrollment) == 1
    engine.dispose()


# ----------------------------
# pw
# ----------------------------
@pytest.fixture()
def pw_absence(campus, db):
    g1, g2 = campus.group("G1"), campus.group("G2")
    s = campus.student("S001", g1)
    campus.student("G2-0", g2)
    original = campus.session("pw", g1, day="Sunday")
    # sala lotada: pw não olha vagas
    target = campus.session("pw", g2, day="Monday", start="13:00", end="14:30", capacity=1)
    attendance = campus.absence(s, campus.occurrence(original, date(2024, 3, 10)))
    occurrence = campus.occurrence(target, date(2024, 3, 11))
    db.commit()
    return s, attendance, occurrence


def test_pw_booking_creates_awaiting_request(db, pw_absence):
    s, attendance, occurrence = pw_absence
    outcome = enroll(db, s.matricule, attendance.id, occurrence.id, POLICY)

    assert outcome.status == REQUESTED
    request = db.get(CompensationRequest, outcome.record_id)
    assert (request.status, request.attendance_id) == (REQUEST_AWAITING, attendance.id)
    assert db.get(Attendance, attendance.id).is_makeup is False

    state = resolve_eligible_sessions(db, s.matricule, attendance.id, POLICY)
    assert state.status == STATUS_ALREADY_RESOLVED
    assert state.resolution.status == REQUEST_AWAITING


def test_pw_booking_respects_capacity_when_not_exempt(db, pw_absence):
    s, attendance, occurrence = pw_absence
    with pytest.raises(CapacityConflict):
        enroll(db, s.matricule, attendance.id, occurrence.id, MakeupPolicy(pw_capacity_exempt=False))


def test_professor_approves_request(campus, db, pw_absence):
    s, attendance, occurrence = pw_absence
    outcome = enroll(db, s.matricule, attendance.id, occurrence.id, POLICY)
    assert [r.id for r in pending_requests(db, campus.professor.matricule)] == [outcome.record_id]

    request = decide_compensation_request(db, outcome.record_id, True, campus.professor.matricule)

    assert request.status == REQUEST_APPROVED
    assert request.decided_at is not None
    assert db.get(Attendance, attendance.id).is_makeup is True
    assert pending_requests(db, campus.professor.matricule) == []

    with pytest.raises(AlreadyResolved):
        decide_compensation_request(db, outcome.record_id, False, campus.professor.matricule)


def test_rejected_request_lets_the_student_retry(campus, db, pw_absence):
    s, attendance, occurrence = pw_absence
    outcome = enroll(db, s.matricule, attendance.id, occurrence.id, POLICY)
    decide_compensation_request(db, outcome.record_id, False, campus.professor.matricule)

    state = resolve_eligible_sessions(db, s.matricule, attendance.id, POLICY)
    assert state.status == STATUS_ELIGIBLE
    assert db.get(Attendance, attendance.id).is_makeup is False

    retry = enroll(db, s.matricule, attendance.id, occurrence.id, POLICY)
    assert retry.status == REQUESTED
    statuses = db.execute(select(CompensationRequest.status).order_by(CompensationRequest.created_at)).scalars().all()
    assert sorted(statuses) == sorted([REQUEST_REJECTED, REQUEST_AWAITING])


def test_only_the_session_professor_decides(campus, db, pw_absence):
    s, attendance, occurrence = pw_absence
    other = campus.professor_named("P002", "Rui", "Lima")
    db.commit()
    outcome = enroll(db, s.matricule, attendance.id, occurrence.id, POLICY)

    with pytest.raises(Forbidden):
        decide_compensation_request(db, outcome.record_id, True, other.matricule)
    with pytest.raises(NotFound):
        decide_compensation_request(db, "missing", True, campus.professor.matricule)
    assert db.get(CompensationRequest, outcome.record_id).status == REQUEST_AWAITING


# ----------------------------
# Stale listings: booking re-applies the eligibility rules
# ----------------------------
def test_booking_a_session_ahead_in_the_syllabus_is_refused(campus, db, scenario):
    s, attendance = scenario["student"], scenario["attendance"]
    g4 = campus.group("G4")
    ahead = campus.session("dw", g4, day="Wednesday", start="10:00", end="11:30", capacity=5)
    occurrence = campus.occurrence(ahead, date(2024, 3, 13))
    # 3 títulos: igual ao progresso atual da sessão perdida, mas acima do que ela tinha na falta
    campus.complete(ahead, scenario["titles"][:3])
    db.commit()

    listed = resolve_eligible_sessions(db, s.matricule, attendance.id, POLICY)
    assert occurrence.id not in [e.candidate.occurrence_id for e in listed.eligible_sessions]

    with pytest.raises(NotEligible) as exc:
        enroll(db, s.matricule, attendance.id, occurrence.id, POLICY)
    assert "syllabus" in exc.value.message
    assert _count(db, MakeupEnrollment) == 0
    assert db.get(Attendance, attendance.id).is_makeup is False


def test_booking_over_the_students_own_schedule_is_refused(campus, db, scenario):
    s, attendance = scenario["student"], scenario["attendance"]
    lecture = campus.session("cours", None, day="Tuesday", start="10:30", end="12:00")
    campus.occurrence(lecture, date(2024, 3, 12))
    db.commit()

    with pytest.raises(NotEligible) as exc:
        enroll(db, s.matricule, attendance.id, scenario["g3_occ"].id, POLICY)
    assert "overlaps" in exc.value.message
    assert _count(db, MakeupEnrollment) == 0


def test_booking_over_a_compensated_own_session_is_refused(campus, db, scenario):
    s, attendance = scenario["student"], scenario["attendance"]
    own_pw = campus.session("pw", scenario["groups"][0], day="Wednesday", start="14:00", end="15:30")
    # cancelada antes da janela e reposta na terça, em cima do G3
    campus.occurrence(
        own_pw,
        date(2024, 3, 6),
        prof_absence=True,
        is_compensation=True,
        compensation_day_time_id=campus.slot("Tuesday", "10:00", "11:30").id,
        compensation_date=date(2024, 3, 12),
    )
    db.commit()

    listed = resolve_eligible_sessions(db, s.matricule, attendance.id, POLICY)
    assert listed.eligible_sessions == []
    with pytest.raises(NotEligible):
        enroll(db, s.matricule, attendance.id, scenario["g3_occ"].id, POLICY)


def test_booking_past_the_next_occurrence_depends_on_the_window_policy(campus, db, scenario):
    s, attendance = scenario["student"], scenario["attendance"]
    late = campus.occurrence(scenario["g3_session"], date(2024, 3, 19))
    db.commit()

    with pytest.raises(NotEligible) as exc:
        enroll(db, s.matricule, attendance.id, late.id, POLICY)
    assert "next session" in exc.value.message
    assert _count(db, MakeupEnrollment) == 0

    outcome = enroll(db, s.matricule, attendance.id, late.id, MakeupPolicy(bound_by_next_occurrence=False))
    assert outcome.status == ENROLLED


def test_booking_uses_the_date_a_compensated_occurrence_really_happens(campus, db, scenario):
    s, attendance = scenario["student"], scenario["attendance"]
    g3 = scenario["groups"][2]
    extra = campus.session("dw", g3, day="Wednesday", start="08:00", end="09:30", capacity=5)
    # marcada depois da falta, mas reposta antes dela
    moved_back = campus.occurrence(
        extra,
        date(2024, 3, 13),
        prof_absence=True,
        is_compensation=True,
        compensation_day_time_id=campus.slot("Saturday", "08:00", "09:30").id,
        compensation_date=date(2024, 3, 9),
    )
    # marcada antes da falta, mas reposta dentro da janela
    moved_in = campus.occurrence(
        extra,
        date(2024, 3, 6),
        prof_absence=True,
        is_compensation=True,
        compensation_day_time_id=campus.slot("Thursday", "08:00", "09:30").id,
        compensation_date=date(2024, 3, 14),
    )
    db.commit()

    with pytest.raises(NotEligible) as exc:
        enroll(db, s.matricule, attendance.id, moved_back.id, POLICY)
    assert "before the absence" in exc.value.message

    outcome = enroll(db, s.matricule, attendance.id, moved_in.id, POLICY)
    assert (outcome.status, outcome.occurrence_id) == (ENROLLED, moved_in.id)


def test_pw_request_is_refused_when_it_overlaps(campus, db, pw_absence):
    s, attendance, occurrence = pw_absence
    clash = campus.session("cours", None, day="Monday", start="14:00", end="15:00")
    campus.occurrence(clash, date(2024, 3, 11))
    db.commit()

    with pytest.raises(NotEligible):
        enroll(db, s.matricule, attendance.id, occurrence.id, POLICY)
    assert _count(db, CompensationRequest) == 0
