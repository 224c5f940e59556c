from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import ensure_student_scope, get_current_professor, get_current_user, get_policy
from app.schemas.makeup import (
    AbsenceRateOut,
    CompensationRequestOut,
    DecisionIn,
    EnrollmentOut,
    SelectSessionIn,
)
from app.services.attendance import compute_absence_rate, list_absences
from app.services.eligibility import resolve_eligible_sessions
from app.services.enrollment import decide_compensation_request, enroll, pending_requests
from app.services.modules import student_module_sessions, student_modules
from app.services.policy import MakeupPolicy

router = APIRouter(prefix="/makeup", tags=["makeup"])


# ----------------------------
# Student side
# ----------------------------
@router.get("/{student_id}/absences")
def get_absences(
    student_id: str,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(student_id, current_user)
    return {"success": True, "modules": list_absences(db, student_id)}


@router.get("/{student_id}/available-sessions/{attendance_id}")
def get_available_sessions(
    student_id: str,
    attendance_id: int,
    db: Session = Depends(get_db),
    policy: MakeupPolicy = Depends(get_policy),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(student_id, current_user)
    return resolve_eligible_sessions(db, student_id, attendance_id, policy).to_dict()


@router.post("/select-session", response_model=EnrollmentOut)
def select_session(
    payload: SelectSessionIn,
    db: Session = Depends(get_db),
    policy: MakeupPolicy = Depends(get_policy),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(payload.student_id, current_user)
    outcome = enroll(db, payload.student_id, payload.attendance_id, payload.occurrence_id, policy)
    return outcome.to_dict()


@router.get("/{student_id}/absence-rate", response_model=AbsenceRateOut)
def get_absence_rate(
    student_id: str,
    semester_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(student_id, current_user)
    rate = compute_absence_rate(db, student_id, semester_id)
    return AbsenceRateOut(student_id=student_id, semester_id=semester_id, absence_rate=rate)


@router.get("/{student_id}/modules")
def get_modules(
    student_id: str,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(student_id, current_user)
    return student_modules(db, student_id)


@router.get("/{student_id}/modules/{module_id}/sessions")
def get_module_sessions(
    student_id: str,
    module_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(student_id, current_user)
    rows = student_module_sessions(db, student_id, module_id)
    return {"success": True, "data": [r.to_dict() for r in rows]}


# ----------------------------
# Professor side (pw requests)
# ----------------------------
@router.get("/compensation-requests", response_model=List[CompensationRequestOut])
def list_compensation_requests(
    db: Session = Depends(get_db),
    professor=Depends(get_current_professor),
):
    return pending_requests(db, professor["sub"])


@router.post("/compensation-requests/{request_id}/decision", response_model=CompensationRequestOut)
def decide_request(
    request_id: str,
    payload: DecisionIn,
    db: Session = Depends(get_db),
    professor=Depends(get_current_professor),
):
    return decide_compensation_request(db, request_id, payload.approve, professor["sub"])
