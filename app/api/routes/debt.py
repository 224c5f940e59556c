from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import ensure_student_scope, get_current_user, get_policy
from app.schemas.debt import RegisterDebtSessionIn
from app.schemas.makeup import EnrollmentOut
from app.services.debt import debt_session_candidates, list_debt_modules
from app.services.enrollment import register_debt_session
from app.services.policy import MakeupPolicy

router = APIRouter(prefix="/debt", tags=["debt"])


@router.get("/{student_id}/modules")
def get_debt_modules(
    student_id: str,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(student_id, current_user)
    return {"success": True, "modules": [m.to_dict() for m in list_debt_modules(db, student_id)]}


@router.get("/{student_id}/available-sessions/{module_id}/{session_type}")
def get_debt_sessions(
    student_id: str,
    module_id: int,
    session_type: str,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(student_id, current_user)
    return {"success": True, **debt_session_candidates(db, student_id, module_id, session_type)}


@router.post("/{student_id}/register-session", response_model=EnrollmentOut)
def register_session(
    student_id: str,
    payload: RegisterDebtSessionIn,
    db: Session = Depends(get_db),
    policy: MakeupPolicy = Depends(get_policy),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(student_id, current_user)
    return register_debt_session(db, student_id, payload.session_id, policy).to_dict()
