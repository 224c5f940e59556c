from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import ensure_student_scope, get_current_user
from app.services.schedule import weekly_schedule

router = APIRouter(prefix="/schedule", tags=["schedule"])


@router.get("/{student_id}")
def get_schedule(
    student_id: str,
    week_offset: int = Query(default=0, ge=-52, le=52),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    ensure_student_scope(student_id, current_user)
    return weekly_schedule(db, student_id, week_offset)
