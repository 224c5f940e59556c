from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_professor, get_current_user
from app.schemas.titles import BulkTitleProgressIn, TitleCreate, TitleOut, TitleProgressIn
from app.services.titles import (
    create_title,
    delete_title,
    professor_sessions,
    session_titles,
    set_title_progress,
)

router = APIRouter(prefix="/titles", tags=["titles"])


@router.get("/sessions/{session_id}")
def get_session_titles(
    session_id: int,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return {"success": True, **session_titles(db, session_id)}


@router.get("/professors/{professor_id}/sessions")
def get_professor_sessions(
    professor_id: str,
    db: Session = Depends(get_db),
    professor=Depends(get_current_professor),
):
    return {"success": True, "sessions": professor_sessions(db, professor_id)}


@router.post("", response_model=TitleOut, status_code=201)
def add_title(
    payload: TitleCreate,
    db: Session = Depends(get_db),
    professor=Depends(get_current_professor),
):
    return create_title(db, payload.module_id, payload.title_name, payload.type, payload.parent_id)


@router.delete("/{title_id}")
def remove_title(
    title_id: int,
    db: Session = Depends(get_db),
    professor=Depends(get_current_professor),
):
    removed = delete_title(db, title_id)
    return {"success": True, "deleted": removed}


@router.post("/progress")
def update_progress(
    payload: TitleProgressIn,
    db: Session = Depends(get_db),
    professor=Depends(get_current_professor),
):
    updated = set_title_progress(db, professor["sub"], payload.session_id, [payload.title_id], payload.is_completed)
    return {"success": True, "updated": updated}


@router.post("/progress/bulk")
def update_progress_bulk(
    payload: BulkTitleProgressIn,
    db: Session = Depends(get_db),
    professor=Depends(get_current_professor),
):
    updated = set_title_progress(db, professor["sub"], payload.session_id, payload.title_ids, payload.is_completed)
    return {"success": True, "updated": updated}
