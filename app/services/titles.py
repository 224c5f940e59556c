from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session, joinedload

from app.core.errors import Forbidden, NotEligible, NotFound
from app.db.transaction import run_atomically
from app.models.class_session import SESSION_TYPES, ClassSession
from app.models.module import Module
from app.models.module_title import ModuleTitle, TitleProgress
from app.services.progress import (
    build_title_forest,
    completed_title_ids,
    load_titles,
    progress_for_sessions,
    rollup,
    subtree_ids,
)

logger = logging.getLogger(__name__)


def _check_type(session_type: str) -> None:
    if session_type not in SESSION_TYPES:
        raise NotEligible(f"invalid type, must be one of: {', '.join(SESSION_TYPES)}")


def _get_session(db: Session, session_id: int) -> ClassSession:
    session = db.execute(
        select(ClassSession)
        .options(joinedload(ClassSession.module), joinedload(ClassSession.professor))
        .where(ClassSession.id == session_id)
    ).unique().scalar_one_or_none()
    if session is None:
        raise NotFound("session not found", session_id=session_id)
    return session


def session_titles(db: Session, session_id: int) -> dict:
    session = _get_session(db, session_id)
    titles = load_titles(db, session.module_id, session.type)
    done = completed_title_ids(db, [session.id], [t.id for t in titles])[session.id]

    return {
        "session": {
            "id": session.id,
            "module_id": session.module_id,
            "module_name": session.module.name,
            "type": session.type,
            "professor": session.professor.full_name,
        },
        "titles": [node.to_dict() for node in build_title_forest(titles, done)],
        "progress": rollup(titles, done).to_dict(),
    }


def professor_sessions(db: Session, professor_id: str) -> List[dict]:
    sessions = db.execute(
        select(ClassSession)
        .options(joinedload(ClassSession.module), joinedload(ClassSession.day_time))
        .where(ClassSession.professor_id == professor_id)
        .order_by(ClassSession.module_id, ClassSession.type, ClassSession.id)
    ).unique().scalars().all()

    out = []
    for s in sessions:
        progress = progress_for_sessions(db, s.module_id, s.type, [s.id])[s.id]
        out.append(
            {
                "session_id": s.id,
                "module_id": s.module_id,
                "module_name": s.module.name,
                "type": s.type,
                "group_id": s.group_id,
                "section_id": s.section_id,
                "day": s.day_time.day,
                "start_time": s.day_time.start_time,
                "end_time": s.day_time.end_time,
                "progress": progress.to_dict(),
            }
        )
    return out


# ----------------------------
# Title forest edits
# ----------------------------
def next_sibling_order(db: Session, module_id: int, session_type: str, parent_id: Optional[int]) -> int:
    stmt = select(func.coalesce(func.max(ModuleTitle.order), -1) + 1).where(
        ModuleTitle.module_id == module_id, ModuleTitle.type == session_type
    )
    if parent_id is None:
        stmt = stmt.where(ModuleTitle.parent_id.is_(None))
    else:
        stmt = stmt.where(ModuleTitle.parent_id == parent_id)
    return int(db.execute(stmt).scalar_one())


def _create(db: Session, module_id: int, title_name: str, session_type: str, parent_id: Optional[int]) -> ModuleTitle:
    _check_type(session_type)
    if db.get(Module, module_id) is None:
        raise NotFound("module not found", module_id=module_id)
    if parent_id is not None:
        parent = db.get(ModuleTitle, parent_id)
        if parent is None or parent.module_id != module_id or parent.type != session_type:
            raise NotFound("parent title not found", parent_id=parent_id)

    title = ModuleTitle(
        module_id=module_id,
        title_name=title_name,
        type=session_type,
        parent_id=parent_id,
        order=next_sibling_order(db, module_id, session_type, parent_id),
    )
    db.add(title)
    db.flush()
    return title


def create_title(db: Session, module_id: int, title_name: str, session_type: str, parent_id: Optional[int] = None) -> ModuleTitle:
    return run_atomically(
        db,
        lambda: _create(db, module_id, title_name, session_type, parent_id),
        what=f"creation of title {title_name!r}",
    )


def _delete(db: Session, title_id: int) -> int:
    title = db.get(ModuleTitle, title_id)
    if title is None:
        raise NotFound("title not found", title_id=title_id)

    scope = load_titles(db, title.module_id, title.type)
    ids = subtree_ids(scope, title_id)

    db.execute(delete(TitleProgress).where(TitleProgress.title_id.in_(ids)))
    # filhos antes dos pais
    for tid in ids:
        db.execute(delete(ModuleTitle).where(ModuleTitle.id == tid))
    return len(ids)


def delete_title(db: Session, title_id: int) -> int:
    removed = run_atomically(db, lambda: _delete(db, title_id), what=f"deletion of title {title_id}")
    logger.info("title %s deleted with %d node(s)", title_id, removed)
    return removed


# ----------------------------
# Progress flags
# ----------------------------
def _owned_session(db: Session, professor_id: str, session_id: int) -> ClassSession:
    session = _get_session(db, session_id)
    if session.professor_id != professor_id:
        raise Forbidden("you do not have access to this session")
    return session


def _set_flags(
    db: Session,
    professor_id: str,
    session_id: int,
    title_ids: Sequence[int],
    is_completed: bool,
    today: date,
) -> int:
    session = _owned_session(db, professor_id, session_id)
    valid = {t.id for t in load_titles(db, session.module_id, session.type)}
    unknown = [tid for tid in title_ids if tid not in valid]
    if unknown:
        raise Forbidden("titles do not belong to this session's module", title_ids=unknown)

    existing = {
        p.title_id: p
        for p in db.execute(
            select(TitleProgress).where(
                TitleProgress.session_id == session_id, TitleProgress.title_id.in_(list(title_ids))
            )
        ).scalars().all()
    }
    for tid in dict.fromkeys(title_ids):
        row = existing.get(tid)
        if row is None:
            row = TitleProgress(title_id=tid, session_id=session_id)
            db.add(row)
        if row.is_completed != is_completed:
            row.completed_on = today if is_completed else None
        row.is_completed = is_completed
    db.flush()
    return len(set(title_ids))


def set_title_progress(
    db: Session,
    professor_id: str,
    session_id: int,
    title_ids: Sequence[int],
    is_completed: bool,
    today: Optional[date] = None,
) -> int:
    return run_atomically(
        db,
        lambda: _set_flags(db, professor_id, session_id, title_ids, is_completed, today or date.today()),
        what=f"progress update on session {session_id}",
    )
