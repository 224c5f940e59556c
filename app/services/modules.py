"""Modules a student follows and how far each of their sessions has got."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, joinedload

from app.core.errors import NotFound
from app.models.class_session import ClassSession
from app.models.debt import StudentDebtModule
from app.models.module import Module
from app.models.people import Student
from app.services.progress import ProgressSummary, progress_for_sessions

MODULE_NORMAL = "normal"
MODULE_DEBT = "debt"


@dataclass(frozen=True)
class SessionProgressRow:
    session_id: int
    session_type: str
    module_name: str
    professor_name: str
    progress: ProgressSummary

    def to_dict(self) -> dict:
        return {
            "session_id": self.session_id,
            "session_type": self.session_type,
            "module_name": self.module_name,
            "professor_name": self.professor_name,
            "completed_titles": self.progress.completed,
            "total_titles": self.progress.total,
            "progress_percentage": self.progress.percentage,
        }


def _module_entry(module: Module, kind: str) -> dict:
    return {"module_id": module.id, "module_name": module.name, "module_type": kind}


def student_modules(db: Session, student_id: str) -> dict:
    student = db.get(Student, student_id)
    if student is None:
        raise NotFound("student not found")

    normal = db.execute(
        select(Module).where(Module.promotion_id == student.promotion_id).order_by(Module.name, Module.id)
    ).scalars().all()
    debt = db.execute(
        select(Module)
        .join(StudentDebtModule, StudentDebtModule.module_id == Module.id)
        .where(StudentDebtModule.student_id == student_id)
        .order_by(Module.name, Module.id)
    ).scalars().all()

    return {
        "normal_modules": [_module_entry(m, MODULE_NORMAL) for m in normal],
        "debt_modules": [_module_entry(m, MODULE_DEBT) for m in debt],
    }


def student_module_sessions(db: Session, student_id: str, module_id: int) -> List[SessionProgressRow]:
    """
    The student's own sessions of a module (group pw/dw, section cours)
    with the syllabus progress each one has reached.
    """
    student = db.get(Student, student_id)
    if student is None:
        raise NotFound("student not found")

    sessions = db.execute(
        select(ClassSession)
        .options(joinedload(ClassSession.module), joinedload(ClassSession.professor))
        .where(
            ClassSession.module_id == module_id,
            or_(ClassSession.group_id == student.group_id, ClassSession.section_id == student.section_id),
        )
        .order_by(ClassSession.type, ClassSession.id)
    ).unique().scalars().all()
    if not sessions:
        raise NotFound("no sessions for this student and module", module_id=module_id)

    by_type: Dict[str, List[int]] = defaultdict(list)
    for s in sessions:
        by_type[s.type].append(s.id)
    progress: Dict[int, ProgressSummary] = {}
    for session_type, ids in by_type.items():
        progress.update(progress_for_sessions(db, module_id, session_type, ids))

    return [
        SessionProgressRow(
            session_id=s.id,
            session_type=s.type,
            module_name=s.module.name,
            professor_name=s.professor.full_name,
            progress=progress[s.id],
        )
        for s in sessions
    ]
