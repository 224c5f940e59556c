from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.errors import NotFound
from app.models.class_session import SessionOccurrence
from app.models.people import Student
from app.services.busy_time import debt_occurrences, makeup_occurrences, regular_occurrences
from app.services.eligibility import display_time
from app.services.intervals import WEEK_DAYS, normalize_day

logger = logging.getLogger(__name__)

# semana letiva: sábado a quinta
SCHOOL_DAYS = WEEK_DAYS[:6]


def week_range(today: date, week_offset: int = 0) -> Tuple[date, date]:
    anchor = today + timedelta(weeks=week_offset)
    saturday = anchor - timedelta(days=(anchor.weekday() + 2) % 7)
    return saturday, saturday + timedelta(days=5)


def _entry(occurrence: SessionOccurrence, scope: str) -> dict:
    session = occurrence.session
    slot = occurrence.effective_day_time
    return {
        "id": occurrence.id,
        "date": occurrence.effective_date.isoformat(),
        "day": normalize_day(slot.day) or slot.day,
        "start_time": display_time(slot.start_time),
        "end_time": display_time(slot.end_time),
        "module_id": session.module_id,
        "module_name": session.module.name,
        "session_id": session.id,
        "session_type": session.type,
        "room": session.room.code,
        "professor": session.professor.full_name,
        "is_cancelled": occurrence.is_cancelled,
        "is_compensation": occurrence.is_compensated,
        "is_debt": scope == "debt",
        "is_makeup": scope == "makeup",
        "scope": scope,
    }


def weekly_schedule(db: Session, student_id: str, week_offset: int = 0, today: Optional[date] = None) -> dict:
    student = db.get(Student, student_id)
    if student is None:
        raise NotFound("student not found")

    start, end = week_range(today or date.today(), week_offset)

    entries: List[dict] = []
    for occurrence in regular_occurrences(db, student, start, end, include_cancelled=True):
        entries.append(_entry(occurrence, "group" if occurrence.session.group_id else "section"))
    entries.extend(_entry(o, "debt") for o in debt_occurrences(db, student, start, end))
    entries.extend(_entry(o, "makeup") for o in makeup_occurrences(db, student, start, end))

    entries.sort(key=lambda e: (e["date"], e["start_time"] or ""))

    by_day: Dict[str, List[dict]] = {day: [] for day in SCHOOL_DAYS}
    for e in entries:
        if e["day"] in by_day:
            by_day[e["day"]].append(e)
        else:
            logger.warning("unexpected day name %r on occurrence %s", e["day"], e["id"])

    return {
        "success": True,
        "schedule": by_day,
        "week_range": {"start": start.isoformat(), "end": end.isoformat(), "week_offset": week_offset},
    }
