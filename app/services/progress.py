"""
Syllabus progress.

Titles of a module form a forest per session type (``cours``/``pw``/``dw``);
professors flag titles as completed per concrete session, since groups move
through the syllabus at different paces.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Set, Tuple

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.models.module_title import ModuleTitle, TitleProgress

logger = logging.getLogger(__name__)


@dataclass
class TitleNode:
    id: int
    title_name: str
    type: str
    order: int
    parent_id: Optional[int] = None
    is_completed: bool = False
    children: List["TitleNode"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title_name": self.title_name,
            "type": self.type,
            "order": self.order,
            "parent_id": self.parent_id,
            "is_completed": self.is_completed,
            "children": [c.to_dict() for c in self.children],
        }


@dataclass(frozen=True)
class ProgressSummary:
    completed: int
    total: int

    @property
    def percentage(self) -> int:
        if self.total <= 0:
            return 0
        # arredonda .5 para cima, igual ao ROUND do postgres
        return (self.completed * 200 + self.total) // (2 * self.total)

    def to_dict(self) -> dict:
        return {
            "completed_titles": self.completed,
            "total_titles": self.total,
            "percentage": self.percentage,
        }


def walk_forest(roots: Iterable[TitleNode]) -> Iterator[Tuple[TitleNode, int]]:
    """Pre-order walk yielding ``(node, depth)``, siblings in order."""
    stack = [(node, 0) for node in reversed(list(roots))]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        stack.extend((child, depth + 1) for child in reversed(node.children))


def build_title_forest(titles: Sequence[ModuleTitle], completed_ids: Set[int] = frozenset()) -> List[TitleNode]:
    nodes: Dict[int, TitleNode] = {
        t.id: TitleNode(
            id=t.id,
            title_name=t.title_name,
            type=t.type,
            order=t.order,
            parent_id=t.parent_id,
            is_completed=t.id in completed_ids,
        )
        for t in titles
    }
    ordered = sorted(nodes.values(), key=lambda n: (n.order, n.id))

    roots: List[TitleNode] = []
    for node in ordered:
        parent = nodes.get(node.parent_id) if node.parent_id is not None else None
        if parent is None:
            if node.parent_id is not None:
                logger.warning("title %s points to missing parent %s; kept as root", node.id, node.parent_id)
            roots.append(node)
        else:
            parent.children.append(node)

    # nós presos num ciclo de parent_id nunca são alcançados a partir de uma raiz
    reached = {n.id for n, _ in walk_forest(roots)}
    for node in ordered:
        if node.id in reached:
            continue
        logger.warning("title %s is part of a parent cycle; kept as root", node.id)
        nodes[node.parent_id].children.remove(node)
        roots.append(node)
        reached.update(n.id for n, _ in walk_forest([node]))

    return roots


def subtree_ids(titles: Sequence[ModuleTitle], root_id: int) -> List[int]:
    """Ids of ``root_id`` and all its descendants, children before parents."""
    children: Dict[int, List[int]] = {}
    for t in titles:
        if t.parent_id is not None:
            children.setdefault(t.parent_id, []).append(t.id)

    seen: List[int] = []
    visited: Set[int] = set()
    stack = [root_id]
    while stack:
        current = stack.pop()
        if current in visited:
            continue
        visited.add(current)
        seen.append(current)
        stack.extend(children.get(current, []))
    return list(reversed(seen))


def load_titles(db: Session, module_id: int, session_type: str) -> List[ModuleTitle]:
    return list(
        db.execute(
            select(ModuleTitle)
            .where(ModuleTitle.module_id == module_id, ModuleTitle.type == session_type)
            .order_by(ModuleTitle.order, ModuleTitle.id)
        ).scalars().all()
    )


def completed_title_ids(
    db: Session,
    session_ids: Iterable[int],
    title_ids: Iterable[int],
    as_of: Optional[date] = None,
) -> Dict[int, Set[int]]:
    sids, tids = list(set(session_ids)), list(set(title_ids))
    out: Dict[int, Set[int]] = {sid: set() for sid in sids}
    if not sids or not tids:
        return out

    stmt = select(TitleProgress.session_id, TitleProgress.title_id).where(
        TitleProgress.session_id.in_(sids),
        TitleProgress.title_id.in_(tids),
        TitleProgress.is_completed.is_(True),
    )
    if as_of is not None:
        stmt = stmt.where(or_(TitleProgress.completed_on.is_(None), TitleProgress.completed_on <= as_of))

    for sid, tid in db.execute(stmt).all():
        out[sid].add(tid)
    return out


def rollup(titles: Sequence[ModuleTitle], completed_ids: Set[int]) -> ProgressSummary:
    total = completed = 0
    for node, _ in walk_forest(build_title_forest(titles, completed_ids)):
        total += 1
        completed += 1 if node.is_completed else 0
    return ProgressSummary(completed=completed, total=total)


def progress_for_sessions(
    db: Session,
    module_id: int,
    session_type: str,
    session_ids: Iterable[int],
    as_of: Optional[date] = None,
) -> Dict[int, ProgressSummary]:
    titles = load_titles(db, module_id, session_type)
    done = completed_title_ids(db, session_ids, [t.id for t in titles], as_of=as_of)
    return {sid: rollup(titles, ids) for sid, ids in done.items()}


def compute_progress(
    db: Session,
    module_id: int,
    session_type: str,
    session_id: int,
    as_of: Optional[date] = None,
) -> ProgressSummary:
    return progress_for_sessions(db, module_id, session_type, [session_id], as_of=as_of)[session_id]
