from datetime import date

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base

class ModuleTitle(Base):
    __tablename__ = "module_titles"
    __table_args__ = (
        UniqueConstraint("module_id", "type", "parent_id", "order", name="uq_module_title_sibling_order"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    module_id: Mapped[int] = mapped_column(ForeignKey("modules.id"), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    title_name: Mapped[str] = mapped_column(String(255), nullable=False)

    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("module_titles.id", ondelete="CASCADE"), nullable=True, index=True
    )
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class TitleProgress(Base):
    __tablename__ = "title_progress"
    __table_args__ = (UniqueConstraint("title_id", "session_id", name="uq_title_progress_session"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    title_id: Mapped[int] = mapped_column(
        ForeignKey("module_titles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # progresso é por sessão concreta, não por módulo
    session_id: Mapped[int] = mapped_column(
        ForeignKey("class_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_on: Mapped[date | None] = mapped_column(Date, nullable=True)
