from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base

class StudentDebtModule(Base):
    __tablename__ = "student_debt_modules"

    student_id: Mapped[str] = mapped_column(ForeignKey("students.matricule"), primary_key=True)
    module_id: Mapped[int] = mapped_column(ForeignKey("modules.id"), primary_key=True)


class StudentDebtSession(Base):
    __tablename__ = "student_debt_sessions"

    student_id: Mapped[str] = mapped_column(ForeignKey("students.matricule"), primary_key=True)
    session_id: Mapped[int] = mapped_column(
        ForeignKey("class_sessions.id", ondelete="CASCADE"), primary_key=True
    )
