from sqlalchemy import Boolean, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.models.class_session import SessionOccurrence

class Attendance(Base):
    __tablename__ = "attendances"
    __table_args__ = (UniqueConstraint("student_id", "occurrence_id", name="uq_attendance_student_occurrence"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    student_id: Mapped[str] = mapped_column(ForeignKey("students.matricule"), nullable=False, index=True)
    occurrence_id: Mapped[int] = mapped_column(
        ForeignKey("session_occurrences.id", ondelete="CASCADE"), nullable=False, index=True
    )

    present: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # falta já resolvida (rattrapage feito ou compensação aprovada)
    is_makeup: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    occurrence: Mapped[SessionOccurrence] = relationship()
