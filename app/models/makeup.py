import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.models.class_session import SessionOccurrence

REQUEST_AWAITING = "Awaiting response"
REQUEST_APPROVED = "Approved"
REQUEST_REJECTED = "Rejected"

class MakeupEnrollment(Base):
    """Direct (dw) enrollment of a student into another group's occurrence."""

    __tablename__ = "makeup_enrollments"
    __table_args__ = (
        UniqueConstraint("student_id", "occurrence_id", name="uq_makeup_student_occurrence"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    student_id: Mapped[str] = mapped_column(ForeignKey("students.matricule"), nullable=False, index=True)
    occurrence_id: Mapped[int] = mapped_column(
        ForeignKey("session_occurrences.id", ondelete="CASCADE"), nullable=False, index=True
    )

    # uma falta -> no máximo um rattrapage
    attendance_id: Mapped[int] = mapped_column(
        ForeignKey("attendances.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    occurrence: Mapped[SessionOccurrence] = relationship()


class CompensationRequest(Base):
    """Request-based (pw) compensation, waiting for a professor's decision."""

    __tablename__ = "compensation_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    occurrence_id: Mapped[int] = mapped_column(
        ForeignKey("session_occurrences.id", ondelete="CASCADE"), nullable=False, index=True
    )
    attendance_id: Mapped[int] = mapped_column(
        ForeignKey("attendances.id", ondelete="CASCADE"), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(String(30), nullable=False, default=REQUEST_AWAITING, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    decided_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    occurrence: Mapped[SessionOccurrence] = relationship()
