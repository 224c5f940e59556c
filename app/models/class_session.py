import datetime

from sqlalchemy import Boolean, Date, ForeignKey, Integer, String, and_, case
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.models.module import Module, Room
from app.models.people import Professor

SESSION_TYPES = ("cours", "pw", "dw")

class DayTime(Base):
    __tablename__ = "day_times"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # "Saturday" ... "Thursday"
    day: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # texto "HH:MM" ou "HH:MM:SS"; validado na hora de comparar
    start_time: Mapped[str] = mapped_column(String(8), nullable=False)
    end_time: Mapped[str] = mapped_column(String(8), nullable=False)


class ClassSession(Base):
    __tablename__ = "class_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # "cours" (seção), "pw" / "dw" (grupo)
    type: Mapped[str] = mapped_column(String(10), nullable=False, index=True)

    module_id: Mapped[int] = mapped_column(ForeignKey("modules.id"), nullable=False, index=True)
    day_time_id: Mapped[int] = mapped_column(ForeignKey("day_times.id"), nullable=False)
    room_id: Mapped[int] = mapped_column(ForeignKey("rooms.id"), nullable=False)
    professor_id: Mapped[str] = mapped_column(ForeignKey("professors.matricule"), nullable=False, index=True)

    group_id: Mapped[int | None] = mapped_column(ForeignKey("groups.id"), nullable=True, index=True)
    section_id: Mapped[int | None] = mapped_column(ForeignKey("sections.id"), nullable=True, index=True)

    module: Mapped[Module] = relationship()
    day_time: Mapped[DayTime] = relationship()
    room: Mapped[Room] = relationship()
    professor: Mapped[Professor] = relationship()


class SessionOccurrence(Base):
    __tablename__ = "session_occurrences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    session_id: Mapped[int] = mapped_column(
        ForeignKey("class_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date: Mapped[datetime.date] = mapped_column(Date, nullable=False, index=True)

    prof_absence: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_compensation: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # quando compensada, a aula acontece em outro horário/sala (e às vezes outro dia)
    compensation_day_time_id: Mapped[int | None] = mapped_column(ForeignKey("day_times.id"), nullable=True)
    compensation_room_id: Mapped[int | None] = mapped_column(ForeignKey("rooms.id"), nullable=True)
    compensation_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)

    session: Mapped[ClassSession] = relationship()
    compensation_day_time: Mapped[DayTime | None] = relationship(foreign_keys=[compensation_day_time_id])

    @property
    def is_cancelled(self) -> bool:
        return self.prof_absence and not self.is_compensation

    @property
    def is_compensated(self) -> bool:
        return self.prof_absence and self.is_compensation

    @hybrid_property
    def effective_date(self) -> datetime.date:
        if self.is_compensated and self.compensation_date is not None:
            return self.compensation_date
        return self.date

    # mesma regra em SQL, para filtrar janelas de datas
    @effective_date.inplace.expression
    @classmethod
    def _effective_date_expression(cls):
        return case(
            (
                and_(
                    cls.prof_absence.is_(True),
                    cls.is_compensation.is_(True),
                    cls.compensation_date.is_not(None),
                ),
                cls.compensation_date,
            ),
            else_=cls.date,
        )

    @property
    def effective_day_time(self) -> DayTime:
        if self.is_compensated and self.compensation_day_time is not None:
            return self.compensation_day_time
        return self.session.day_time
