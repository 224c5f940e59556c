from datetime import date

from sqlalchemy import Date, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base

class Promotion(Base):
    __tablename__ = "promotions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    specialty: Mapped[str] = mapped_column(String(120), nullable=False)
    # "L1", "L2", "L3", "M1", "M2"
    level: Mapped[str] = mapped_column(String(20), nullable=False, index=True)


class Section(Base):
    __tablename__ = "sections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    promotion_id: Mapped[int] = mapped_column(ForeignKey("promotions.id"), nullable=False, index=True)


class Group(Base):
    __tablename__ = "groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)

    section_id: Mapped[int] = mapped_column(ForeignKey("sections.id"), nullable=False, index=True)

    section: Mapped[Section] = relationship()


class Semester(Base):
    __tablename__ = "semesters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(40), nullable=False)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
