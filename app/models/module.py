from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base

class Module(Base):
    __tablename__ = "modules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)

    promotion_id: Mapped[int] = mapped_column(ForeignKey("promotions.id"), nullable=False, index=True)
    semester_id: Mapped[int | None] = mapped_column(ForeignKey("semesters.id"), nullable=True, index=True)

    responsible_professor_id: Mapped[str | None] = mapped_column(
        ForeignKey("professors.matricule"), nullable=True
    )


class Room(Base):
    __tablename__ = "rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)

    # "amphi", "td", "tp"
    kind: Mapped[str | None] = mapped_column(String(20), nullable=True)

    capacity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
