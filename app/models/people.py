from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base_class import Base
from app.models.organization import Group

class Student(Base):
    __tablename__ = "students"

    matricule: Mapped[str] = mapped_column(String(30), primary_key=True)
    firstname: Mapped[str] = mapped_column(String(80), nullable=False)
    lastname: Mapped[str] = mapped_column(String(80), nullable=False)

    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    promotion_id: Mapped[int] = mapped_column(ForeignKey("promotions.id"), nullable=False, index=True)
    group_id: Mapped[int] = mapped_column(ForeignKey("groups.id"), nullable=False, index=True)

    group: Mapped[Group] = relationship()

    @property
    def section_id(self) -> int:
        # a seção vem do grupo
        return self.group.section_id


class Professor(Base):
    __tablename__ = "professors"

    matricule: Mapped[str] = mapped_column(String(30), primary_key=True)
    firstname: Mapped[str] = mapped_column(String(80), nullable=False)
    lastname: Mapped[str] = mapped_column(String(80), nullable=False)

    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    @property
    def full_name(self) -> str:
        return f"{self.firstname} {self.lastname}"
