import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTH_SECRET"] = "test-secret"
os.environ["AUTO_CREATE_TABLES"] = "false"

from datetime import date
from itertools import count

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core.security import hash_password
from app.db.base import Base
from app.db.session import build_engine, get_db
from app.models.attendance import Attendance
from app.models.class_session import ClassSession, DayTime, SessionOccurrence
from app.models.debt import StudentDebtModule
from app.models.module import Module, Room
from app.models.module_title import ModuleTitle, TitleProgress
from app.models.organization import Group, Promotion, Section, Semester
from app.models.people import Professor, Student

PASSWORD = "s3cret-pass"
PASSWORD_HASH = hash_password(PASSWORD)


class Campus:
    """Small builder for one promotion/section with a module and its sessions."""

    def __init__(self, db):
        self.db = db
        self._codes = count(1)

        self.promotion = self.add(Promotion(specialty="Computer Science", level="L2"))
        self.semester = self.add(
            Semester(name="S2", start_date=date(2024, 2, 1), end_date=date(2024, 6, 30))
        )
        self.section = self.add(Section(name="A", promotion_id=self.promotion.id))
        self.professor = self.professor_named("P001", "Ana", "Souza")
        self.module = self.module_named("Algorithms")

    def add(self, obj):
        self.db.add(obj)
        self.db.flush()
        return obj

    def professor_named(self, matricule, firstname, lastname):
        return self.add(
            Professor(
                matricule=matricule,
                firstname=firstname,
                lastname=lastname,
                password_hash=PASSWORD_HASH,
            )
        )

    def module_named(self, name):
        return self.add(
            Module(
                name=name,
                promotion_id=self.promotion.id,
                semester_id=self.semester.id,
                responsible_professor_id=self.professor.matricule,
            )
        )

    def group(self, name, section=None):
        return self.add(Group(name=name, section_id=(section or self.section).id))

    def student(self, matricule, group):
        return self.add(
            Student(
                matricule=matricule,
                firstname="Student",
                lastname=matricule,
                password_hash=PASSWORD_HASH,
                promotion_id=self.promotion.id,
                group_id=group.id,
            )
        )

    def room(self, capacity, kind="td"):
        return self.add(Room(code=f"R{next(self._codes):03d}", kind=kind, capacity=capacity))

    def slot(self, day, start, end):
        return self.add(DayTime(day=day, start_time=start, end_time=end))

    def session(
        self,
        session_type,
        group=None,
        day="Sunday",
        start="08:00",
        end="09:30",
        capacity=30,
        module=None,
        professor=None,
    ):
        return self.add(
            ClassSession(
                type=session_type,
                module_id=(module or self.module).id,
                day_time_id=self.slot(day, start, end).id,
                room_id=self.room(capacity).id,
                professor_id=(professor or self.professor).matricule,
                group_id=group.id if group is not None else None,
                section_id=self.section.id if group is None else None,
            )
        )

    def occurrence(self, session, on, **kwargs):
        return self.add(SessionOccurrence(session_id=session.id, date=on, **kwargs))

    def absence(self, student, occurrence):
        return self.add(
            Attendance(student_id=student.matricule, occurrence_id=occurrence.id, present=False)
        )

    def presence(self, student, occurrence):
        return self.add(
            Attendance(student_id=student.matricule, occurrence_id=occurrence.id, present=True)
        )

    def titles(self, session_type, n, module=None):
        module = module or self.module
        return [
            self.add(ModuleTitle(module_id=module.id, type=session_type, title_name=f"Chapter {i + 1}", order=i))
            for i in range(n)
        ]

    def complete(self, session, titles, on=date(2024, 3, 1)):
        for t in titles:
            self.add(TitleProgress(title_id=t.id, session_id=session.id, is_completed=True, completed_on=on))

    def debt(self, student, module):
        return self.add(StudentDebtModule(student_id=student.matricule, module_id=module.id))


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture()
def campus(db):
    return Campus(db)


@pytest.fixture()
def scenario(campus, db):
    """
    Student S (group G1) missed the dw session of 2024-03-10 (a Sunday) with
    2 of 5 titles covered. G2's dw session covered 3 and is full, G3's covered
    1 and has 2 free seats.
    """
    g1, g2, g3 = campus.group("G1"), campus.group("G2"), campus.group("G3")

    s = campus.student("S001", g1)
    for i in range(2):
        campus.student(f"G2-{i}", g2)
    campus.student("G3-0", g3)

    original = campus.session("dw", g1, day="Sunday", start="08:00", end="09:30", capacity=30)
    g2_session = campus.session("dw", g2, day="Monday", start="10:00", end="11:30", capacity=2)
    g3_session = campus.session("dw", g3, day="Tuesday", start="10:00", end="11:30", capacity=3)

    missed = campus.occurrence(original, date(2024, 3, 10))
    campus.occurrence(original, date(2024, 3, 17))
    g2_occ = campus.occurrence(g2_session, date(2024, 3, 11))
    g3_occ = campus.occurrence(g3_session, date(2024, 3, 12))

    titles = campus.titles("dw", 5)
    campus.complete(original, titles[:2])
    # marcado depois da falta: não conta para o progresso da sessão perdida
    campus.complete(original, titles[2:3], on=date(2024, 3, 14))
    campus.complete(g2_session, titles[:3])
    campus.complete(g3_session, titles[:1])

    attendance = campus.absence(s, missed)
    db.commit()

    return {
        "student": s,
        "groups": (g1, g2, g3),
        "original": original,
        "g2_session": g2_session,
        "g3_session": g3_session,
        "missed": missed,
        "g2_occ": g2_occ,
        "g3_occ": g3_occ,
        "titles": titles,
        "attendance": attendance,
    }


@pytest.fixture()
def client(db):
    from app.main import app

    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
