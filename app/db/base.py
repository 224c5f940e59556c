# importa todos os models para o metadata ficar completo (create_all / alembic)
from app.db.base_class import Base

from app.models.organization import Promotion, Section, Group, Semester
from app.models.people import Student, Professor
from app.models.module import Module, Room
from app.models.class_session import DayTime, ClassSession, SessionOccurrence
from app.models.attendance import Attendance
from app.models.makeup import MakeupEnrollment, CompensationRequest
from app.models.debt import StudentDebtModule, StudentDebtSession
from app.models.module_title import ModuleTitle, TitleProgress
