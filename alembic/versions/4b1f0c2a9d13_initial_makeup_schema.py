"""initial makeup schema

Revision ID: 4b1f0c2a9d13
Revises:
Create Date: 2026-10-19 09:12:40.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '4b1f0c2a9d13'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

def upgrade() -> None:
    op.create_table(
        "promotions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("specialty", sa.String(length=120), nullable=False),
        sa.Column("level", sa.String(length=20), nullable=False),
    )
    op.create_index("ix_promotions_level", "promotions", ["level"])

    op.create_table(
        "semesters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=40), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
    )

    op.create_table(
        "sections",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("promotion_id", sa.Integer(), sa.ForeignKey("promotions.id"), nullable=False),
    )
    op.create_index("ix_sections_promotion_id", "sections", ["promotion_id"])

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("section_id", sa.Integer(), sa.ForeignKey("sections.id"), nullable=False),
    )
    op.create_index("ix_groups_section_id", "groups", ["section_id"])

    op.create_table(
        "students",
        sa.Column("matricule", sa.String(length=30), primary_key=True),
        sa.Column("firstname", sa.String(length=80), nullable=False),
        sa.Column("lastname", sa.String(length=80), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("promotion_id", sa.Integer(), sa.ForeignKey("promotions.id"), nullable=False),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id"), nullable=False),
    )
    op.create_index("ix_students_promotion_id", "students", ["promotion_id"])
    op.create_index("ix_students_group_id", "students", ["group_id"])

    op.create_table(
        "professors",
        sa.Column("matricule", sa.String(length=30), primary_key=True),
        sa.Column("firstname", sa.String(length=80), nullable=False),
        sa.Column("lastname", sa.String(length=80), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
    )

    op.create_table(
        "modules",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("promotion_id", sa.Integer(), sa.ForeignKey("promotions.id"), nullable=False),
        sa.Column("semester_id", sa.Integer(), sa.ForeignKey("semesters.id"), nullable=True),
        sa.Column("responsible_professor_id", sa.String(length=30), sa.ForeignKey("professors.matricule"), nullable=True),
    )
    op.create_index("ix_modules_promotion_id", "modules", ["promotion_id"])
    op.create_index("ix_modules_semester_id", "modules", ["semester_id"])

    op.create_table(
        "rooms",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=30), nullable=False, unique=True),
        sa.Column("kind", sa.String(length=20), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "day_times",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("day", sa.String(length=20), nullable=False),
        sa.Column("start_time", sa.String(length=8), nullable=False),
        sa.Column("end_time", sa.String(length=8), nullable=False),
    )
    op.create_index("ix_day_times_day", "day_times", ["day"])

    op.create_table(
        "class_sessions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", sa.String(length=10), nullable=False),
        sa.Column("module_id", sa.Integer(), sa.ForeignKey("modules.id"), nullable=False),
        sa.Column("day_time_id", sa.Integer(), sa.ForeignKey("day_times.id"), nullable=False),
        sa.Column("room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=False),
        sa.Column("professor_id", sa.String(length=30), sa.ForeignKey("professors.matricule"), nullable=False),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id"), nullable=True),
        sa.Column("section_id", sa.Integer(), sa.ForeignKey("sections.id"), nullable=True),
    )
    op.create_index("ix_class_sessions_type", "class_sessions", ["type"])
    op.create_index("ix_class_sessions_module_id", "class_sessions", ["module_id"])
    op.create_index("ix_class_sessions_professor_id", "class_sessions", ["professor_id"])
    op.create_index("ix_class_sessions_group_id", "class_sessions", ["group_id"])
    op.create_index("ix_class_sessions_section_id", "class_sessions", ["section_id"])

    op.create_table(
        "session_occurrences",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("class_sessions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("prof_absence", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_compensation", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("compensation_day_time_id", sa.Integer(), sa.ForeignKey("day_times.id"), nullable=True),
        sa.Column("compensation_room_id", sa.Integer(), sa.ForeignKey("rooms.id"), nullable=True),
        sa.Column("compensation_date", sa.Date(), nullable=True),
    )
    op.create_index("ix_session_occurrences_session_id", "session_occurrences", ["session_id"])
    op.create_index("ix_session_occurrences_date", "session_occurrences", ["date"])

    op.create_table(
        "attendances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.String(length=30), sa.ForeignKey("students.matricule"), nullable=False),
        sa.Column("occurrence_id", sa.Integer(), sa.ForeignKey("session_occurrences.id", ondelete="CASCADE"), nullable=False),
        sa.Column("present", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_makeup", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("student_id", "occurrence_id", name="uq_attendance_student_occurrence"),
    )
    op.create_index("ix_attendances_student_id", "attendances", ["student_id"])
    op.create_index("ix_attendances_occurrence_id", "attendances", ["occurrence_id"])

    op.create_table(
        "makeup_enrollments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("student_id", sa.String(length=30), sa.ForeignKey("students.matricule"), nullable=False),
        sa.Column("occurrence_id", sa.Integer(), sa.ForeignKey("session_occurrences.id", ondelete="CASCADE"), nullable=False),
        sa.Column("attendance_id", sa.Integer(), sa.ForeignKey("attendances.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("student_id", "occurrence_id", name="uq_makeup_student_occurrence"),
    )
    op.create_index("ix_makeup_enrollments_student_id", "makeup_enrollments", ["student_id"])
    op.create_index("ix_makeup_enrollments_occurrence_id", "makeup_enrollments", ["occurrence_id"])

    op.create_table(
        "compensation_requests",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("occurrence_id", sa.Integer(), sa.ForeignKey("session_occurrences.id", ondelete="CASCADE"), nullable=False),
        sa.Column("attendance_id", sa.Integer(), sa.ForeignKey("attendances.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_compensation_requests_occurrence_id", "compensation_requests", ["occurrence_id"])
    op.create_index("ix_compensation_requests_attendance_id", "compensation_requests", ["attendance_id"])
    op.create_index("ix_compensation_requests_status", "compensation_requests", ["status"])

    op.create_table(
        "student_debt_modules",
        sa.Column("student_id", sa.String(length=30), sa.ForeignKey("students.matricule"), primary_key=True),
        sa.Column("module_id", sa.Integer(), sa.ForeignKey("modules.id"), primary_key=True),
    )

    op.create_table(
        "student_debt_sessions",
        sa.Column("student_id", sa.String(length=30), sa.ForeignKey("students.matricule"), primary_key=True),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("class_sessions.id", ondelete="CASCADE"), primary_key=True),
    )

    op.create_table(
        "module_titles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("module_id", sa.Integer(), sa.ForeignKey("modules.id"), nullable=False),
        sa.Column("type", sa.String(length=10), nullable=False),
        sa.Column("title_name", sa.String(length=255), nullable=False),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("module_titles.id", ondelete="CASCADE"), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("module_id", "type", "parent_id", "order", name="uq_module_title_sibling_order"),
    )
    op.create_index("ix_module_titles_module_id", "module_titles", ["module_id"])
    op.create_index("ix_module_titles_type", "module_titles", ["type"])
    op.create_index("ix_module_titles_parent_id", "module_titles", ["parent_id"])

    op.create_table(
        "title_progress",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("title_id", sa.Integer(), sa.ForeignKey("module_titles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.Integer(), sa.ForeignKey("class_sessions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completed_on", sa.Date(), nullable=True),
        sa.UniqueConstraint("title_id", "session_id", name="uq_title_progress_session"),
    )
    op.create_index("ix_title_progress_title_id", "title_progress", ["title_id"])
    op.create_index("ix_title_progress_session_id", "title_progress", ["session_id"])

def downgrade() -> None:
    for table in (
        "title_progress",
        "module_titles",
        "student_debt_sessions",
        "student_debt_modules",
        "compensation_requests",
        "makeup_enrollments",
        "attendances",
        "session_occurrences",
        "class_sessions",
        "day_times",
        "rooms",
        "modules",
        "professors",
        "students",
        "groups",
        "sections",
        "semesters",
        "promotions",
    ):
        op.drop_table(table)
