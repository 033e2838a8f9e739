"""Progression schema: catalogue, prerequisites, enrollment, progress, certificates

Revision ID: 001
Revises:
Create Date: 2026-10-16

Tables created:
  - courses               Catalogue entries owned by an instructor
  - lessons               Ordered lessons, unique (course_id, order_number)
  - course_prerequisites  Directed course -> required course edges
  - enrollments           One row per (user, course)
  - progress_records      First completion of a lesson per user
  - course_completions    First time a user reached 100% of a course
  - certificates          One per (user, course), globally unique code

PostgreSQL-native ENUM types created:
  - course_status         DRAFT / PUBLISHED / ARCHIVED

Downgrade: drops all tables and ENUM types in reverse dependency order.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.text("now()"),
    )


# ─────────────────────────────────────────────────────────────────────────────
#  UPGRADE
# ─────────────────────────────────────────────────────────────────────────────

def upgrade() -> None:
    # ── 1. ENUM types ─────────────────────────────────────────────────────────
    # PostgreSQL has no CREATE TYPE IF NOT EXISTS, so we use a DO/EXCEPTION block.
    op.execute(
        """
        DO $$ BEGIN
            CREATE TYPE course_status AS ENUM ('DRAFT', 'PUBLISHED', 'ARCHIVED');
        EXCEPTION WHEN duplicate_object THEN NULL;
        END $$;
        """
    )

    # ── 2. courses ────────────────────────────────────────────────────────────
    op.create_table(
        "courses",
        sa.Column("course_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("instructor_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("instructor_name", sa.String(200), nullable=False, server_default=""),
        sa.Column(
            "status",
            postgresql.ENUM(
                "DRAFT", "PUBLISHED", "ARCHIVED", name="course_status", create_type=False
            ),
            nullable=False,
            server_default="DRAFT",
        ),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_courses_instructor_id", "courses", ["instructor_id"])
    op.create_index("ix_courses_status", "courses", ["status"])
    op.create_index("ix_courses_created_at", "courses", ["created_at"])

    # ── 3. lessons ────────────────────────────────────────────────────────────
    op.create_table(
        "lessons",
        sa.Column("lesson_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("duration_mins", sa.Integer(), nullable=True),
        sa.Column("order_number", sa.Integer(), nullable=False),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("course_id", "order_number", name="uq_lessons_course_order"),
    )
    op.create_index("ix_lessons_course_id", "lessons", ["course_id"])

    # ── 4. course_prerequisites ───────────────────────────────────────────────
    op.create_table(
        "course_prerequisites",
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "required_course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _timestamp("created_at"),
        sa.CheckConstraint(
            "course_id <> required_course_id", name="ck_course_prerequisites_no_self_loop"
        ),
    )
    op.create_index(
        "ix_course_prerequisites_required_course_id",
        "course_prerequisites",
        ["required_course_id"],
    )

    # ── 5. enrollments ────────────────────────────────────────────────────────
    op.create_table(
        "enrollments",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _timestamp("enrolled_at"),
    )
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"])
    op.create_index("ix_enrollments_enrolled_at", "enrollments", ["enrolled_at"])

    # ── 6. progress_records ───────────────────────────────────────────────────
    op.create_table(
        "progress_records",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "lesson_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("lessons.lesson_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        _timestamp("completed_at"),
    )
    op.create_index("ix_progress_records_lesson_id", "progress_records", ["lesson_id"])

    # ── 7. course_completions ─────────────────────────────────────────────────
    op.create_table(
        "course_completions",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "completion_rate",
            sa.Numeric(5, 2),
            nullable=False,
            server_default=sa.text("100.00"),
        ),
        _timestamp("completed_at"),
    )
    op.create_index("ix_course_completions_course_id", "course_completions", ["course_id"])

    # ── 8. certificates ───────────────────────────────────────────────────────
    op.create_table(
        "certificates",
        sa.Column("certificate_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column(
            "course_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("courses.course_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("certificate_code", sa.String(64), nullable=False, unique=True),
        sa.Column("verification_url", sa.String(500), nullable=False, server_default=""),
        _timestamp("issued_at"),
        sa.Column("recipient_name", sa.String(200), nullable=False, server_default=""),
        sa.Column("course_title", sa.String(300), nullable=False, server_default=""),
        sa.UniqueConstraint("user_id", "course_id", name="uq_certificates_user_course"),
    )
    op.create_index("ix_certificates_course_id", "certificates", ["course_id"])


# ─────────────────────────────────────────────────────────────────────────────
#  DOWNGRADE
# ─────────────────────────────────────────────────────────────────────────────

def downgrade() -> None:
    op.drop_index("ix_certificates_course_id", table_name="certificates")
    op.drop_table("certificates")

    op.drop_index("ix_course_completions_course_id", table_name="course_completions")
    op.drop_table("course_completions")

    op.drop_index("ix_progress_records_lesson_id", table_name="progress_records")
    op.drop_table("progress_records")

    op.drop_index("ix_enrollments_enrolled_at", table_name="enrollments")
    op.drop_index("ix_enrollments_course_id", table_name="enrollments")
    op.drop_table("enrollments")

    op.drop_index(
        "ix_course_prerequisites_required_course_id", table_name="course_prerequisites"
    )
    op.drop_table("course_prerequisites")

    op.drop_index("ix_lessons_course_id", table_name="lessons")
    op.drop_table("lessons")

    op.drop_index("ix_courses_created_at", table_name="courses")
    op.drop_index("ix_courses_status", table_name="courses")
    op.drop_index("ix_courses_instructor_id", table_name="courses")
    op.drop_table("courses")

    op.execute("DROP TYPE IF EXISTS course_status")
