# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Initial school records schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-02-10
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _fk(name: str, target: str, ondelete: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=False),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("now()"),
        ),
    ]


def upgrade() -> None:
    """Create school records tables."""
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

    # =========================================================================
    # SCHOOL STRUCTURE
    # =========================================================================

    op.create_table(
        "school_years",
        _id(),
        sa.Column("year", sa.Integer, nullable=False),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("is_current", sa.Boolean, nullable=False, server_default="false"),
        *_timestamps(),
        sa.UniqueConstraint("year", name="uq_school_years_year"),
    )

    op.create_table(
        "series",
        _id(),
        sa.Column("name", sa.String(50), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "classes",
        _id(),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("shift", sa.String(20), nullable=True),
        sa.Column("room", sa.String(20), nullable=True),
        _fk("series_id", "series.id", "SET NULL", nullable=True),
        _fk("school_year_id", "school_years.id", "RESTRICT"),
        *_timestamps(),
    )
    op.create_index("ix_classes_school_year_id", "classes", ["school_year_id"])

    op.create_table(
        "subjects",
        _id(),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("code", sa.String(20), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "class_subjects",
        _id(),
        _fk("class_id", "classes.id", "CASCADE"),
        _fk("subject_id", "subjects.id", "RESTRICT"),
        sa.Column("teacher_name", sa.String(200), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("class_id", "subject_id", name="uq_class_subjects_class_id"),
    )
    op.create_index("ix_class_subjects_class_id", "class_subjects", ["class_id"])

    op.create_table(
        "academic_periods",
        _id(),
        _fk("school_year_id", "school_years.id", "CASCADE"),
        sa.Column("bimester", sa.Integer, nullable=False),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "school_year_id", "bimester", name="uq_academic_periods_school_year_id"
        ),
        sa.CheckConstraint(
            "bimester BETWEEN 1 AND 4", name="ck_academic_periods_bimester_range"
        ),
    )
    op.create_index(
        "ix_academic_periods_school_year_id", "academic_periods", ["school_year_id"]
    )

    op.create_table(
        "registration_sequences",
        sa.Column("year", sa.Integer, primary_key=True),
        sa.Column("grade", sa.Integer, primary_key=True),
        sa.Column("last_value", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )

    # =========================================================================
    # STUDENTS
    # =========================================================================

    op.create_table(
        "birth_certificates",
        _id(),
        sa.Column("book", sa.String(20), nullable=False),
        sa.Column("page", sa.String(20), nullable=True),
        sa.Column("term", sa.String(20), nullable=True),
        sa.Column("registry_office", sa.String(200), nullable=True),
        sa.Column("issued_on", sa.Date, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "students",
        _id(),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("national_id", sa.String(20), nullable=False),
        sa.Column("birth_date", sa.Date, nullable=True),
        sa.Column("gender", sa.String(20), nullable=True),
        _fk("birth_certificate_id", "birth_certificates.id", "SET NULL", nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("national_id", name="uq_students_national_id"),
    )

    op.create_table(
        "guardians",
        _id(),
        _fk("student_id", "students.id", "CASCADE"),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("kinship", sa.String(50), nullable=True),
        sa.Column("national_id", sa.String(20), nullable=True),
        sa.Column("phone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_guardians_student_id", "guardians", ["student_id"])

    op.create_table(
        "health_records",
        _id(),
        _fk("student_id", "students.id", "CASCADE"),
        sa.Column("vaccines_up_to_date", sa.Boolean, nullable=False, server_default="false"),
        sa.Column("special_needs", sa.Text, nullable=True),
        sa.Column("food_restrictions", sa.Text, nullable=True),
        sa.Column("allergies", sa.Text, nullable=True),
        sa.Column("medication_allergies", sa.Text, nullable=True),
        sa.Column("continuous_medication", sa.Text, nullable=True),
        sa.Column("ongoing_treatments", sa.JSON, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("student_id", name="uq_health_records_student_id"),
    )

    op.create_table(
        "diagnoses",
        _id(),
        _fk("student_id", "students.id", "CASCADE"),
        sa.Column("conditions", sa.JSON, nullable=False),
        sa.Column("other_diagnoses", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("student_id", name="uq_diagnoses_student_id"),
    )

    # =========================================================================
    # ENROLLMENT
    # =========================================================================

    op.create_table(
        "enrollments",
        _id(),
        sa.Column("registration_number", sa.String(16), nullable=True),
        _fk("student_id", "students.id", "RESTRICT"),
        _fk("class_id", "classes.id", "RESTRICT"),
        _fk("school_year_id", "school_years.id", "RESTRICT"),
        sa.Column("enrollment_date", sa.Date, nullable=False),
        sa.Column("exit_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("exit_reason", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('active', 'transferred', 'concluded', 'cancelled')",
            name="ck_enrollments_status",
        ),
    )
    op.create_index(
        "ix_enrollments_registration_number",
        "enrollments",
        ["registration_number"],
        unique=True,
    )
    op.create_index("ix_enrollments_student_id", "enrollments", ["student_id"])
    op.create_index("ix_enrollments_class_id", "enrollments", ["class_id"])
    op.create_index("ix_enrollments_school_year_id", "enrollments", ["school_year_id"])
    op.create_index(
        "uq_enrollments_active_student_year",
        "enrollments",
        ["student_id", "school_year_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "grades",
        _id(),
        _fk("enrollment_id", "enrollments.id", "RESTRICT"),
        _fk("class_subject_id", "class_subjects.id", "CASCADE"),
        sa.Column("value", sa.Numeric(4, 2), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_grades_enrollment_id", "grades", ["enrollment_id"])

    op.create_table(
        "attendances",
        _id(),
        _fk("enrollment_id", "enrollments.id", "RESTRICT"),
        _fk("class_subject_id", "class_subjects.id", "CASCADE"),
        sa.Column("lesson_date", sa.Date, nullable=False),
        sa.Column("present", sa.Boolean, nullable=False, server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_attendances_enrollment_id", "attendances", ["enrollment_id"])

    # =========================================================================
    # REPORT CARDS
    # =========================================================================

    op.create_table(
        "report_cards",
        _id(),
        _fk("enrollment_id", "enrollments.id", "RESTRICT"),
        _fk("period_id", "academic_periods.id", "RESTRICT"),
        *_timestamps(),
        sa.UniqueConstraint(
            "enrollment_id", "period_id", name="uq_report_cards_enrollment_id"
        ),
    )
    op.create_index("ix_report_cards_enrollment_id", "report_cards", ["enrollment_id"])

    op.create_table(
        "report_card_subjects",
        _id(),
        _fk("report_card_id", "report_cards.id", "CASCADE"),
        _fk("subject_link_id", "class_subjects.id", "RESTRICT"),
        sa.Column("bimester_average", sa.Numeric(4, 2), nullable=False),
        sa.Column("bimester_absences", sa.Integer, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "report_card_id",
            "subject_link_id",
            name="uq_report_card_subjects_report_card_id",
        ),
        sa.CheckConstraint(
            "bimester_average >= 0 AND bimester_average <= 10",
            name="ck_report_card_subjects_average_range",
        ),
        sa.CheckConstraint(
            "bimester_absences >= 0",
            name="ck_report_card_subjects_absences_non_negative",
        ),
    )
    op.create_index(
        "ix_report_card_subjects_report_card_id",
        "report_card_subjects",
        ["report_card_id"],
    )

    # =========================================================================
    # ACADEMIC HISTORY
    # =========================================================================

    op.create_table(
        "academic_histories",
        _id(),
        _fk("enrollment_id", "enrollments.id", "RESTRICT"),
        _fk("school_year_id", "school_years.id", "CASCADE"),
        sa.Column(
            "final_situation", sa.String(20), nullable=False, server_default="in_progress"
        ),
        sa.Column("yearly_average", sa.Numeric(4, 2), nullable=False, server_default="0"),
        sa.Column("total_absences", sa.Integer, nullable=False, server_default="0"),
        sa.Column("subjects_taken", sa.Integer, nullable=False, server_default="0"),
        sa.Column("subjects_passed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("subjects_failed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("completion_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "enrollment_id", "school_year_id", name="uq_academic_histories_enrollment_id"
        ),
    )
    op.create_index(
        "ix_academic_histories_enrollment_id", "academic_histories", ["enrollment_id"]
    )
    op.create_index(
        "ix_academic_histories_school_year_id", "academic_histories", ["school_year_id"]
    )
    op.create_index(
        "ix_academic_histories_final_situation", "academic_histories", ["final_situation"]
    )

    op.create_table(
        "academic_history_subjects",
        _id(),
        _fk("academic_history_id", "academic_histories.id", "CASCADE"),
        _fk("subject_link_id", "class_subjects.id", "CASCADE"),
        sa.Column("final_subject_average", sa.Numeric(4, 2), nullable=False),
        sa.Column("total_subject_absences", sa.Integer, nullable=False, server_default="0"),
        sa.Column("subject_situation", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            "academic_history_id",
            "subject_link_id",
            name="uq_academic_history_subjects_academic_history_id",
        ),
    )
    op.create_index(
        "ix_academic_history_subjects_academic_history_id",
        "academic_history_subjects",
        ["academic_history_id"],
    )
    op.create_index(
        "ix_academic_history_subjects_subject_situation",
        "academic_history_subjects",
        ["subject_situation"],
    )


def downgrade() -> None:
    """Drop all school records tables."""
    # Drop in reverse order to handle foreign keys
    op.drop_table("academic_history_subjects")
    op.drop_table("academic_histories")
    op.drop_table("report_card_subjects")
    op.drop_table("report_cards")
    op.drop_table("attendances")
    op.drop_table("grades")
    op.drop_table("enrollments")
    op.drop_table("diagnoses")
    op.drop_table("health_records")
    op.drop_table("guardians")
    op.drop_table("students")
    op.drop_table("birth_certificates")
    op.drop_table("registration_sequences")
    op.drop_table("academic_periods")
    op.drop_table("class_subjects")
    op.drop_table("subjects")
    op.drop_table("classes")
    op.drop_table("series")
    op.drop_table("school_years")
