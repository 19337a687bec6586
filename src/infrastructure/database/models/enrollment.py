# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment records and the grade/attendance rows that depend on them."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    enum_column,
    uuid_column,
    uuid_pk,
)
from src.models.common import EnrollmentStatus


class Enrollment(Base, TimestampMixin):
    """A student's enrollment in a class for one school year.

    At most one enrollment per (student, school year) may be active; the
    partial unique index backs the service-level check.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        Index(
            "uq_enrollments_active_student_year",
            "student_id",
            "school_year_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: Mapped[str] = uuid_pk()
    registration_number: Mapped[str | None] = mapped_column(
        String(16), unique=True, nullable=True, index=True
    )
    student_id: Mapped[str] = uuid_column(
        ForeignKey("students.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    class_id: Mapped[str] = uuid_column(
        ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    school_year_id: Mapped[str] = uuid_column(
        ForeignKey("school_years.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    enrollment_date: Mapped[date] = mapped_column(Date, nullable=False)
    exit_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    exit_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[EnrollmentStatus] = enum_column(
        EnrollmentStatus, nullable=False, default=EnrollmentStatus.ACTIVE
    )


class Grade(Base, TimestampMixin):
    """A grade awarded to an enrollment in one subject."""

    __tablename__ = "grades"

    id: Mapped[str] = uuid_pk()
    enrollment_id: Mapped[str] = uuid_column(
        ForeignKey("enrollments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    class_subject_id: Mapped[str] = uuid_column(
        ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False
    )
    value: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)


class Attendance(Base, TimestampMixin):
    """A presence/absence mark of an enrollment in one lesson."""

    __tablename__ = "attendances"

    id: Mapped[str] = uuid_pk()
    enrollment_id: Mapped[str] = uuid_column(
        ForeignKey("enrollments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    class_subject_id: Mapped[str] = uuid_column(
        ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False
    )
    lesson_date: Mapped[date] = mapped_column(Date, nullable=False)
    present: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
