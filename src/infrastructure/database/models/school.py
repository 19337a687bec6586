# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""School structure reference tables.

These tables are maintained by the reference-data CRUD layer. The
enrollment and history services only read them, except for
RegistrationSequence which the registration number generator owns.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, uuid_column, uuid_pk


class SchoolYear(Base, TimestampMixin):
    """A school (academic) year, identified by its calendar year."""

    __tablename__ = "school_years"

    id: Mapped[str] = uuid_pk()
    year: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_current: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Series(Base, TimestampMixin):
    """A grade level such as "1º Ano" or "9th grade"."""

    __tablename__ = "series"

    id: Mapped[str] = uuid_pk()
    name: Mapped[str] = mapped_column(String(50), nullable=False)


class SchoolClass(Base, TimestampMixin):
    """A class (section) of a series within a school year."""

    __tablename__ = "classes"

    id: Mapped[str] = uuid_pk()
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    shift: Mapped[str | None] = mapped_column(String(20), nullable=True)
    room: Mapped[str | None] = mapped_column(String(20), nullable=True)
    series_id: Mapped[str | None] = uuid_column(
        ForeignKey("series.id", ondelete="SET NULL"), nullable=True
    )
    school_year_id: Mapped[str] = uuid_column(
        ForeignKey("school_years.id", ondelete="RESTRICT"), nullable=False, index=True
    )


class Subject(Base, TimestampMixin):
    """A subject taught at the school."""

    __tablename__ = "subjects"

    id: Mapped[str] = uuid_pk()
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[str | None] = mapped_column(String(20), nullable=True)


class ClassSubject(Base, TimestampMixin):
    """Link between a class, a subject and its teacher.

    Report cards and academic histories reference subjects through this
    link (the "subject link").
    """

    __tablename__ = "class_subjects"
    __table_args__ = (UniqueConstraint("class_id", "subject_id"),)

    id: Mapped[str] = uuid_pk()
    class_id: Mapped[str] = uuid_column(
        ForeignKey("classes.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_id: Mapped[str] = uuid_column(
        ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False
    )
    teacher_name: Mapped[str | None] = mapped_column(String(200), nullable=True)


class AcademicPeriod(Base, TimestampMixin):
    """One bimester of a school year."""

    __tablename__ = "academic_periods"
    __table_args__ = (
        UniqueConstraint("school_year_id", "bimester"),
        CheckConstraint("bimester BETWEEN 1 AND 4", name="bimester_range"),
    )

    id: Mapped[str] = uuid_pk()
    school_year_id: Mapped[str] = uuid_column(
        ForeignKey("school_years.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bimester: Mapped[int] = mapped_column(Integer, nullable=False)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class RegistrationSequence(Base, TimestampMixin):
    """Last registration sequence handed out for a (year, grade) pair.

    The row is locked with SELECT ... FOR UPDATE while the next number is
    computed, so concurrent enrollments in the same partition serialize.
    """

    __tablename__ = "registration_sequences"

    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    grade: Mapped[int] = mapped_column(Integer, primary_key=True)
    last_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
