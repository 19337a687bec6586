# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Yearly academic histories consolidated from report cards."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import (
    Base,
    TimestampMixin,
    enum_column,
    uuid_column,
    uuid_pk,
)
from src.models.common import FinalSituation, SubjectSituation


class AcademicHistory(Base, TimestampMixin):
    """Outcome of one enrollment over one school year."""

    __tablename__ = "academic_histories"
    __table_args__ = (UniqueConstraint("enrollment_id", "school_year_id"),)

    id: Mapped[str] = uuid_pk()
    enrollment_id: Mapped[str] = uuid_column(
        ForeignKey("enrollments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    school_year_id: Mapped[str] = uuid_column(
        ForeignKey("school_years.id", ondelete="CASCADE"), nullable=False, index=True
    )
    final_situation: Mapped[FinalSituation] = enum_column(
        FinalSituation, nullable=False, default=FinalSituation.IN_PROGRESS, index=True
    )
    yearly_average: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False, default=0)
    total_absences: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    subjects_taken: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    subjects_passed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    subjects_failed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    subjects: Mapped[list["AcademicHistorySubject"]] = relationship(
        back_populates="academic_history",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class AcademicHistorySubject(Base, TimestampMixin):
    """Consolidated outcome of one subject within an academic history."""

    __tablename__ = "academic_history_subjects"
    __table_args__ = (UniqueConstraint("academic_history_id", "subject_link_id"),)

    id: Mapped[str] = uuid_pk()
    academic_history_id: Mapped[str] = uuid_column(
        ForeignKey("academic_histories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_link_id: Mapped[str] = uuid_column(
        ForeignKey("class_subjects.id", ondelete="CASCADE"), nullable=False
    )
    final_subject_average: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
    total_subject_absences: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    subject_situation: Mapped[SubjectSituation] = enum_column(
        SubjectSituation, nullable=False, index=True
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    academic_history: Mapped[AcademicHistory] = relationship(back_populates="subjects")
