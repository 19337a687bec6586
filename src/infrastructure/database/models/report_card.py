# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Bimester report cards."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.infrastructure.database.models.base import Base, TimestampMixin, uuid_column, uuid_pk


class ReportCard(Base, TimestampMixin):
    """Report card of one enrollment for one bimester."""

    __tablename__ = "report_cards"
    __table_args__ = (UniqueConstraint("enrollment_id", "period_id"),)

    id: Mapped[str] = uuid_pk()
    enrollment_id: Mapped[str] = uuid_column(
        ForeignKey("enrollments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    period_id: Mapped[str] = uuid_column(
        ForeignKey("academic_periods.id", ondelete="RESTRICT"), nullable=False
    )

    subjects: Mapped[list["ReportCardSubject"]] = relationship(
        back_populates="report_card",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class ReportCardSubject(Base, TimestampMixin):
    """Average and absences of one subject in a report card."""

    __tablename__ = "report_card_subjects"
    __table_args__ = (
        UniqueConstraint("report_card_id", "subject_link_id"),
        CheckConstraint(
            "bimester_average >= 0 AND bimester_average <= 10", name="average_range"
        ),
        CheckConstraint("bimester_absences >= 0", name="absences_non_negative"),
    )

    id: Mapped[str] = uuid_pk()
    report_card_id: Mapped[str] = uuid_column(
        ForeignKey("report_cards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    subject_link_id: Mapped[str] = uuid_column(
        ForeignKey("class_subjects.id", ondelete="RESTRICT"), nullable=False
    )
    bimester_average: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
    bimester_absences: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    report_card: Mapped[ReportCard] = relationship(back_populates="subjects")
