# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student records written by the registration workflow."""

from __future__ import annotations

from datetime import date

from sqlalchemy import JSON, Boolean, Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.infrastructure.database.models.base import Base, TimestampMixin, uuid_column, uuid_pk


class BirthCertificate(Base, TimestampMixin):
    """Civil birth certificate of a student."""

    __tablename__ = "birth_certificates"

    id: Mapped[str] = uuid_pk()
    book: Mapped[str] = mapped_column(String(20), nullable=False)
    page: Mapped[str | None] = mapped_column(String(20), nullable=True)
    term: Mapped[str | None] = mapped_column(String(20), nullable=True)
    registry_office: Mapped[str | None] = mapped_column(String(200), nullable=True)
    issued_on: Mapped[date | None] = mapped_column(Date, nullable=True)


class Student(Base, TimestampMixin):
    """A student of the school."""

    __tablename__ = "students"

    id: Mapped[str] = uuid_pk()
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    national_id: Mapped[str] = mapped_column(String(20), unique=True, nullable=False)
    birth_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    birth_certificate_id: Mapped[str | None] = uuid_column(
        ForeignKey("birth_certificates.id", ondelete="SET NULL"), nullable=True
    )


class Guardian(Base, TimestampMixin):
    """A parent or legal guardian of a student."""

    __tablename__ = "guardians"

    id: Mapped[str] = uuid_pk()
    student_id: Mapped[str] = uuid_column(
        ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    kinship: Mapped[str | None] = mapped_column(String(50), nullable=True)
    national_id: Mapped[str | None] = mapped_column(String(20), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)


class HealthRecord(Base, TimestampMixin):
    """Health questionnaire answered at registration."""

    __tablename__ = "health_records"

    id: Mapped[str] = uuid_pk()
    student_id: Mapped[str] = uuid_column(
        ForeignKey("students.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    vaccines_up_to_date: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    special_needs: Mapped[str | None] = mapped_column(Text, nullable=True)
    food_restrictions: Mapped[str | None] = mapped_column(Text, nullable=True)
    allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    medication_allergies: Mapped[str | None] = mapped_column(Text, nullable=True)
    continuous_medication: Mapped[str | None] = mapped_column(Text, nullable=True)
    ongoing_treatments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class Diagnosis(Base, TimestampMixin):
    """Diagnosed conditions relevant to special education support."""

    __tablename__ = "diagnoses"

    id: Mapped[str] = uuid_pk()
    student_id: Mapped[str] = uuid_column(
        ForeignKey("students.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    conditions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    other_diagnoses: Mapped[str | None] = mapped_column(Text, nullable=True)
