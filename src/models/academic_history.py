# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic history API models.

This module defines the request and response models for yearly
academic history generation and retrieval.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.models.common import FinalSituation, ORMModel, SubjectSituation
from src.models.report_card import BimesterSummary


class GenerateHistoryRequest(BaseModel):
    """Request model for consolidating a school year."""

    enrollment_id: str = Field(description="Enrollment identifier")
    school_year_id: str = Field(description="School year identifier")


class UpdateHistoryRequest(BaseModel):
    """Request model for correcting an academic history.

    Setting a decided ``final_situation`` without a ``completion_date``
    stamps the current time, which is how a year pending review is
    resolved.
    """

    enrollment_id: str | None = Field(default=None, description="Enrollment identifier")
    school_year_id: str | None = Field(default=None, description="School year identifier")
    final_situation: FinalSituation | None = Field(default=None, description="Year outcome")
    yearly_average: Decimal | None = Field(default=None, ge=0, le=10, decimal_places=2)
    total_absences: int | None = Field(default=None, ge=0)
    completion_date: datetime | None = None
    notes: str | None = Field(default=None, max_length=2000)


class HistorySubjectResponse(ORMModel):
    """Consolidated outcome of one subject."""

    id: str
    subject_link_id: str
    final_subject_average: Decimal
    total_subject_absences: int
    subject_situation: SubjectSituation
    notes: str | None = None


class AcademicHistoryResponse(ORMModel):
    """Response model for an academic history."""

    id: str
    enrollment_id: str
    school_year_id: str
    final_situation: FinalSituation
    yearly_average: Decimal
    total_absences: int
    subjects_taken: int
    subjects_passed: int
    subjects_failed: int
    completion_date: datetime | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    subjects: list[HistorySubjectResponse] = Field(default_factory=list)


class HistoryStatistics(BaseModel):
    """Year-level figures reported with a generated history."""

    subjects_taken: int
    subjects_passed: int
    subjects_failed: int
    subjects_in_recovery: int
    yearly_average: Decimal
    total_absences: int
    approval_rate: Decimal = Field(description="Percentage of subjects passed")


class GenerateHistoryResponse(BaseModel):
    """Response model for a generated academic history."""

    history: AcademicHistoryResponse
    subjects: list[HistorySubjectResponse]
    statistics: HistoryStatistics
    report_cards_processed: int


class CompleteHistoryResponse(BaseModel):
    """An academic history together with the bimesters it was built from."""

    history: AcademicHistoryResponse
    bimesters: list[BimesterSummary]


class AcademicHistoryListResponse(BaseModel):
    """Response model for academic history listings."""

    items: list[AcademicHistoryResponse]
    total: int


class EnrollmentReportStatistics(BaseModel):
    """Figures across every consolidated year of an enrollment."""

    years_taken: int
    years_passed: int
    years_failed: int
    approval_rate: Decimal = Field(description="Percentage of years passed")
    historical_average: Decimal = Field(description="Mean of the yearly averages")
    total_subjects: int


class EnrollmentReportResponse(BaseModel):
    """Yearly histories of an enrollment with overall statistics."""

    enrollment_id: str
    histories: list[AcademicHistoryResponse]
    statistics: EnrollmentReportStatistics
