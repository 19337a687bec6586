# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic history domain package.

This package provides year-end consolidation including:
- Per-subject averages, absences and situations
- Year-level situation and statistics
- Academic history storage, correction and retrieval
- Per-enrollment reports across school years
"""

from src.domains.academic_history.consolidation import (
    EnrollmentRecord,
    SubjectOutcome,
    YearOutcome,
    aggregate_enrollment,
    aggregate_year,
    classify_subject,
    consolidate_subjects,
    decide_final_situation,
    round_score,
)
from src.domains.academic_history.service import (
    AcademicHistoryService,
    HistoryAlreadyExistsError,
    HistoryEnrollmentNotFoundError,
    HistoryNotFoundError,
    ReportCardsNotFoundError,
)

__all__ = [
    "AcademicHistoryService",
    "HistoryAlreadyExistsError",
    "HistoryEnrollmentNotFoundError",
    "HistoryNotFoundError",
    "ReportCardsNotFoundError",
    "EnrollmentRecord",
    "SubjectOutcome",
    "YearOutcome",
    "aggregate_enrollment",
    "aggregate_year",
    "classify_subject",
    "consolidate_subjects",
    "decide_final_situation",
    "round_score",
]
