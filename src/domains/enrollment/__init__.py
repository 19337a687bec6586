# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment domain package.

This package provides the enrollment lifecycle including:
- Student enrollment with generated registration numbers
- Class transfers within and across school years
- Enrollment finalization and deletion
"""

from src.domains.enrollment.registration_number import (
    RegistrationNumberGenerator,
    SequenceAllocationError,
    SequenceExhaustedError,
    format_registration_number,
    parse_grade_ordinal,
    sequence_from_number,
)
from src.domains.enrollment.service import (
    DEFAULT_TRANSFER_REASON,
    ActiveEnrollmentExistsError,
    ClassNotFoundError,
    EnrollmentHasDependentsError,
    EnrollmentNotActiveError,
    EnrollmentNotFoundError,
    EnrollmentService,
    MissingReasonError,
    RegistrationNumberConflictError,
    SchoolYearNotFoundError,
    StudentNotFoundError,
)

__all__ = [
    "EnrollmentService",
    "DEFAULT_TRANSFER_REASON",
    "EnrollmentNotFoundError",
    "StudentNotFoundError",
    "ClassNotFoundError",
    "SchoolYearNotFoundError",
    "ActiveEnrollmentExistsError",
    "RegistrationNumberConflictError",
    "EnrollmentNotActiveError",
    "MissingReasonError",
    "EnrollmentHasDependentsError",
    "RegistrationNumberGenerator",
    "SequenceAllocationError",
    "SequenceExhaustedError",
    "format_registration_number",
    "parse_grade_ordinal",
    "sequence_from_number",
]
