# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""SQLAlchemy ORM models for the school database.

Importing this package registers every table on ``Base.metadata``.
"""

from src.infrastructure.database.models.academic_history import (
    AcademicHistory,
    AcademicHistorySubject,
)
from src.infrastructure.database.models.base import Base, TimestampMixin
from src.infrastructure.database.models.enrollment import Attendance, Enrollment, Grade
from src.infrastructure.database.models.report_card import ReportCard, ReportCardSubject
from src.infrastructure.database.models.school import (
    AcademicPeriod,
    ClassSubject,
    RegistrationSequence,
    SchoolClass,
    SchoolYear,
    Series,
    Subject,
)
from src.infrastructure.database.models.student import (
    BirthCertificate,
    Diagnosis,
    Guardian,
    HealthRecord,
    Student,
)

__all__ = [
    "Base",
    "TimestampMixin",
    # School structure
    "SchoolYear",
    "Series",
    "SchoolClass",
    "Subject",
    "ClassSubject",
    "AcademicPeriod",
    "RegistrationSequence",
    # Students
    "BirthCertificate",
    "Student",
    "Guardian",
    "HealthRecord",
    "Diagnosis",
    # Enrollment
    "Enrollment",
    "Grade",
    "Attendance",
    # Report cards
    "ReportCard",
    "ReportCardSubject",
    # Academic history
    "AcademicHistory",
    "AcademicHistorySubject",
]
