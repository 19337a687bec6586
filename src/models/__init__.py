# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pydantic request and response models."""

from src.models.common import (
    EnrollmentStatus,
    FinalizeStatus,
    FinalSituation,
    ORMModel,
    SubjectSituation,
)

__all__ = [
    "EnrollmentStatus",
    "FinalizeStatus",
    "FinalSituation",
    "ORMModel",
    "SubjectSituation",
]
