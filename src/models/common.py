# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared enumerations and base models for API DTOs.

Statuses and situations are closed enumerations. Persistence stores
their ``value``; everything above the ORM compares enum members.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class EnrollmentStatus(str, Enum):
    """Lifecycle status of an enrollment.

    ``active`` is the only non-terminal status.
    """

    ACTIVE = "active"
    TRANSFERRED = "transferred"
    CONCLUDED = "concluded"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether no transition leaves this status."""
        return self is not EnrollmentStatus.ACTIVE


class FinalizeStatus(str, Enum):
    """Statuses an enrollment can be finalized with."""

    CONCLUDED = "concluded"
    CANCELLED = "cancelled"

    def to_enrollment_status(self) -> EnrollmentStatus:
        """Return the matching enrollment status."""
        return EnrollmentStatus(self.value)


class SubjectSituation(str, Enum):
    """Outcome of one subject over a school year."""

    PASSED = "passed"
    FAILED = "failed"
    RECOVERY = "recovery"


class FinalSituation(str, Enum):
    """Outcome of a whole school year."""

    PASSED = "passed"
    FAILED = "failed"
    PENDING_REVIEW = "pending_review"
    IN_PROGRESS = "in_progress"

    @property
    def is_decided(self) -> bool:
        """Whether the outcome closes the year (sets a completion date)."""
        return self is not FinalSituation.IN_PROGRESS


class ORMModel(BaseModel):
    """Base for response models built from ORM instances."""

    model_config = ConfigDict(from_attributes=True)
