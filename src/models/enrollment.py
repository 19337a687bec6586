# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API models.

This module defines request and response models for the enrollment
lifecycle: creation, class transfer, finalization and lookups.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from src.models.common import EnrollmentStatus, FinalizeStatus, ORMModel


class EnrollmentCreateRequest(BaseModel):
    """Request model for enrolling a student in a class."""

    student_id: str = Field(description="Student identifier")
    class_id: str = Field(description="Class identifier")
    school_year_id: str = Field(description="School year identifier")
    enrollment_date: date = Field(description="Date the student was admitted")
    notes: str | None = Field(default=None, max_length=2000, description="Free-form notes")


class TransferRequest(BaseModel):
    """Request model for moving an enrollment to another class."""

    new_class_id: str = Field(description="Target class identifier")
    reason: str | None = Field(
        default=None,
        max_length=500,
        description="Reason for the transfer",
    )


class EnrollmentUpdateRequest(BaseModel):
    """Request model for correcting an enrollment.

    Only the admission date and notes are editable here. An empty
    ``notes`` string clears the notes.
    """

    enrollment_date: date | None = Field(default=None, description="Date the student was admitted")
    notes: str | None = Field(default=None, max_length=2000, description="Free-form notes")


class FinalizeRequest(BaseModel):
    """Request model for closing an enrollment.

    ``reason`` is optional at the schema level so that a missing reason
    reaches the service and is reported like an empty one.
    """

    status: FinalizeStatus = Field(description="Terminal status: concluded or cancelled")
    reason: str | None = Field(default=None, max_length=500, description="Reason for closing")


class EnrollmentResponse(ORMModel):
    """Response model for an enrollment."""

    id: str
    registration_number: str | None = None
    student_id: str
    class_id: str
    school_year_id: str
    enrollment_date: date
    exit_date: datetime | None = None
    exit_reason: str | None = None
    notes: str | None = None
    status: EnrollmentStatus
    created_at: datetime
    updated_at: datetime


class EnrollmentListResponse(BaseModel):
    """Response model for enrollment listings."""

    items: list[EnrollmentResponse]
    total: int


class DeleteEnrollmentResponse(BaseModel):
    """Response model for a deleted enrollment."""

    id: str
    deleted: bool = True
