# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment API endpoints.

This module provides endpoints for the enrollment lifecycle:
- POST / - Enroll a student (generates the registration number)
- GET / - List enrollments with filtering
- GET /{enrollment_id} - Get enrollment details
- GET /registration/{registration_number} - Get enrollment by registration number
- GET /student/{student_id}/active - Get a student's active enrollment for a year
- PUT /{enrollment_id} - Correct admission date or notes
- PUT /{enrollment_id}/transfer - Transfer to another class
- PUT /{enrollment_id}/finalize - Conclude or cancel
- DELETE /{enrollment_id} - Delete an enrollment no school record depends on
"""

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import DB
from src.core.errors import ServiceError, http_status_for
from src.domains.enrollment import EnrollmentService
from src.models.common import EnrollmentStatus
from src.models.enrollment import (
    DeleteEnrollmentResponse,
    EnrollmentCreateRequest,
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollmentUpdateRequest,
    FinalizeRequest,
    TransferRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> EnrollmentService:
    """Get enrollment service instance.

    Args:
        db: Database session.

    Returns:
        Configured EnrollmentService instance.
    """
    return EnrollmentService(db=db)


def _http_error(error: ServiceError) -> HTTPException:
    return HTTPException(status_code=http_status_for(error.kind), detail=error.to_dict())


@router.post(
    "",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll student",
    description="Enroll a student in a class and generate the registration number.",
)
async def create_enrollment(data: EnrollmentCreateRequest, db: DB) -> EnrollmentResponse:
    """Enroll a student in a class.

    Args:
        data: Enrollment creation request.
        db: Database session.

    Returns:
        Created enrollment with its registration number.

    Raises:
        HTTPException: If a referenced record is missing or the student
            is already enrolled for the school year.
    """
    logger.info(
        "Enrolling student %s in class %s (school year %s)",
        data.student_id,
        data.class_id,
        data.school_year_id,
    )

    service = _get_service(db)

    try:
        return await service.create_enrollment(data)
    except ServiceError as e:
        raise _http_error(e) from e


@router.get(
    "",
    response_model=EnrollmentListResponse,
    summary="List enrollments",
    description="List enrollments, newest first, with optional filters.",
)
async def list_enrollments(
    db: DB,
    student_id: Annotated[str | None, Query(description="Filter by student")] = None,
    class_id: Annotated[str | None, Query(description="Filter by class")] = None,
    school_year_id: Annotated[str | None, Query(description="Filter by school year")] = None,
    status_filter: Annotated[
        EnrollmentStatus | None, Query(alias="status", description="Filter by status")
    ] = None,
) -> EnrollmentListResponse:
    """List enrollments with filtering."""
    service = _get_service(db)

    items, total = await service.list_enrollments(
        student_id=student_id,
        class_id=class_id,
        school_year_id=school_year_id,
        status=status_filter,
    )
    return EnrollmentListResponse(items=items, total=total)


@router.get(
    "/registration/{registration_number}",
    response_model=EnrollmentResponse,
    summary="Get enrollment by registration number",
)
async def get_enrollment_by_registration_number(
    registration_number: str,
    db: DB,
) -> EnrollmentResponse:
    """Get enrollment by registration number."""
    service = _get_service(db)

    try:
        return await service.get_by_registration_number(registration_number)
    except ServiceError as e:
        raise _http_error(e) from e


@router.get(
    "/student/{student_id}/active",
    response_model=EnrollmentResponse,
    summary="Get active enrollment",
    description="Get the active enrollment of a student in a school year.",
)
async def get_active_enrollment(
    student_id: str,
    school_year_id: Annotated[str, Query(description="School year")],
    db: DB,
) -> EnrollmentResponse:
    """Get the active enrollment of a student."""
    service = _get_service(db)

    try:
        return await service.get_active_enrollment(student_id, school_year_id)
    except ServiceError as e:
        raise _http_error(e) from e


@router.get(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment",
)
async def get_enrollment(enrollment_id: str, db: DB) -> EnrollmentResponse:
    """Get enrollment details."""
    service = _get_service(db)

    try:
        return await service.get_enrollment(enrollment_id)
    except ServiceError as e:
        raise _http_error(e) from e


@router.put(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Update enrollment",
    description="Correct the admission date or notes of an enrollment.",
)
async def update_enrollment(
    enrollment_id: str,
    data: EnrollmentUpdateRequest,
    db: DB,
) -> EnrollmentResponse:
    """Update an enrollment."""
    service = _get_service(db)

    try:
        return await service.update_enrollment(enrollment_id, data)
    except ServiceError as e:
        raise _http_error(e) from e


@router.put(
    "/{enrollment_id}/transfer",
    response_model=EnrollmentResponse,
    summary="Transfer enrollment",
    description=(
        "Move the enrollment to another class. Within the same school year the "
        "enrollment is updated in place; across school years a new enrollment "
        "is created and the current one is marked transferred."
    ),
)
async def transfer_enrollment(
    enrollment_id: str,
    data: TransferRequest,
    db: DB,
) -> EnrollmentResponse:
    """Transfer an enrollment to another class.

    Args:
        enrollment_id: Enrollment identifier.
        data: Transfer request.
        db: Database session.

    Returns:
        The updated enrollment, or the new one for a cross-year transfer.

    Raises:
        HTTPException: If enrollment or class not found, or the
            enrollment is no longer active.
    """
    logger.info("Transferring enrollment %s to class %s", enrollment_id, data.new_class_id)

    service = _get_service(db)

    try:
        return await service.transfer_enrollment(enrollment_id, data)
    except ServiceError as e:
        raise _http_error(e) from e


@router.put(
    "/{enrollment_id}/finalize",
    response_model=EnrollmentResponse,
    summary="Finalize enrollment",
    description="Close the enrollment as concluded or cancelled. A reason is required.",
)
async def finalize_enrollment(
    enrollment_id: str,
    data: FinalizeRequest,
    db: DB,
) -> EnrollmentResponse:
    """Finalize an enrollment."""
    service = _get_service(db)

    try:
        return await service.finalize_enrollment(enrollment_id, data)
    except ServiceError as e:
        raise _http_error(e) from e


@router.delete(
    "/{enrollment_id}",
    response_model=DeleteEnrollmentResponse,
    summary="Delete enrollment",
    description="Delete an enrollment. Refused while grades, attendance, report cards or histories reference it.",
)
async def delete_enrollment(enrollment_id: str, db: DB) -> DeleteEnrollmentResponse:
    """Delete an enrollment."""
    service = _get_service(db)

    try:
        await service.delete_enrollment(enrollment_id)
    except ServiceError as e:
        raise _http_error(e) from e

    return DeleteEnrollmentResponse(id=enrollment_id)
