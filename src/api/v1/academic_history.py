# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic history API endpoints.

This module provides endpoints for year-end consolidation:
- POST /generate - Consolidate a school year into an academic history
- GET /{history_id} - Get history with subjects
- GET /{history_id}/complete - Get history with per-bimester summaries
- GET /enrollment/{enrollment_id} - List histories of an enrollment
- GET /enrollment/{enrollment_id}/report - Statistics across the years of an enrollment
- GET /school-year/{school_year_id} - List histories of a school year
- PUT /{history_id} - Correct a history
- DELETE /{history_id} - Delete a history
"""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import DB
from src.core.errors import ServiceError, http_status_for
from src.domains.academic_history import AcademicHistoryService
from src.models.academic_history import (
    AcademicHistoryListResponse,
    AcademicHistoryResponse,
    CompleteHistoryResponse,
    EnrollmentReportResponse,
    GenerateHistoryRequest,
    GenerateHistoryResponse,
    UpdateHistoryRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> AcademicHistoryService:
    """Get academic history service instance.

    Args:
        db: Database session.

    Returns:
        Configured AcademicHistoryService instance.
    """
    return AcademicHistoryService(db=db)


def _http_error(error: ServiceError) -> HTTPException:
    return HTTPException(status_code=http_status_for(error.kind), detail=error.to_dict())


@router.post(
    "/generate",
    response_model=GenerateHistoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate academic history",
    description="Consolidate the bimester report cards of a school year.",
)
async def generate_history(data: GenerateHistoryRequest, db: DB) -> GenerateHistoryResponse:
    """Generate the academic history of an enrollment for a school year.

    Args:
        data: Enrollment and school year.
        db: Database session.

    Returns:
        History, consolidated subjects, statistics and report card count.

    Raises:
        HTTPException: If there is nothing to consolidate or the year was
            already consolidated.
    """
    logger.info(
        "Generating academic history: enrollment=%s, school_year=%s",
        data.enrollment_id,
        data.school_year_id,
    )

    service = _get_service(db)

    try:
        return await service.generate_history(data)
    except ServiceError as e:
        raise _http_error(e) from e


@router.get(
    "/enrollment/{enrollment_id}",
    response_model=AcademicHistoryListResponse,
    summary="List histories of an enrollment",
)
async def list_enrollment_histories(enrollment_id: str, db: DB) -> AcademicHistoryListResponse:
    """List the academic histories of an enrollment."""
    service = _get_service(db)
    items = await service.list_for_enrollment(enrollment_id)
    return AcademicHistoryListResponse(items=items, total=len(items))


@router.get(
    "/school-year/{school_year_id}",
    response_model=AcademicHistoryListResponse,
    summary="List histories of a school year",
)
async def list_school_year_histories(
    school_year_id: str,
    db: DB,
) -> AcademicHistoryListResponse:
    """List the academic histories consolidated for a school year."""
    service = _get_service(db)
    items = await service.list_for_school_year(school_year_id)
    return AcademicHistoryListResponse(items=items, total=len(items))


@router.get(
    "/{history_id}",
    response_model=AcademicHistoryResponse,
    summary="Get academic history",
)
async def get_history(history_id: str, db: DB) -> AcademicHistoryResponse:
    """Get an academic history with its subjects."""
    service = _get_service(db)

    try:
        return await service.get_history(history_id)
    except ServiceError as e:
        raise _http_error(e) from e


@router.get(
    "/{history_id}/complete",
    response_model=CompleteHistoryResponse,
    summary="Get complete academic history",
    description="Get an academic history with the bimesters it was consolidated from.",
)
async def get_complete_history(history_id: str, db: DB) -> CompleteHistoryResponse:
    """Get an academic history with per-bimester summaries."""
    service = _get_service(db)

    try:
        return await service.get_complete_history(history_id)
    except ServiceError as e:
        raise _http_error(e) from e


@router.get(
    "/enrollment/{enrollment_id}/report",
    response_model=EnrollmentReportResponse,
    summary="Report an enrollment across school years",
)
async def enrollment_report(enrollment_id: str, db: DB) -> EnrollmentReportResponse:
    """Report every consolidated year of an enrollment with statistics."""
    service = _get_service(db)
    return await service.enrollment_report(enrollment_id)


@router.put(
    "/{history_id}",
    response_model=AcademicHistoryResponse,
    summary="Update academic history",
    description="Correct a history, e.g. to resolve a year pending review.",
)
async def update_history(
    history_id: str,
    data: UpdateHistoryRequest,
    db: DB,
) -> AcademicHistoryResponse:
    """Update an academic history.

    Raises:
        HTTPException: If the history or new enrollment is not found, or
            the target enrollment and year already have a history.
    """
    logger.info("Updating academic history %s", history_id)

    service = _get_service(db)

    try:
        return await service.update_history(history_id, data)
    except ServiceError as e:
        raise _http_error(e) from e


@router.delete(
    "/{history_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete academic history",
)
async def delete_history(history_id: str, db: DB) -> None:
    """Delete an academic history."""
    service = _get_service(db)

    try:
        await service.delete_history(history_id)
    except ServiceError as e:
        raise _http_error(e) from e
