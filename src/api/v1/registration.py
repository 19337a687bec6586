# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Complete registration API endpoints.

- POST / - Register and enroll a student from a complete form
- GET /{registration_number} - Get a stored registration
"""

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import DB
from src.core.errors import ServiceError, http_status_for
from src.domains.registration import RegistrationWorkflow
from src.models.registration import RegistrationForm, RegistrationRecord, RegistrationResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_service(db: AsyncSession) -> RegistrationWorkflow:
    """Get registration workflow instance."""
    return RegistrationWorkflow(db=db)


@router.post(
    "",
    response_model=RegistrationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register student",
    description=(
        "Create birth certificate, student, guardians, health data, diagnosis "
        "and enrollment in one transaction."
    ),
)
async def register_student(data: RegistrationForm, db: DB) -> RegistrationResponse:
    """Register a student from a complete form."""
    service = _get_service(db)

    try:
        return await service.register(data)
    except ServiceError as e:
        raise HTTPException(status_code=http_status_for(e.kind), detail=e.to_dict()) from e


@router.get(
    "/{registration_number}",
    response_model=RegistrationRecord,
    summary="Get registration",
)
async def get_registration(registration_number: str, db: DB) -> RegistrationRecord:
    """Get a stored registration by registration number."""
    service = _get_service(db)

    try:
        return await service.get_by_registration_number(registration_number)
    except ServiceError as e:
        raise HTTPException(status_code=http_status_for(e.kind), detail=e.to_dict()) from e
