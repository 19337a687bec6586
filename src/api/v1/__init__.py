# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

This package contains all v1 API endpoint definitions.
Each module provides a FastAPI router for a specific domain.

Modules:
    enrollments: Enrollment lifecycle endpoints.
    academic_history: Year-end consolidation endpoints.
    registration: Complete registration endpoints.
"""

from fastapi import APIRouter

from src.api.v1 import academic_history, enrollments, registration

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

# Include domain routers
router.include_router(enrollments.router, prefix="/enrollment", tags=["Enrollment"])
router.include_router(
    academic_history.router, prefix="/academic-history", tags=["Academic History"]
)
router.include_router(registration.router, prefix="/registration", tags=["Registration"])

__all__ = ["router"]
