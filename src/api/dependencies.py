# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.

Example:
    @router.get("/enrollment/{enrollment_id}")
    async def get_enrollment(
        enrollment_id: str,
        db: AsyncSession = Depends(get_db),
    ):
        ...
"""

import logging
from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.infrastructure.database.connection import (
    close_database,
    get_session,
    init_database,
)

logger = logging.getLogger(__name__)


async def init_db() -> None:
    """Initialize the database connection."""
    await init_database(get_settings())


async def close_db() -> None:
    """Close the database connection."""
    await close_database()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get a database session for one request.

    The session commits when the endpoint returns and rolls back when it
    raises.

    Yields:
        AsyncSession for the school database.
    """
    async with get_session() as session:
        yield session


# Type alias for dependency injection
DB = Annotated[AsyncSession, Depends(get_db)]
