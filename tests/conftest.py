# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- Mock database sessions and query results
- ORM instances for enrollments, classes and school years
"""

from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.core.config import GradingSettings, RegistrationSettings
from src.infrastructure.database.models import Enrollment, SchoolClass, SchoolYear, Student
from src.models.common import EnrollmentStatus

FIXED_NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def test_environment() -> dict[str, str]:
    """Provide test environment variables.

    Returns:
        Dictionary of environment variables for testing.
    """
    return {
        "ENVIRONMENT": "development",
        "DEBUG": "true",
        "LOG_LEVEL": "DEBUG",
        "DB_HOST": "localhost",
        "DB_PORT": "5432",
        "DB_USER": "school",
        "DB_PASSWORD": "school_password",
        "DB_DATABASE": "school_records_test",
    }


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


# =============================================================================
# Database Fixtures
# =============================================================================


def _stamp(obj: Any) -> None:
    """Fill the columns the database would populate on insert."""
    if getattr(obj, "id", None) is None:
        obj.id = str(uuid4())
    if getattr(obj, "created_at", None) is None:
        obj.created_at = FIXED_NOW
    if getattr(obj, "updated_at", None) is None:
        obj.updated_at = FIXED_NOW


@pytest.fixture
def mock_db() -> AsyncMock:
    """Create mock database session.

    ``refresh`` fills id and timestamps like an insert would.
    ``begin_nested`` works as an async context manager.
    """
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.delete = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock()

    async def refresh(obj: Any) -> None:
        _stamp(obj)

    db.refresh = AsyncMock(side_effect=refresh)

    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=savepoint)
    savepoint.__aexit__ = AsyncMock(return_value=False)
    db.begin_nested = MagicMock(return_value=savepoint)
    return db


@pytest.fixture
def make_result() -> Callable[..., MagicMock]:
    """Build mock query results.

    Returns:
        Factory taking the single value, the list of items, or the list
        of rows a query returns.
    """

    def factory(value: Any = None, items: list | None = None, rows: list | None = None) -> MagicMock:
        result = MagicMock()
        result.scalar_one_or_none.return_value = value
        result.scalar_one.return_value = value
        result.scalar.return_value = value
        result.scalars.return_value.all.return_value = items or []
        result.all.return_value = rows or []
        return result

    return factory


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def grading() -> GradingSettings:
    """Provide default grading thresholds."""
    return GradingSettings()


@pytest.fixture
def registration_settings() -> RegistrationSettings:
    """Provide default registration number settings."""
    return RegistrationSettings()


# =============================================================================
# Model Fixtures
# =============================================================================


@pytest.fixture
def school_year() -> SchoolYear:
    """Provide the 2025 school year."""
    return SchoolYear(
        id=str(uuid4()),
        year=2025,
        start_date=date(2025, 2, 3),
        end_date=date(2025, 12, 12),
        is_current=True,
    )


@pytest.fixture
def next_school_year() -> SchoolYear:
    """Provide the 2026 school year."""
    return SchoolYear(
        id=str(uuid4()),
        year=2026,
        start_date=date(2026, 2, 2),
        end_date=date(2026, 12, 11),
        is_current=False,
    )


@pytest.fixture
def school_class(school_year: SchoolYear) -> SchoolClass:
    """Provide a 1st grade class of the 2025 school year."""
    return SchoolClass(
        id=str(uuid4()),
        name="1A",
        shift="morning",
        series_id=str(uuid4()),
        school_year_id=school_year.id,
    )


@pytest.fixture
def student() -> Student:
    """Provide a student."""
    return Student(
        id=str(uuid4()),
        first_name="Ana",
        last_name="Souza",
        national_id="12345678900",
        birth_date=date(2018, 5, 4),
    )


@pytest.fixture
def make_enrollment(
    student: Student,
    school_class: SchoolClass,
    school_year: SchoolYear,
) -> Callable[..., Enrollment]:
    """Build persisted-looking enrollments.

    Returns:
        Factory accepting column overrides.
    """

    def factory(**overrides: Any) -> Enrollment:
        values = {
            "id": str(uuid4()),
            "registration_number": "20251001",
            "student_id": student.id,
            "class_id": school_class.id,
            "school_year_id": school_year.id,
            "enrollment_date": date(2025, 2, 3),
            "exit_date": None,
            "exit_reason": None,
            "notes": None,
            "status": EnrollmentStatus.ACTIVE,
            "created_at": FIXED_NOW,
            "updated_at": FIXED_NOW,
        }
        values.update(overrides)
        return Enrollment(**values)

    return factory
