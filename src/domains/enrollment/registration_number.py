# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Registration number generation.

Registration numbers have the form ``{year}{grade}{sequence}``, where the
sequence is zero-padded and counts enrollments per (year, grade) pair:
the first student enrolled in the 1st grade of 2025 gets ``20251001``.

Sequences are handed out from a per-partition counter row that is locked
with ``SELECT ... FOR UPDATE`` for the rest of the transaction. The first
time a partition is used its counter is seeded from the highest number
already stored, so existing data keeps counting from where it left off.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import RegistrationSettings, get_settings
from src.core.errors import ConflictError, InternalError, NotFoundError
from src.infrastructure.database.models import (
    Enrollment,
    RegistrationSequence,
    SchoolClass,
    SchoolYear,
    Series,
)

logger = logging.getLogger(__name__)

_FIRST_INTEGER = re.compile(r"\d+")


class SequenceExhaustedError(ConflictError):
    """Raised when a (year, grade) partition has no numbers left."""

    def __init__(self, year: int, grade: int, limit: int) -> None:
        super().__init__(
            resource="registration_number",
            key={"year": year, "grade": grade},
            message=f"Registration sequence for {year}/{grade} exceeded {limit}",
        )


class SequenceAllocationError(InternalError):
    """Raised when the counter row could not be created or locked."""

    pass


def parse_grade_ordinal(series_name: str | None, default: int = 1) -> int:
    """Extract the grade ordinal from a series display name.

    The first integer in the name is used: "1º Ano" gives 1 and
    "9th grade" gives 9.

    Args:
        series_name: Display name of the series, if any.
        default: Value returned when no positive integer is present.

    Returns:
        Grade ordinal.
    """
    if not series_name:
        return default
    match = _FIRST_INTEGER.search(series_name)
    if match is None:
        return default
    value = int(match.group())
    return value if value > 0 else default


def sequence_from_number(number: str | None, digits: int = 3) -> int:
    """Return the sequence encoded in the trailing digits of a number.

    Args:
        number: Stored registration number.
        digits: Width of the sequence part.

    Returns:
        The sequence, or 0 when the number carries none.
    """
    if not number or len(number) < digits:
        return 0
    tail = number[-digits:]
    return int(tail) if tail.isdigit() else 0


def format_registration_number(year: int, grade: int, sequence: int, digits: int = 3) -> str:
    """Format a registration number.

    Example:
        >>> format_registration_number(2025, 1, 7)
        '20251007'
    """
    return f"{year}{grade}{sequence:0{digits}d}"


class RegistrationNumberGenerator:
    """Hands out registration numbers within the caller's transaction.

    The generator never commits. The counter row stays locked until the
    caller commits or rolls back, which also covers the insert of the
    enrollment carrying the number.

    Attributes:
        db: Async database session.
        settings: Registration number settings.
    """

    def __init__(
        self,
        db: AsyncSession,
        settings: RegistrationSettings | None = None,
    ) -> None:
        self.db = db
        self.settings = settings or get_settings().registration

    async def next_number(self, school_year_id: str, class_id: str) -> str:
        """Compute the next registration number for a class in a school year.

        Args:
            school_year_id: School year identifier.
            class_id: Class identifier; its series gives the grade.

        Returns:
            Newly allocated registration number.

        Raises:
            NotFoundError: If the school year or class does not exist.
            SequenceExhaustedError: If the partition is full.
        """
        year = await self._resolve_year(school_year_id)
        grade = await self._resolve_grade(class_id)
        sequence = await self.allocate(year, grade)
        number = format_registration_number(
            year, grade, sequence, self.settings.sequence_digits
        )
        logger.debug("Allocated registration number %s", number)
        return number

    async def allocate(self, year: int, grade: int) -> int:
        """Increment and return the sequence of a (year, grade) partition.

        Args:
            year: Calendar year of the school year.
            grade: Grade ordinal.

        Returns:
            The allocated sequence, starting at 1.

        Raises:
            SequenceExhaustedError: If the sequence outgrows its digits.
            SequenceAllocationError: If the counter row could not be created.
        """
        limit = 10 ** self.settings.sequence_digits - 1

        for attempt in range(1, self.settings.counter_retries + 1):
            counter = await self._lock_counter(year, grade)
            if counter is None:
                counter = await self._create_counter(year, grade)
                if counter is None:
                    logger.debug(
                        "Counter %s/%s created concurrently, retrying (attempt %d)",
                        year,
                        grade,
                        attempt,
                    )
                    continue

            if counter.last_value >= limit:
                raise SequenceExhaustedError(year, grade, limit)

            counter.last_value += 1
            await self.db.flush()
            return counter.last_value

        raise SequenceAllocationError(
            f"Could not allocate a registration sequence for {year}/{grade}",
            operation="registration_number",
        )

    async def _resolve_year(self, school_year_id: str) -> int:
        result = await self.db.execute(
            select(SchoolYear.year).where(SchoolYear.id == school_year_id)
        )
        year = result.scalar_one_or_none()
        if year is None:
            raise NotFoundError("school_year", school_year_id)
        return year

    async def _resolve_grade(self, class_id: str) -> int:
        result = await self.db.execute(select(SchoolClass).where(SchoolClass.id == class_id))
        class_ = result.scalar_one_or_none()
        if class_ is None:
            raise NotFoundError("class", class_id)

        series_name = None
        if class_.series_id:
            result = await self.db.execute(
                select(Series.name).where(Series.id == class_.series_id)
            )
            series_name = result.scalar_one_or_none()

        return parse_grade_ordinal(series_name, self.settings.default_grade)

    async def _lock_counter(self, year: int, grade: int) -> RegistrationSequence | None:
        query = (
            select(RegistrationSequence)
            .where(
                RegistrationSequence.year == year,
                RegistrationSequence.grade == grade,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _create_counter(self, year: int, grade: int) -> RegistrationSequence | None:
        """Insert the counter row of a partition seen for the first time.

        Returns None when another transaction inserted it first.
        """
        seed = await self._scan_max_sequence(year, grade)
        counter = RegistrationSequence(year=year, grade=grade, last_value=seed)
        try:
            async with self.db.begin_nested():
                self.db.add(counter)
        except IntegrityError:
            return None

        logger.info("Seeded registration counter %s/%s at %d", year, grade, seed)
        return counter

    async def _scan_max_sequence(self, year: int, grade: int) -> int:
        """Find the highest sequence already stored for a partition."""
        prefix = f"{year}{grade}"
        width = len(prefix) + self.settings.sequence_digits
        query = (
            select(Enrollment.registration_number)
            .where(
                Enrollment.registration_number.is_not(None),
                Enrollment.registration_number.like(f"{prefix}%"),
                func.length(Enrollment.registration_number) == width,
            )
            .order_by(Enrollment.registration_number.desc())
            .limit(1)
        )
        result = await self.db.execute(query)
        return sequence_from_number(
            result.scalar_one_or_none(), self.settings.sequence_digits
        )
