# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Enrollment service for managing the enrollment lifecycle.

This module provides the EnrollmentService class for:
- Enrolling a student in a class with a generated registration number
- Transferring an enrollment to another class (same or next school year)
- Finalizing an enrollment as concluded or cancelled
- Updating the admission date and notes of an enrollment
- Deleting enrollments that no school record depends on
- Enrollment lookups

A student holds at most one active enrollment per school year.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import (
    ConflictError,
    DependencyConflictError,
    InternalError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from src.domains.enrollment.registration_number import RegistrationNumberGenerator
from src.infrastructure.database.models import (
    AcademicHistory,
    Attendance,
    Enrollment,
    Grade,
    ReportCard,
    SchoolClass,
    SchoolYear,
    Student,
)
from src.models.common import EnrollmentStatus
from src.models.enrollment import (
    EnrollmentCreateRequest,
    EnrollmentResponse,
    EnrollmentUpdateRequest,
    FinalizeRequest,
    TransferRequest,
)
from src.utils.datetime import utc_now, utc_today

logger = logging.getLogger(__name__)

DEFAULT_TRANSFER_REASON = "Class transfer"

_ACTIVE_INDEX = "uq_enrollments_active_student_year"
_NUMBER_INDEX = "ix_enrollments_registration_number"

_DEPENDENTS = (
    ("grades", Grade),
    ("attendances", Attendance),
    ("report_cards", ReportCard),
    ("academic_histories", AcademicHistory),
)


class EnrollmentNotFoundError(NotFoundError):
    """Raised when enrollment is not found."""

    def __init__(self, enrollment_id: str) -> None:
        super().__init__("enrollment", enrollment_id)


class StudentNotFoundError(NotFoundError):
    """Raised when student is not found."""

    def __init__(self, student_id: str) -> None:
        super().__init__("student", student_id)


class ClassNotFoundError(NotFoundError):
    """Raised when class is not found."""

    def __init__(self, class_id: str) -> None:
        super().__init__("class", class_id)


class SchoolYearNotFoundError(NotFoundError):
    """Raised when school year is not found."""

    def __init__(self, school_year_id: str) -> None:
        super().__init__("school_year", school_year_id)


class ActiveEnrollmentExistsError(ConflictError):
    """Raised when student already holds an active enrollment for the year."""

    def __init__(self, student_id: str, school_year_id: str) -> None:
        super().__init__(
            resource="enrollment",
            key={"student_id": student_id, "school_year_id": school_year_id},
            message="Student already has an active enrollment for this school year",
        )


class RegistrationNumberConflictError(ConflictError):
    """Raised when a generated registration number is already taken."""

    def __init__(self, registration_number: str | None) -> None:
        super().__init__(
            resource="registration_number",
            key={"registration_number": registration_number},
            message=f"Registration number {registration_number} is already in use",
        )


class EnrollmentNotActiveError(ConflictError):
    """Raised when a terminal enrollment is asked to change status or class."""

    def __init__(self, enrollment_id: str, status: EnrollmentStatus) -> None:
        super().__init__(
            resource="enrollment",
            key={"id": enrollment_id, "status": status.value},
            message=f"Enrollment is {status.value} and can no longer change",
        )


class MissingReasonError(ValidationError):
    """Raised when an enrollment is finalized without a reason."""

    def __init__(self) -> None:
        super().__init__("A reason is required to finalize an enrollment", ["reason"])


class EnrollmentHasDependentsError(DependencyConflictError):
    """Raised when school records reference the enrollment."""

    def __init__(self, enrollment_id: str, dependents: dict[str, int]) -> None:
        super().__init__("enrollment", enrollment_id, dependents)


class EnrollmentService:
    """Service for managing the enrollment lifecycle.

    Attributes:
        db: Async database session.
    """

    def __init__(
        self,
        db: AsyncSession,
        numbers: RegistrationNumberGenerator | None = None,
    ) -> None:
        """Initialize enrollment service.

        Args:
            db: Async database session.
            numbers: Registration number generator bound to the same session.
        """
        self.db = db
        self._numbers = numbers or RegistrationNumberGenerator(db)

    async def create_enrollment(self, request: EnrollmentCreateRequest) -> EnrollmentResponse:
        """Enroll a student in a class.

        Args:
            request: Enrollment request data.

        Returns:
            Created enrollment with its registration number.

        Raises:
            StudentNotFoundError: If student not found.
            ClassNotFoundError: If class not found.
            SchoolYearNotFoundError: If school year not found.
            ActiveEnrollmentExistsError: If student is already enrolled for the year.
        """
        enrollment = await self.stage_enrollment(request)
        await self._commit(enrollment)
        await self.db.refresh(enrollment)

        logger.info(
            "Enrolled student: student=%s, class=%s, number=%s",
            enrollment.student_id,
            enrollment.class_id,
            enrollment.registration_number,
        )

        return EnrollmentResponse.model_validate(enrollment)

    async def stage_enrollment(self, request: EnrollmentCreateRequest) -> Enrollment:
        """Validate and insert an active enrollment without committing.

        Used by create and by workflows that own the transaction.

        Args:
            request: Enrollment request data.

        Returns:
            The flushed enrollment.
        """
        await self._get_student(request.student_id)
        await self._get_class(request.class_id)
        await self._get_school_year(request.school_year_id)

        active = await self._find_active(request.student_id, request.school_year_id)
        if active is not None:
            raise ActiveEnrollmentExistsError(request.student_id, request.school_year_id)

        number = await self._numbers.next_number(request.school_year_id, request.class_id)

        enrollment = Enrollment(
            registration_number=number,
            student_id=request.student_id,
            class_id=request.class_id,
            school_year_id=request.school_year_id,
            enrollment_date=request.enrollment_date,
            notes=request.notes,
            status=EnrollmentStatus.ACTIVE,
        )
        self.db.add(enrollment)
        await self._flush(enrollment)

        return enrollment

    async def transfer_enrollment(
        self,
        enrollment_id: str,
        request: TransferRequest,
    ) -> EnrollmentResponse:
        """Move an enrollment to another class.

        Within the same school year the enrollment keeps its id and
        registration number. Across school years the current enrollment
        is closed as transferred and a new one is opened.

        Args:
            enrollment_id: Enrollment identifier.
            request: Transfer request data.

        Returns:
            The updated enrollment, or the new one for a cross-year move.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            ClassNotFoundError: If target class not found.
            EnrollmentNotActiveError: If the enrollment is not active.
            ActiveEnrollmentExistsError: If student is already enrolled in the target year.
        """
        enrollment = await self._get_enrollment(enrollment_id)
        target = await self._get_class(request.new_class_id)

        if enrollment.status.is_terminal:
            raise EnrollmentNotActiveError(enrollment_id, enrollment.status)

        reason = (request.reason or "").strip() or DEFAULT_TRANSFER_REASON

        if target.school_year_id == enrollment.school_year_id:
            previous_class_id = enrollment.class_id
            enrollment.class_id = target.id
            enrollment.notes = _append_note(
                enrollment.notes,
                f"Transferred from class {previous_class_id}: {reason}",
            )
            await self._commit(enrollment)
            await self.db.refresh(enrollment)

            logger.info(
                "Transferred enrollment %s to class %s within school year %s",
                enrollment_id,
                target.id,
                target.school_year_id,
            )
            return EnrollmentResponse.model_validate(enrollment)

        enrollment.status = EnrollmentStatus.TRANSFERRED
        enrollment.exit_date = utc_now()
        enrollment.exit_reason = reason
        await self._flush(enrollment)

        successor = await self.stage_enrollment(
            EnrollmentCreateRequest(
                student_id=enrollment.student_id,
                class_id=target.id,
                school_year_id=target.school_year_id,
                enrollment_date=utc_today(),
                notes=f"Transferred from enrollment {enrollment.registration_number}",
            )
        )
        await self._commit(successor)
        await self.db.refresh(successor)

        logger.info(
            "Transferred enrollment %s to new enrollment %s (school year %s)",
            enrollment_id,
            successor.id,
            successor.school_year_id,
        )
        return EnrollmentResponse.model_validate(successor)

    async def finalize_enrollment(
        self,
        enrollment_id: str,
        request: FinalizeRequest,
    ) -> EnrollmentResponse:
        """Close an enrollment as concluded or cancelled.

        Args:
            enrollment_id: Enrollment identifier.
            request: Finalize request data.

        Returns:
            Updated enrollment.

        Raises:
            MissingReasonError: If the reason is missing or blank.
            EnrollmentNotFoundError: If enrollment not found.
            EnrollmentNotActiveError: If the enrollment is already closed.
        """
        reason = (request.reason or "").strip()
        if not reason:
            raise MissingReasonError()

        enrollment = await self._get_enrollment(enrollment_id)
        if enrollment.status.is_terminal:
            raise EnrollmentNotActiveError(enrollment_id, enrollment.status)

        enrollment.status = request.status.to_enrollment_status()
        enrollment.exit_date = utc_now()
        enrollment.exit_reason = reason

        await self._commit(enrollment)
        await self.db.refresh(enrollment)

        logger.info("Finalized enrollment %s as %s", enrollment_id, enrollment.status.value)

        return EnrollmentResponse.model_validate(enrollment)

    async def update_enrollment(
        self,
        enrollment_id: str,
        request: EnrollmentUpdateRequest,
    ) -> EnrollmentResponse:
        """Update the admission date and notes of an enrollment.

        Class and status changes go through transfer and finalize.

        Args:
            enrollment_id: Enrollment identifier.
            request: Update data.

        Returns:
            Updated enrollment.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
        """
        enrollment = await self._get_enrollment(enrollment_id)

        if request.enrollment_date is not None:
            enrollment.enrollment_date = request.enrollment_date
        if request.notes is not None:
            enrollment.notes = request.notes.strip() or None

        await self._commit(enrollment)
        await self.db.refresh(enrollment)

        logger.info("Updated enrollment %s", enrollment_id)

        return EnrollmentResponse.model_validate(enrollment)

    async def delete_enrollment(self, enrollment_id: str) -> None:
        """Permanently remove an enrollment.

        Args:
            enrollment_id: Enrollment identifier.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
            EnrollmentHasDependentsError: If grades, attendance, report cards
                or academic histories reference it.
        """
        enrollment = await self._get_enrollment(enrollment_id)

        counts = {name: await self._count(model, enrollment_id) for name, model in _DEPENDENTS}
        dependents = {name: count for name, count in counts.items() if count}
        if dependents:
            raise EnrollmentHasDependentsError(enrollment_id, dependents)

        await self.db.delete(enrollment)
        await self.db.commit()

        logger.info("Deleted enrollment %s", enrollment_id)

    async def get_enrollment(self, enrollment_id: str) -> EnrollmentResponse:
        """Get enrollment by ID.

        Raises:
            EnrollmentNotFoundError: If enrollment not found.
        """
        enrollment = await self._get_enrollment(enrollment_id)
        return EnrollmentResponse.model_validate(enrollment)

    async def get_by_registration_number(self, registration_number: str) -> EnrollmentResponse:
        """Get enrollment by registration number.

        Raises:
            EnrollmentNotFoundError: If no enrollment carries the number.
        """
        result = await self.db.execute(
            select(Enrollment).where(Enrollment.registration_number == registration_number)
        )
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise EnrollmentNotFoundError(registration_number)
        return EnrollmentResponse.model_validate(enrollment)

    async def get_active_enrollment(
        self,
        student_id: str,
        school_year_id: str,
    ) -> EnrollmentResponse:
        """Get the active enrollment of a student in a school year.

        Raises:
            EnrollmentNotFoundError: If the student has no active enrollment.
        """
        enrollment = await self._find_active(student_id, school_year_id)
        if enrollment is None:
            raise NotFoundError(
                "enrollment",
                student_id,
                f"No active enrollment for student {student_id} in school year {school_year_id}",
            )
        return EnrollmentResponse.model_validate(enrollment)

    async def list_enrollments(
        self,
        student_id: str | None = None,
        class_id: str | None = None,
        school_year_id: str | None = None,
        status: EnrollmentStatus | None = None,
    ) -> tuple[list[EnrollmentResponse], int]:
        """List enrollments, newest first.

        Args:
            student_id: Optional student filter.
            class_id: Optional class filter.
            school_year_id: Optional school year filter.
            status: Optional status filter.

        Returns:
            Tuple of (list of enrollments, total count).
        """
        query = select(Enrollment)

        if student_id:
            query = query.where(Enrollment.student_id == student_id)
        if class_id:
            query = query.where(Enrollment.class_id == class_id)
        if school_year_id:
            query = query.where(Enrollment.school_year_id == school_year_id)
        if status:
            query = query.where(Enrollment.status == status)

        query = query.order_by(Enrollment.created_at.desc())

        result = await self.db.execute(query)
        items = [EnrollmentResponse.model_validate(e) for e in result.scalars().all()]

        return items, len(items)

    async def _get_enrollment(self, enrollment_id: str) -> Enrollment:
        result = await self.db.execute(select(Enrollment).where(Enrollment.id == enrollment_id))
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise EnrollmentNotFoundError(enrollment_id)
        return enrollment

    async def _get_student(self, student_id: str) -> Student:
        result = await self.db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if not student:
            raise StudentNotFoundError(student_id)
        return student

    async def _get_class(self, class_id: str) -> SchoolClass:
        result = await self.db.execute(select(SchoolClass).where(SchoolClass.id == class_id))
        class_ = result.scalar_one_or_none()
        if not class_:
            raise ClassNotFoundError(class_id)
        return class_

    async def _get_school_year(self, school_year_id: str) -> SchoolYear:
        result = await self.db.execute(select(SchoolYear).where(SchoolYear.id == school_year_id))
        school_year = result.scalar_one_or_none()
        if not school_year:
            raise SchoolYearNotFoundError(school_year_id)
        return school_year

    async def _find_active(self, student_id: str, school_year_id: str) -> Enrollment | None:
        query = select(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.school_year_id == school_year_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _count(self, model: type, enrollment_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(model).where(model.enrollment_id == enrollment_id)
        )
        return result.scalar() or 0

    async def _flush(self, enrollment: Enrollment) -> None:
        try:
            await self.db.flush()
        except IntegrityError as e:
            await self.db.rollback()
            raise _conflict_for(e, enrollment) from e

    async def _commit(self, enrollment: Enrollment) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise _conflict_for(e, enrollment) from e


def _conflict_for(error: IntegrityError, enrollment: Enrollment) -> ServiceError:
    """Translate an integrity failure on the enrollments table."""
    detail = str(error.orig)
    if _ACTIVE_INDEX in detail:
        return ActiveEnrollmentExistsError(enrollment.student_id, enrollment.school_year_id)
    if _NUMBER_INDEX in detail:
        return RegistrationNumberConflictError(enrollment.registration_number)
    return InternalError("Enrollment write failed", "enrollment_write", error)


def _append_note(notes: str | None, line: str) -> str:
    return f"{notes}\n{line}" if notes else line
