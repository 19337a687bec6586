# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Complete student registration.

A registration writes, in order:

1. birth certificate
2. student
3. guardians
4. health record
5. diagnosis
6. enrollment (with a generated registration number)

All steps share one transaction. A failure in any step rolls back every
record written by the previous ones and re-raises the original error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import (
    ConflictError,
    InternalError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from src.domains.enrollment import EnrollmentService
from src.infrastructure.database.models import (
    BirthCertificate,
    Diagnosis,
    Enrollment,
    Guardian,
    HealthRecord,
    Student,
)
from src.infrastructure.database.models.base import new_id
from src.models.enrollment import EnrollmentCreateRequest, EnrollmentResponse
from src.models.registration import (
    BirthCertificateData,
    DiagnosisData,
    GuardianData,
    HealthData,
    RegistrationForm,
    RegistrationRecord,
    RegistrationResponse,
    StudentData,
)
from src.utils.datetime import utc_today

logger = logging.getLogger(__name__)

_NATIONAL_ID_CONSTRAINT = "uq_students_national_id"

ModelT = TypeVar("ModelT", bound=BaseModel)


class RegistrationValidationError(ValidationError):
    """Raised when a registration form is incomplete."""

    def __init__(self, problems: list[str]) -> None:
        super().__init__("Registration form is incomplete", problems)


class StudentAlreadyRegisteredError(ConflictError):
    """Raised when a student with the same national id exists."""

    def __init__(self, national_id: str) -> None:
        super().__init__(
            resource="student",
            key={"national_id": national_id},
            message=f"A student with national id {national_id} is already registered",
        )


class RegistrationNotFoundError(NotFoundError):
    """Raised when no registration matches a registration number."""

    def __init__(self, registration_number: str) -> None:
        super().__init__("registration", registration_number)


def validate_form(form: RegistrationForm) -> list[str]:
    """List every missing required value of a registration form."""
    problems = []
    if not form.student.first_name.strip():
        problems.append("student.first_name is required")
    if not form.student.last_name.strip():
        problems.append("student.last_name is required")
    if not form.student.national_id.strip():
        problems.append("student.national_id is required")
    if not form.birth_certificate.book.strip():
        problems.append("birth_certificate.book is required")
    if not form.guardians:
        problems.append("at least one guardian is required")
    for index, guardian in enumerate(form.guardians):
        if not guardian.full_name.strip():
            problems.append(f"guardians[{index}].full_name is required")
    if not form.enrollment.class_id.strip():
        problems.append("enrollment.class_id is required")
    if not form.enrollment.school_year_id.strip():
        problems.append("enrollment.school_year_id is required")
    return problems


@dataclass
class _RegistrationState:
    """Records written so far by one registration."""

    form: RegistrationForm
    certificate: BirthCertificate | None = None
    student: Student | None = None
    guardians: list[Guardian] = field(default_factory=list)
    health: HealthRecord | None = None
    diagnosis: Diagnosis | None = None
    enrollment: Enrollment | None = None
    completed: list[str] = field(default_factory=list)


class RegistrationWorkflow:
    """Runs complete registrations and reads them back.

    Attributes:
        db: Async database session.
    """

    STEPS = (
        "birth_certificate",
        "student",
        "guardians",
        "health",
        "diagnosis",
        "enrollment",
    )

    def __init__(
        self,
        db: AsyncSession,
        enrollments: EnrollmentService | None = None,
    ) -> None:
        self.db = db
        self._enrollments = enrollments or EnrollmentService(db)

    async def register(self, form: RegistrationForm) -> RegistrationResponse:
        """Register a student from a complete form.

        Args:
            form: Registration form.

        Returns:
            Identifiers of the written records and the enrollment.

        Raises:
            RegistrationValidationError: If required values are missing.
            StudentAlreadyRegisteredError: If the national id is taken.
            InternalError: If any other integrity rule rejects the write.
            ServiceError: Any error of the enrollment step, unchanged.
        """
        problems = validate_form(form)
        if problems:
            raise RegistrationValidationError(problems)

        state = _RegistrationState(form=form)
        step = self.STEPS[0]
        try:
            for step in self.STEPS:
                await getattr(self, f"_write_{step}")(state)
                state.completed.append(step)
            await self.db.commit()
        except (ServiceError, SQLAlchemyError) as e:
            await self.db.rollback()
            logger.warning(
                "Registration rolled back at step %s (completed: %s): %s",
                step,
                ", ".join(state.completed) or "none",
                e,
            )
            if isinstance(e, IntegrityError):
                if _NATIONAL_ID_CONSTRAINT in str(e.orig):
                    raise StudentAlreadyRegisteredError(form.student.national_id) from e
                raise InternalError("Registration write failed", step, e) from e
            raise

        await self.db.refresh(state.enrollment)

        logger.info(
            "Registered student %s with registration number %s",
            state.student.id,
            state.enrollment.registration_number,
        )

        return RegistrationResponse(
            student_id=state.student.id,
            birth_certificate_id=state.certificate.id,
            guardian_ids=[guardian.id for guardian in state.guardians],
            health_record_id=state.health.id if state.health else None,
            diagnosis_id=state.diagnosis.id if state.diagnosis else None,
            enrollment=EnrollmentResponse.model_validate(state.enrollment),
        )

    async def get_by_registration_number(self, registration_number: str) -> RegistrationRecord:
        """Assemble a stored registration back into form shape.

        Raises:
            RegistrationNotFoundError: If no enrollment carries the number.
        """
        result = await self.db.execute(
            select(Enrollment).where(Enrollment.registration_number == registration_number)
        )
        enrollment = result.scalar_one_or_none()
        if not enrollment:
            raise RegistrationNotFoundError(registration_number)

        result = await self.db.execute(select(Student).where(Student.id == enrollment.student_id))
        student = result.scalar_one()

        certificate = None
        if student.birth_certificate_id:
            result = await self.db.execute(
                select(BirthCertificate).where(BirthCertificate.id == student.birth_certificate_id)
            )
            certificate = result.scalar_one_or_none()

        result = await self.db.execute(
            select(Guardian).where(Guardian.student_id == student.id).order_by(Guardian.created_at)
        )
        guardians = result.scalars().all()

        result = await self.db.execute(
            select(HealthRecord).where(HealthRecord.student_id == student.id)
        )
        health = result.scalar_one_or_none()

        result = await self.db.execute(select(Diagnosis).where(Diagnosis.student_id == student.id))
        diagnosis = result.scalar_one_or_none()

        return RegistrationRecord(
            registration_number=registration_number,
            student_id=student.id,
            birth_certificate=_dump(BirthCertificateData, certificate),
            student=_dump(StudentData, student),
            guardians=[_dump(GuardianData, guardian) for guardian in guardians],
            health=_dump(HealthData, health),
            diagnosis=_dump(DiagnosisData, diagnosis),
            enrollment=EnrollmentResponse.model_validate(enrollment),
        )

    async def _write_birth_certificate(self, state: _RegistrationState) -> None:
        state.certificate = BirthCertificate(
            id=new_id(), **state.form.birth_certificate.model_dump()
        )
        self.db.add(state.certificate)
        await self.db.flush()

    async def _write_student(self, state: _RegistrationState) -> None:
        data = state.form.student
        result = await self.db.execute(
            select(Student.id).where(Student.national_id == data.national_id)
        )
        if result.scalar_one_or_none() is not None:
            raise StudentAlreadyRegisteredError(data.national_id)

        state.student = Student(
            id=new_id(),
            **data.model_dump(),
            birth_certificate_id=state.certificate.id,
        )
        self.db.add(state.student)
        await self.db.flush()

    async def _write_guardians(self, state: _RegistrationState) -> None:
        state.guardians = [
            Guardian(id=new_id(), student_id=state.student.id, **guardian.model_dump())
            for guardian in state.form.guardians
        ]
        self.db.add_all(state.guardians)
        await self.db.flush()

    async def _write_health(self, state: _RegistrationState) -> None:
        if state.form.health is None:
            return
        state.health = HealthRecord(
            id=new_id(), student_id=state.student.id, **state.form.health.model_dump()
        )
        self.db.add(state.health)
        await self.db.flush()

    async def _write_diagnosis(self, state: _RegistrationState) -> None:
        if state.form.diagnosis is None:
            return
        state.diagnosis = Diagnosis(
            id=new_id(), student_id=state.student.id, **state.form.diagnosis.model_dump()
        )
        self.db.add(state.diagnosis)
        await self.db.flush()

    async def _write_enrollment(self, state: _RegistrationState) -> None:
        data = state.form.enrollment
        state.enrollment = await self._enrollments.stage_enrollment(
            EnrollmentCreateRequest(
                student_id=state.student.id,
                class_id=data.class_id,
                school_year_id=data.school_year_id,
                enrollment_date=data.enrollment_date or utc_today(),
                notes=data.notes,
            )
        )


def _dump(model: type[ModelT], record: object | None) -> ModelT | None:
    """Copy the form fields of a stored record, or None."""
    if record is None:
        return None
    return model.model_validate({name: getattr(record, name) for name in model.model_fields})
