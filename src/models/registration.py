# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Complete registration form models.

A registration form carries everything captured when a student is
admitted: birth certificate, personal data, guardians, health data,
diagnosis and the enrollment itself.
"""

from datetime import date

from pydantic import BaseModel, EmailStr, Field

from src.models.enrollment import EnrollmentResponse


class BirthCertificateData(BaseModel):
    """Civil birth certificate."""

    book: str = Field(default="", max_length=20)
    page: str | None = Field(default=None, max_length=20)
    term: str | None = Field(default=None, max_length=20)
    registry_office: str | None = Field(default=None, max_length=200)
    issued_on: date | None = None


class StudentData(BaseModel):
    """Personal data of the student."""

    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)
    national_id: str = Field(default="", max_length=20)
    birth_date: date | None = None
    gender: str | None = Field(default=None, max_length=20)


class GuardianData(BaseModel):
    """A parent or legal guardian."""

    full_name: str = Field(max_length=200)
    kinship: str | None = Field(default=None, max_length=50)
    national_id: str | None = Field(default=None, max_length=20)
    phone: str | None = Field(default=None, max_length=20)
    email: EmailStr | None = None


class HealthData(BaseModel):
    """Health questionnaire answers."""

    vaccines_up_to_date: bool = False
    special_needs: str | None = None
    food_restrictions: str | None = None
    allergies: str | None = None
    medication_allergies: str | None = None
    continuous_medication: str | None = None
    ongoing_treatments: list[str] = Field(default_factory=list)
    notes: str | None = None


class DiagnosisData(BaseModel):
    """Diagnosed conditions."""

    conditions: list[str] = Field(default_factory=list)
    other_diagnoses: str | None = None


class EnrollmentData(BaseModel):
    """Where the student is being enrolled."""

    class_id: str = ""
    school_year_id: str = ""
    enrollment_date: date | None = Field(
        default=None,
        description="Admission date. Defaults to today.",
    )
    notes: str | None = None


class RegistrationForm(BaseModel):
    """A complete registration form.

    Required-value checks are made by the registration workflow so that
    every problem is reported at once.
    """

    birth_certificate: BirthCertificateData = Field(default_factory=BirthCertificateData)
    student: StudentData = Field(default_factory=StudentData)
    guardians: list[GuardianData] = Field(default_factory=list)
    health: HealthData | None = None
    diagnosis: DiagnosisData | None = None
    enrollment: EnrollmentData = Field(default_factory=EnrollmentData)


class RegistrationResponse(BaseModel):
    """Identifiers of every record written by a registration."""

    student_id: str
    birth_certificate_id: str
    guardian_ids: list[str]
    health_record_id: str | None = None
    diagnosis_id: str | None = None
    enrollment: EnrollmentResponse


class RegistrationRecord(BaseModel):
    """A stored registration assembled back into form shape."""

    registration_number: str
    student_id: str
    birth_certificate: BirthCertificateData | None = None
    student: StudentData
    guardians: list[GuardianData]
    health: HealthData | None = None
    diagnosis: DiagnosisData | None = None
    enrollment: EnrollmentResponse
