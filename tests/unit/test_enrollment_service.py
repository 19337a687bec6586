# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Enrollment service."""

from datetime import date
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from src.core.errors import ErrorKind, InternalError, NotFoundError
from src.domains.enrollment.service import (
    DEFAULT_TRANSFER_REASON,
    ActiveEnrollmentExistsError,
    ClassNotFoundError,
    EnrollmentHasDependentsError,
    EnrollmentNotActiveError,
    EnrollmentNotFoundError,
    EnrollmentService,
    MissingReasonError,
    RegistrationNumberConflictError,
    SchoolYearNotFoundError,
    StudentNotFoundError,
)
from src.infrastructure.database.models import SchoolClass
from src.models.common import EnrollmentStatus, FinalizeStatus
from src.models.enrollment import (
    EnrollmentCreateRequest,
    EnrollmentUpdateRequest,
    FinalizeRequest,
    TransferRequest,
)


@pytest.fixture
def numbers():
    """Create mock registration number generator."""
    generator = AsyncMock()
    generator.next_number.return_value = "20251001"
    return generator


@pytest.fixture
def enrollment_service(mock_db, numbers):
    """Create enrollment service with mock database."""
    return EnrollmentService(db=mock_db, numbers=numbers)


@pytest.fixture
def create_request(student, school_class, school_year):
    """Create an enrollment request for the fixture student."""
    return EnrollmentCreateRequest(
        student_id=student.id,
        class_id=school_class.id,
        school_year_id=school_year.id,
        enrollment_date=date(2025, 2, 3),
    )


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO enrollments", {}, Exception(message))


class TestEnrollmentServiceCreate:
    """Tests for enrolling students."""

    @pytest.mark.asyncio
    async def test_create_enrollment_success(
        self, enrollment_service, mock_db, make_result, numbers,
        create_request, student, school_class, school_year,
    ):
        """Test successful enrollment with a generated number."""
        mock_db.execute.side_effect = [
            make_result(student),
            make_result(school_class),
            make_result(school_year),
            make_result(None),
        ]

        result = await enrollment_service.create_enrollment(create_request)

        assert result.registration_number == "20251001"
        assert result.status == EnrollmentStatus.ACTIVE
        assert result.student_id == student.id
        numbers.next_number.assert_awaited_once_with(school_year.id, school_class.id)
        mock_db.add.assert_called_once()
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_create_enrollment_student_not_found(
        self, enrollment_service, mock_db, make_result, numbers, create_request,
    ):
        """Test enrollment fails when student not found."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(StudentNotFoundError):
            await enrollment_service.create_enrollment(create_request)

        numbers.next_number.assert_not_called()
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_enrollment_class_not_found(
        self, enrollment_service, mock_db, make_result, create_request, student,
    ):
        """Test enrollment fails when class not found."""
        mock_db.execute.side_effect = [make_result(student), make_result(None)]

        with pytest.raises(ClassNotFoundError):
            await enrollment_service.create_enrollment(create_request)

    @pytest.mark.asyncio
    async def test_create_enrollment_school_year_not_found(
        self, enrollment_service, mock_db, make_result, create_request, student, school_class,
    ):
        """Test enrollment fails when school year not found."""
        mock_db.execute.side_effect = [
            make_result(student),
            make_result(school_class),
            make_result(None),
        ]

        with pytest.raises(SchoolYearNotFoundError):
            await enrollment_service.create_enrollment(create_request)

    @pytest.mark.asyncio
    async def test_create_enrollment_already_active(
        self, enrollment_service, mock_db, make_result, numbers,
        create_request, student, school_class, school_year, make_enrollment,
    ):
        """Test enrollment fails when student already holds an active one."""
        mock_db.execute.side_effect = [
            make_result(student),
            make_result(school_class),
            make_result(school_year),
            make_result(make_enrollment()),
        ]

        with pytest.raises(ActiveEnrollmentExistsError):
            await enrollment_service.create_enrollment(create_request)

        numbers.next_number.assert_not_called()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_active_insert_maps_to_conflict(
        self, enrollment_service, mock_db, make_result,
        create_request, student, school_class, school_year,
    ):
        """Test the active-enrollment index violation becomes a conflict."""
        mock_db.execute.side_effect = [
            make_result(student),
            make_result(school_class),
            make_result(school_year),
            make_result(None),
        ]
        mock_db.flush.side_effect = _integrity_error(
            'duplicate key value violates unique constraint "uq_enrollments_active_student_year"'
        )

        with pytest.raises(ActiveEnrollmentExistsError):
            await enrollment_service.create_enrollment(create_request)

        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_number_maps_to_conflict(
        self, enrollment_service, mock_db, make_result,
        create_request, student, school_class, school_year,
    ):
        """Test a taken registration number becomes a conflict."""
        mock_db.execute.side_effect = [
            make_result(student),
            make_result(school_class),
            make_result(school_year),
            make_result(None),
        ]
        mock_db.commit.side_effect = _integrity_error(
            'duplicate key value violates unique constraint "ix_enrollments_registration_number"'
        )

        with pytest.raises(RegistrationNumberConflictError):
            await enrollment_service.create_enrollment(create_request)

    @pytest.mark.asyncio
    async def test_other_integrity_failure_is_internal(
        self, enrollment_service, mock_db, make_result,
        create_request, student, school_class, school_year,
    ):
        """Test a foreign key violation is not reported as a conflict."""
        mock_db.execute.side_effect = [
            make_result(student),
            make_result(school_class),
            make_result(school_year),
            make_result(None),
        ]
        mock_db.flush.side_effect = _integrity_error(
            'insert or update on table "enrollments" violates foreign key constraint '
            '"fk_enrollments_class_id_classes"'
        )

        with pytest.raises(InternalError) as exc_info:
            await enrollment_service.create_enrollment(create_request)

        assert exc_info.value.kind is ErrorKind.INTERNAL
        mock_db.rollback.assert_awaited_once()


class TestEnrollmentServiceTransfer:
    """Tests for class transfers."""

    @pytest.mark.asyncio
    async def test_transfer_within_school_year(
        self, enrollment_service, mock_db, make_result, numbers, school_class, make_enrollment,
    ):
        """Test same-year transfer keeps id and number."""
        enrollment = make_enrollment()
        target = SchoolClass(
            id=str(uuid4()),
            name="1B",
            series_id=school_class.series_id,
            school_year_id=enrollment.school_year_id,
        )
        mock_db.execute.side_effect = [make_result(enrollment), make_result(target)]

        result = await enrollment_service.transfer_enrollment(
            enrollment.id, TransferRequest(new_class_id=target.id, reason="Parent request")
        )

        assert result.id == enrollment.id
        assert result.class_id == target.id
        assert result.registration_number == "20251001"
        assert result.status == EnrollmentStatus.ACTIVE
        assert result.notes == f"Transferred from class {school_class.id}: Parent request"
        numbers.next_number.assert_not_called()
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_transfer_appends_to_existing_notes(
        self, enrollment_service, mock_db, make_result, make_enrollment,
    ):
        """Test transfer notes are appended, with the default reason."""
        enrollment = make_enrollment(notes="Needs glasses")
        target = SchoolClass(id=str(uuid4()), name="1C", school_year_id=enrollment.school_year_id)
        mock_db.execute.side_effect = [make_result(enrollment), make_result(target)]

        result = await enrollment_service.transfer_enrollment(
            enrollment.id, TransferRequest(new_class_id=target.id, reason="   ")
        )

        lines = result.notes.split("\n")
        assert lines[0] == "Needs glasses"
        assert lines[1].endswith(DEFAULT_TRANSFER_REASON)

    @pytest.mark.asyncio
    async def test_transfer_across_school_years(
        self, enrollment_service, mock_db, make_result, numbers,
        student, school_year, next_school_year, make_enrollment,
    ):
        """Test cross-year transfer closes the source and opens a successor."""
        enrollment = make_enrollment()
        target = SchoolClass(id=str(uuid4()), name="2A", school_year_id=next_school_year.id)
        numbers.next_number.return_value = "20262001"
        mock_db.execute.side_effect = [
            make_result(enrollment),
            make_result(target),
            make_result(student),
            make_result(target),
            make_result(next_school_year),
            make_result(None),
        ]

        result = await enrollment_service.transfer_enrollment(
            enrollment.id, TransferRequest(new_class_id=target.id, reason="Moved up")
        )

        assert enrollment.status == EnrollmentStatus.TRANSFERRED
        assert enrollment.exit_reason == "Moved up"
        assert enrollment.exit_date is not None

        assert result.id != enrollment.id
        assert result.status == EnrollmentStatus.ACTIVE
        assert result.school_year_id == next_school_year.id
        assert result.registration_number == "20262001"
        assert result.notes == "Transferred from enrollment 20251001"
        numbers.next_number.assert_awaited_once_with(next_school_year.id, target.id)
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_transfer_enrollment_not_found(self, enrollment_service, mock_db, make_result):
        """Test transfer fails when enrollment not found."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.transfer_enrollment(
                str(uuid4()), TransferRequest(new_class_id=str(uuid4()))
            )

    @pytest.mark.asyncio
    async def test_transfer_target_class_not_found(
        self, enrollment_service, mock_db, make_result, make_enrollment,
    ):
        """Test transfer fails when the target class does not exist."""
        enrollment = make_enrollment()
        mock_db.execute.side_effect = [make_result(enrollment), make_result(None)]

        with pytest.raises(ClassNotFoundError):
            await enrollment_service.transfer_enrollment(
                enrollment.id, TransferRequest(new_class_id=str(uuid4()))
            )

        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_transfer_terminal_enrollment(
        self, enrollment_service, mock_db, make_result, school_class, make_enrollment,
    ):
        """Test terminal enrollments cannot be transferred."""
        enrollment = make_enrollment(status=EnrollmentStatus.CONCLUDED)
        mock_db.execute.side_effect = [make_result(enrollment), make_result(school_class)]

        with pytest.raises(EnrollmentNotActiveError):
            await enrollment_service.transfer_enrollment(
                enrollment.id, TransferRequest(new_class_id=school_class.id)
            )

        mock_db.commit.assert_not_called()


class TestEnrollmentServiceFinalize:
    """Tests for finalizing enrollments."""

    @pytest.mark.asyncio
    async def test_finalize_concluded(self, enrollment_service, mock_db, make_result, make_enrollment):
        """Test concluding an enrollment records exit data."""
        enrollment = make_enrollment()
        mock_db.execute.return_value = make_result(enrollment)

        result = await enrollment_service.finalize_enrollment(
            enrollment.id,
            FinalizeRequest(status=FinalizeStatus.CONCLUDED, reason="  Year completed "),
        )

        assert result.status == EnrollmentStatus.CONCLUDED
        assert result.exit_reason == "Year completed"
        assert result.exit_date is not None
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_finalize_cancelled(self, enrollment_service, mock_db, make_result, make_enrollment):
        """Test cancelling an enrollment."""
        enrollment = make_enrollment()
        mock_db.execute.return_value = make_result(enrollment)

        result = await enrollment_service.finalize_enrollment(
            enrollment.id,
            FinalizeRequest(status=FinalizeStatus.CANCELLED, reason="Family moved"),
        )

        assert result.status == EnrollmentStatus.CANCELLED

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason", [None, "", "   "])
    async def test_finalize_requires_reason(self, enrollment_service, mock_db, reason):
        """Test a missing reason fails before any lookup."""
        with pytest.raises(MissingReasonError):
            await enrollment_service.finalize_enrollment(
                str(uuid4()),
                FinalizeRequest(status=FinalizeStatus.CONCLUDED, reason=reason),
            )

        mock_db.execute.assert_not_called()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_finalize_not_found(self, enrollment_service, mock_db, make_result):
        """Test finalize fails when enrollment not found."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.finalize_enrollment(
                str(uuid4()),
                FinalizeRequest(status=FinalizeStatus.CONCLUDED, reason="Done"),
            )

    @pytest.mark.asyncio
    async def test_finalize_already_closed(self, enrollment_service, mock_db, make_result, make_enrollment):
        """Test closed enrollments keep their status."""
        enrollment = make_enrollment(status=EnrollmentStatus.CANCELLED)
        mock_db.execute.return_value = make_result(enrollment)

        with pytest.raises(EnrollmentNotActiveError):
            await enrollment_service.finalize_enrollment(
                enrollment.id,
                FinalizeRequest(status=FinalizeStatus.CONCLUDED, reason="Done"),
            )

        assert enrollment.status == EnrollmentStatus.CANCELLED


class TestEnrollmentServiceUpdate:
    """Tests for updating enrollments."""

    @pytest.mark.asyncio
    async def test_update_enrollment_date_and_notes(
        self, enrollment_service, mock_db, make_result, make_enrollment,
    ):
        """Test the admission date and notes are replaced."""
        enrollment = make_enrollment()
        mock_db.execute.return_value = make_result(enrollment)

        result = await enrollment_service.update_enrollment(
            enrollment.id,
            EnrollmentUpdateRequest(enrollment_date=date(2025, 3, 10), notes="  Late admission  "),
        )

        assert result.enrollment_date == date(2025, 3, 10)
        assert result.notes == "Late admission"
        assert result.registration_number == "20251001"
        assert result.status == EnrollmentStatus.ACTIVE
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_update_keeps_unset_fields(
        self, enrollment_service, mock_db, make_result, make_enrollment,
    ):
        """Test omitted fields are left untouched."""
        enrollment = make_enrollment(notes="Scholarship")
        original_date = enrollment.enrollment_date
        mock_db.execute.return_value = make_result(enrollment)

        result = await enrollment_service.update_enrollment(
            enrollment.id, EnrollmentUpdateRequest(notes="")
        )

        assert result.enrollment_date == original_date
        assert result.notes is None

    @pytest.mark.asyncio
    async def test_update_enrollment_not_found(self, enrollment_service, mock_db, make_result):
        """Test update fails when enrollment not found."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.update_enrollment(
                str(uuid4()), EnrollmentUpdateRequest(notes="x")
            )

        mock_db.commit.assert_not_called()


class TestEnrollmentServiceDelete:
    """Tests for deleting enrollments."""

    @pytest.mark.asyncio
    async def test_delete_enrollment_success(self, enrollment_service, mock_db, make_result, make_enrollment):
        """Test deleting an enrollment without dependents."""
        enrollment = make_enrollment()
        mock_db.execute.side_effect = [make_result(enrollment)] + [make_result(0)] * 4

        await enrollment_service.delete_enrollment(enrollment.id)

        mock_db.delete.assert_awaited_once_with(enrollment)
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_delete_enrollment_with_grades(
        self, enrollment_service, mock_db, make_result, make_enrollment,
    ):
        """Test deletion is refused while grades reference the enrollment."""
        enrollment = make_enrollment()
        mock_db.execute.side_effect = [make_result(enrollment), make_result(3)] + [make_result(0)] * 3

        with pytest.raises(EnrollmentHasDependentsError) as exc_info:
            await enrollment_service.delete_enrollment(enrollment.id)

        assert exc_info.value.dependents == {"grades": 3}
        mock_db.delete.assert_not_called()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_enrollment_with_report_cards_only(
        self, enrollment_service, mock_db, make_result, make_enrollment,
    ):
        """Test report cards alone block deletion."""
        enrollment = make_enrollment()
        mock_db.execute.side_effect = [
            make_result(enrollment),
            make_result(0),
            make_result(0),
            make_result(4),
            make_result(0),
        ]

        with pytest.raises(EnrollmentHasDependentsError) as exc_info:
            await enrollment_service.delete_enrollment(enrollment.id)

        assert exc_info.value.dependents == {"report_cards": 4}
        mock_db.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_enrollment_with_history(
        self, enrollment_service, mock_db, make_result, make_enrollment,
    ):
        """Test a consolidated history blocks deletion."""
        enrollment = make_enrollment()
        mock_db.execute.side_effect = [
            make_result(enrollment),
            make_result(0),
            make_result(0),
            make_result(4),
            make_result(1),
        ]

        with pytest.raises(EnrollmentHasDependentsError) as exc_info:
            await enrollment_service.delete_enrollment(enrollment.id)

        assert exc_info.value.dependents == {"report_cards": 4, "academic_histories": 1}
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_enrollment_not_found(self, enrollment_service, mock_db, make_result):
        """Test delete fails when enrollment not found."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.delete_enrollment(str(uuid4()))


class TestEnrollmentServiceQueries:
    """Tests for enrollment lookups."""

    @pytest.mark.asyncio
    async def test_get_enrollment(self, enrollment_service, mock_db, make_result, make_enrollment):
        """Test retrieving an enrollment by id."""
        enrollment = make_enrollment()
        mock_db.execute.return_value = make_result(enrollment)

        result = await enrollment_service.get_enrollment(enrollment.id)

        assert result.id == enrollment.id

    @pytest.mark.asyncio
    async def test_get_by_registration_number_not_found(self, enrollment_service, mock_db, make_result):
        """Test unknown registration numbers are not found."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.get_by_registration_number("20259999")

    @pytest.mark.asyncio
    async def test_get_active_enrollment_missing(self, enrollment_service, mock_db, make_result):
        """Test a student without an active enrollment is not found."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(NotFoundError):
            await enrollment_service.get_active_enrollment(str(uuid4()), str(uuid4()))

    @pytest.mark.asyncio
    async def test_list_enrollments(self, enrollment_service, mock_db, make_result, make_enrollment):
        """Test listing enrollments with a status filter."""
        enrollments = [make_enrollment(), make_enrollment(registration_number="20251002")]
        mock_db.execute.return_value = make_result(items=enrollments)

        items, total = await enrollment_service.list_enrollments(status=EnrollmentStatus.ACTIVE)

        assert total == 2
        assert [item.registration_number for item in items] == ["20251001", "20251002"]

    @pytest.mark.asyncio
    async def test_list_enrollments_empty(self, enrollment_service, mock_db, make_result):
        """Test listing enrollments when empty."""
        mock_db.execute.return_value = make_result(items=[])

        items, total = await enrollment_service.list_enrollments(class_id=str(uuid4()))

        assert items == []
        assert total == 0

