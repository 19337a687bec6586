# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academic history service.

This module provides the AcademicHistoryService class for:
- Generating the yearly academic history of an enrollment from its
  bimester report cards
- Reading histories by id, enrollment or school year
- Correcting a history, e.g. to resolve a year pending review
- Reporting every consolidated year of an enrollment
- Deleting histories so a year can be consolidated again

The history row and its subject rows are written in one transaction.
"""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import GradingSettings, get_settings
from src.core.errors import ConflictError, InternalError, NotFoundError
from src.domains.academic_history.consolidation import (
    YearOutcome,
    aggregate_enrollment,
    aggregate_year,
    consolidate_subjects,
)
from src.domains.report_card import ReportCardReader
from src.infrastructure.database.models import (
    AcademicHistory,
    AcademicHistorySubject,
    Enrollment,
)
from src.infrastructure.database.models.base import new_id
from src.models.academic_history import (
    AcademicHistoryResponse,
    CompleteHistoryResponse,
    EnrollmentReportResponse,
    EnrollmentReportStatistics,
    GenerateHistoryRequest,
    GenerateHistoryResponse,
    HistoryStatistics,
    UpdateHistoryRequest,
)
from src.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

_UNIQUE_YEAR = "uq_academic_histories_enrollment_id"


class HistoryNotFoundError(NotFoundError):
    """Raised when academic history is not found."""

    def __init__(self, history_id: str) -> None:
        super().__init__("academic_history", history_id)


class HistoryAlreadyExistsError(ConflictError):
    """Raised when the year was already consolidated for the enrollment."""

    def __init__(self, enrollment_id: str, school_year_id: str) -> None:
        super().__init__(
            resource="academic_history",
            key={"enrollment_id": enrollment_id, "school_year_id": school_year_id},
            message="Academic history already exists for this enrollment and school year",
        )


class HistoryEnrollmentNotFoundError(NotFoundError):
    """Raised when the enrollment to consolidate does not exist."""

    def __init__(self, enrollment_id: str) -> None:
        super().__init__("enrollment", enrollment_id)


class ReportCardsNotFoundError(NotFoundError):
    """Raised when there is nothing to consolidate."""

    def __init__(self, enrollment_id: str, school_year_id: str) -> None:
        super().__init__(
            "report_card",
            enrollment_id,
            f"No report cards found for enrollment {enrollment_id} "
            f"in school year {school_year_id}",
        )


class AcademicHistoryService:
    """Service for consolidating and reading academic histories.

    Attributes:
        db: Async database session.
        grading: Grading thresholds.
    """

    def __init__(
        self,
        db: AsyncSession,
        grading: GradingSettings | None = None,
        report_cards: ReportCardReader | None = None,
    ) -> None:
        """Initialize academic history service.

        Args:
            db: Async database session.
            grading: Grading thresholds. Defaults to the configured ones.
            report_cards: Report card reader bound to the same session.
        """
        self.db = db
        self.grading = grading or get_settings().grading
        self._report_cards = report_cards or ReportCardReader(db)

    async def generate_history(self, request: GenerateHistoryRequest) -> GenerateHistoryResponse:
        """Consolidate the report cards of a school year into a history.

        Args:
            request: Enrollment and school year to consolidate.

        Returns:
            The history, its subjects, year statistics and the number of
            report cards consolidated.

        Raises:
            HistoryAlreadyExistsError: If the year is already consolidated.
            HistoryEnrollmentNotFoundError: If enrollment not found.
            ReportCardsNotFoundError: If there are no report cards.
        """
        enrollment_id = request.enrollment_id
        school_year_id = request.school_year_id

        if await self._find(enrollment_id, school_year_id) is not None:
            raise HistoryAlreadyExistsError(enrollment_id, school_year_id)

        await self._require_enrollment(enrollment_id)

        cards = await self._report_cards.list_for_enrollment(enrollment_id, school_year_id)
        if not cards:
            raise ReportCardsNotFoundError(enrollment_id, school_year_id)

        subjects = consolidate_subjects(cards, self.grading)
        year = aggregate_year(subjects, self.grading)
        now = utc_now()

        history = AcademicHistory(
            id=new_id(),
            enrollment_id=enrollment_id,
            school_year_id=school_year_id,
            final_situation=year.final_situation,
            completion_date=now if year.final_situation.is_decided else None,
            created_at=now,
            updated_at=now,
        )
        history.subjects = [
            AcademicHistorySubject(
                id=new_id(),
                subject_link_id=subject.subject_link_id,
                final_subject_average=subject.final_subject_average,
                total_subject_absences=subject.total_subject_absences,
                subject_situation=subject.subject_situation,
                notes=subject.notes,
                created_at=now,
                updated_at=now,
            )
            for subject in subjects
        ]

        try:
            self.db.add(history)
            await self.db.flush()
            _backfill_counters(history, year)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise _integrity_failure(e, enrollment_id, school_year_id) from e
        except SQLAlchemyError:
            await self.db.rollback()
            logger.exception(
                "Failed to write academic history for enrollment %s", enrollment_id
            )
            raise

        logger.info(
            "Generated academic history %s: enrollment=%s, situation=%s, subjects=%d",
            history.id,
            enrollment_id,
            year.final_situation.value,
            year.subjects_taken,
        )

        history_response = AcademicHistoryResponse.model_validate(history)
        return GenerateHistoryResponse(
            history=history_response,
            subjects=history_response.subjects,
            statistics=HistoryStatistics(
                subjects_taken=year.subjects_taken,
                subjects_passed=year.subjects_passed,
                subjects_failed=year.subjects_failed,
                subjects_in_recovery=year.subjects_in_recovery,
                yearly_average=year.yearly_average,
                total_absences=year.total_absences,
                approval_rate=year.approval_rate,
            ),
            report_cards_processed=len(cards),
        )

    async def get_history(self, history_id: str) -> AcademicHistoryResponse:
        """Get academic history by ID, with its subjects.

        Raises:
            HistoryNotFoundError: If history not found.
        """
        history = await self._get(history_id)
        return AcademicHistoryResponse.model_validate(history)

    async def get_complete_history(self, history_id: str) -> CompleteHistoryResponse:
        """Get a history together with the bimesters it was built from.

        Raises:
            HistoryNotFoundError: If history not found.
        """
        history = await self._get(history_id)
        bimesters = await self._report_cards.summarize(
            history.enrollment_id, history.school_year_id
        )
        return CompleteHistoryResponse(
            history=AcademicHistoryResponse.model_validate(history),
            bimesters=bimesters,
        )

    async def get_for_enrollment_year(
        self,
        enrollment_id: str,
        school_year_id: str,
    ) -> AcademicHistoryResponse:
        """Get the history of an enrollment for one school year.

        Raises:
            NotFoundError: If the year was not consolidated.
        """
        history = await self._find(enrollment_id, school_year_id)
        if history is None:
            raise NotFoundError(
                "academic_history",
                enrollment_id,
                f"No academic history for enrollment {enrollment_id} "
                f"in school year {school_year_id}",
            )
        return AcademicHistoryResponse.model_validate(history)

    async def list_for_enrollment(self, enrollment_id: str) -> list[AcademicHistoryResponse]:
        """List the histories of an enrollment, newest first."""
        query = (
            select(AcademicHistory)
            .where(AcademicHistory.enrollment_id == enrollment_id)
            .order_by(AcademicHistory.created_at.desc())
        )
        result = await self.db.execute(query)
        return [AcademicHistoryResponse.model_validate(h) for h in result.scalars().all()]

    async def list_for_school_year(self, school_year_id: str) -> list[AcademicHistoryResponse]:
        """List the histories consolidated for a school year."""
        query = (
            select(AcademicHistory)
            .where(AcademicHistory.school_year_id == school_year_id)
            .order_by(AcademicHistory.created_at.desc())
        )
        result = await self.db.execute(query)
        return [AcademicHistoryResponse.model_validate(h) for h in result.scalars().all()]

    async def update_history(
        self,
        history_id: str,
        request: UpdateHistoryRequest,
    ) -> AcademicHistoryResponse:
        """Correct an academic history.

        Moving the history to another enrollment or school year keeps
        one history per (enrollment, school year).

        Args:
            history_id: History identifier.
            request: Update data.

        Returns:
            Updated history.

        Raises:
            HistoryNotFoundError: If history not found.
            HistoryEnrollmentNotFoundError: If the new enrollment does not exist.
            HistoryAlreadyExistsError: If the target enrollment and year
                already have a history.
        """
        history = await self._get(history_id)

        enrollment_id = request.enrollment_id or history.enrollment_id
        school_year_id = request.school_year_id or history.school_year_id
        if (enrollment_id, school_year_id) != (history.enrollment_id, history.school_year_id):
            if enrollment_id != history.enrollment_id:
                await self._require_enrollment(enrollment_id)
            existing = await self._find(enrollment_id, school_year_id)
            if existing is not None and existing.id != history.id:
                raise HistoryAlreadyExistsError(enrollment_id, school_year_id)
            history.enrollment_id = enrollment_id
            history.school_year_id = school_year_id

        if request.final_situation is not None:
            history.final_situation = request.final_situation
            if not request.final_situation.is_decided:
                history.completion_date = None
            elif history.completion_date is None:
                history.completion_date = utc_now()
        if request.completion_date is not None:
            history.completion_date = ensure_utc(request.completion_date)
        if request.yearly_average is not None:
            history.yearly_average = request.yearly_average
        if request.total_absences is not None:
            history.total_absences = request.total_absences
        if request.notes is not None:
            history.notes = request.notes.strip() or None

        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise _integrity_failure(e, enrollment_id, school_year_id) from e
        await self.db.refresh(history)

        logger.info(
            "Updated academic history %s: situation=%s",
            history_id,
            history.final_situation.value,
        )

        return AcademicHistoryResponse.model_validate(history)

    async def enrollment_report(self, enrollment_id: str) -> EnrollmentReportResponse:
        """Report every consolidated year of an enrollment.

        An enrollment without histories yields an empty report.
        """
        histories = await self.list_for_enrollment(enrollment_id)
        record = aggregate_enrollment(histories)

        return EnrollmentReportResponse(
            enrollment_id=enrollment_id,
            histories=histories,
            statistics=EnrollmentReportStatistics(
                years_taken=record.years_taken,
                years_passed=record.years_passed,
                years_failed=record.years_failed,
                approval_rate=record.approval_rate,
                historical_average=record.historical_average,
                total_subjects=record.total_subjects,
            ),
        )

    async def delete_history(self, history_id: str) -> None:
        """Delete a history and its subject rows.

        Raises:
            HistoryNotFoundError: If history not found.
        """
        history = await self._get(history_id)
        await self.db.delete(history)
        await self.db.commit()

        logger.info("Deleted academic history %s", history_id)

    async def _get(self, history_id: str) -> AcademicHistory:
        result = await self.db.execute(
            select(AcademicHistory).where(AcademicHistory.id == history_id)
        )
        history = result.scalar_one_or_none()
        if not history:
            raise HistoryNotFoundError(history_id)
        return history

    async def _require_enrollment(self, enrollment_id: str) -> None:
        result = await self.db.execute(select(Enrollment.id).where(Enrollment.id == enrollment_id))
        if result.scalar_one_or_none() is None:
            raise HistoryEnrollmentNotFoundError(enrollment_id)

    async def _find(self, enrollment_id: str, school_year_id: str) -> AcademicHistory | None:
        result = await self.db.execute(
            select(AcademicHistory).where(
                AcademicHistory.enrollment_id == enrollment_id,
                AcademicHistory.school_year_id == school_year_id,
            )
        )
        return result.scalar_one_or_none()


def _backfill_counters(history: AcademicHistory, year: YearOutcome) -> None:
    history.yearly_average = year.yearly_average
    history.total_absences = year.total_absences
    history.subjects_taken = year.subjects_taken
    history.subjects_passed = year.subjects_passed
    history.subjects_failed = year.subjects_failed


def _integrity_failure(
    error: IntegrityError,
    enrollment_id: str,
    school_year_id: str,
) -> ConflictError | InternalError:
    """Translate an integrity failure on the academic history tables."""
    if _UNIQUE_YEAR in str(error.orig):
        return HistoryAlreadyExistsError(enrollment_id, school_year_id)
    return InternalError("Academic history write failed", "academic_history_write", error)
