# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for Academic History service."""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.core.errors import InternalError, NotFoundError
from src.domains.academic_history.service import (
    AcademicHistoryService,
    HistoryAlreadyExistsError,
    HistoryEnrollmentNotFoundError,
    HistoryNotFoundError,
    ReportCardsNotFoundError,
)
from src.infrastructure.database.models import AcademicHistory, AcademicHistorySubject
from src.models.academic_history import GenerateHistoryRequest, UpdateHistoryRequest
from src.models.common import FinalSituation, SubjectSituation
from src.models.report_card import BimesterSummary, ReportCardSubjectRow, ReportCardView

NOW = datetime(2025, 12, 12, 15, 0, tzinfo=timezone.utc)


@pytest.fixture
def report_cards():
    """Create mock report card reader."""
    return AsyncMock()


@pytest.fixture
def history_service(mock_db, grading, report_cards):
    """Create academic history service with mock database."""
    return AcademicHistoryService(db=mock_db, grading=grading, report_cards=report_cards)


@pytest.fixture
def request_():
    """Create a generation request."""
    return GenerateHistoryRequest(enrollment_id="enrollment-1", school_year_id="year-1")


def _cards(averages: dict[str, list[str]]) -> list[ReportCardView]:
    """Build one card per bimester from {subject_link_id: [averages...]}."""
    bimesters = max(len(values) for values in averages.values())
    return [
        ReportCardView(
            id=f"card-{b}",
            enrollment_id="enrollment-1",
            period_id=f"period-{b}",
            bimester=b,
            subjects=[
                ReportCardSubjectRow(
                    subject_link_id=link,
                    bimester_average=Decimal(values[b - 1]),
                    bimester_absences=1,
                )
                for link, values in averages.items()
                if len(values) >= b
            ],
        )
        for b in range(1, bimesters + 1)
    ]


def _history(**overrides) -> AcademicHistory:
    values = {
        "id": str(uuid4()),
        "enrollment_id": "enrollment-1",
        "school_year_id": "year-1",
        "final_situation": FinalSituation.PASSED,
        "yearly_average": Decimal("8.00"),
        "total_absences": 2,
        "subjects_taken": 1,
        "subjects_passed": 1,
        "subjects_failed": 0,
        "completion_date": NOW,
        "notes": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    values.update(overrides)
    history = AcademicHistory(**values)
    history.subjects = [
        AcademicHistorySubject(
            id=str(uuid4()),
            academic_history_id=history.id,
            subject_link_id="math",
            final_subject_average=Decimal("8.00"),
            total_subject_absences=2,
            subject_situation=SubjectSituation.PASSED,
        )
    ]
    return history


class TestGenerateHistory:
    """Tests for history generation."""

    @pytest.mark.asyncio
    async def test_generate_history_success(
        self, history_service, mock_db, make_result, report_cards, request_,
    ):
        """Test report cards are consolidated and stored in one commit."""
        mock_db.execute.side_effect = [make_result(None), make_result("enrollment-1")]
        report_cards.list_for_enrollment.return_value = _cards(
            {
                "math": ["8", "9", "6", "7"],
                "science": ["7", "7", "8", "8"],
            }
        )

        result = await history_service.generate_history(request_)

        assert result.report_cards_processed == 4
        assert result.history.final_situation == FinalSituation.PASSED
        assert result.history.completion_date is not None
        assert result.history.subjects_taken == 2
        assert result.history.yearly_average == Decimal("7.50")
        assert result.history.total_absences == 8
        assert [s.final_subject_average for s in result.subjects] == [
            Decimal("7.50"),
            Decimal("7.50"),
        ]
        assert result.statistics.approval_rate == Decimal("100.00")
        mock_db.add.assert_called_once()
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_generate_history_failed_year(
        self, history_service, mock_db, make_result, report_cards, request_,
    ):
        """Test a failed subject fails the year."""
        mock_db.execute.side_effect = [make_result(None), make_result("enrollment-1")]
        report_cards.list_for_enrollment.return_value = _cards(
            {"math": ["8", "8", "8", "8"], "history": ["4", "5", "4", "4"]}
        )

        result = await history_service.generate_history(request_)

        assert result.history.final_situation == FinalSituation.FAILED
        assert result.history.subjects_failed == 1
        assert result.statistics.subjects_passed == 1
        failed = [s for s in result.subjects if s.subject_link_id == "history"]
        assert failed[0].final_subject_average == Decimal("4.25")
        assert failed[0].subject_situation == SubjectSituation.FAILED

    @pytest.mark.asyncio
    async def test_generate_history_already_exists(
        self, history_service, mock_db, make_result, report_cards, request_,
    ):
        """Test a consolidated year cannot be generated twice."""
        mock_db.execute.return_value = make_result(_history())

        with pytest.raises(HistoryAlreadyExistsError):
            await history_service.generate_history(request_)

        report_cards.list_for_enrollment.assert_not_called()
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_generate_history_enrollment_not_found(
        self, history_service, mock_db, make_result, request_,
    ):
        """Test generation fails when enrollment not found."""
        mock_db.execute.side_effect = [make_result(None), make_result(None)]

        with pytest.raises(HistoryEnrollmentNotFoundError):
            await history_service.generate_history(request_)

    @pytest.mark.asyncio
    async def test_generate_history_without_report_cards(
        self, history_service, mock_db, make_result, report_cards, request_,
    ):
        """Test generation fails when there is nothing to consolidate."""
        mock_db.execute.side_effect = [make_result(None), make_result("enrollment-1")]
        report_cards.list_for_enrollment.return_value = []

        with pytest.raises(ReportCardsNotFoundError):
            await history_service.generate_history(request_)

        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_concurrent_generation_rolls_back(
        self, history_service, mock_db, make_result, report_cards, request_,
    ):
        """Test a unique violation rolls back and reports a conflict."""
        mock_db.execute.side_effect = [make_result(None), make_result("enrollment-1")]
        report_cards.list_for_enrollment.return_value = _cards({"math": ["8"]})
        mock_db.flush.side_effect = IntegrityError(
            "INSERT",
            {},
            Exception(
                'duplicate key value violates unique constraint '
                '"uq_academic_histories_enrollment_id"'
            ),
        )

        with pytest.raises(HistoryAlreadyExistsError):
            await history_service.generate_history(request_)

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_foreign_key_failure_is_internal(
        self, history_service, mock_db, make_result, report_cards, request_,
    ):
        """Test a missing school year is not reported as a duplicate history."""
        mock_db.execute.side_effect = [make_result(None), make_result("enrollment-1")]
        report_cards.list_for_enrollment.return_value = _cards({"math": ["8"]})
        mock_db.flush.side_effect = IntegrityError(
            "INSERT",
            {},
            Exception(
                'insert or update on table "academic_histories" violates foreign key '
                'constraint "fk_academic_histories_school_year_id_school_years"'
            ),
        )

        with pytest.raises(InternalError):
            await history_service.generate_history(request_)

        mock_db.rollback.assert_awaited_once()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_storage_failure_rolls_back(
        self, history_service, mock_db, make_result, report_cards, request_,
    ):
        """Test other storage errors roll back and propagate."""
        mock_db.execute.side_effect = [make_result(None), make_result("enrollment-1")]
        report_cards.list_for_enrollment.return_value = _cards({"math": ["8"]})
        mock_db.commit.side_effect = OperationalError("COMMIT", {}, Exception("connection lost"))

        with pytest.raises(OperationalError):
            await history_service.generate_history(request_)

        mock_db.rollback.assert_awaited_once()


class TestReadHistory:
    """Tests for history lookups."""

    @pytest.mark.asyncio
    async def test_get_history(self, history_service, mock_db, make_result):
        """Test retrieving a history with its subjects."""
        history = _history()
        mock_db.execute.return_value = make_result(history)

        result = await history_service.get_history(history.id)

        assert result.id == history.id
        assert [s.subject_link_id for s in result.subjects] == ["math"]

    @pytest.mark.asyncio
    async def test_get_history_not_found(self, history_service, mock_db, make_result):
        """Test unknown histories are not found."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(HistoryNotFoundError):
            await history_service.get_history(str(uuid4()))

    @pytest.mark.asyncio
    async def test_get_complete_history(self, history_service, mock_db, make_result, report_cards):
        """Test the complete view includes bimester summaries."""
        history = _history()
        mock_db.execute.return_value = make_result(history)
        report_cards.summarize.return_value = [
            BimesterSummary(report_card_id="c1", bimester=1, subject_count=1, average=Decimal("8.00")),
        ]

        result = await history_service.get_complete_history(history.id)

        assert result.history.id == history.id
        assert [b.bimester for b in result.bimesters] == [1]
        report_cards.summarize.assert_awaited_once_with("enrollment-1", "year-1")

    @pytest.mark.asyncio
    async def test_get_for_enrollment_year_missing(self, history_service, mock_db, make_result):
        """Test an unconsolidated year is not found."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(NotFoundError):
            await history_service.get_for_enrollment_year("enrollment-1", "year-1")

    @pytest.mark.asyncio
    async def test_list_for_enrollment(self, history_service, mock_db, make_result):
        """Test listing the histories of an enrollment."""
        mock_db.execute.return_value = make_result(items=[_history(), _history(school_year_id="year-0")])

        items = await history_service.list_for_enrollment("enrollment-1")

        assert [item.school_year_id for item in items] == ["year-1", "year-0"]

    @pytest.mark.asyncio
    async def test_list_for_school_year(self, history_service, mock_db, make_result):
        """Test listing the histories of a school year."""
        mock_db.execute.return_value = make_result(items=[])

        assert await history_service.list_for_school_year("year-1") == []


class TestUpdateHistory:
    """Tests for history corrections."""

    @pytest.mark.asyncio
    async def test_resolve_pending_review(self, history_service, mock_db, make_result):
        """Test deciding a year pending review stamps its completion date."""
        history = _history(final_situation=FinalSituation.PENDING_REVIEW, completion_date=None)
        mock_db.execute.return_value = make_result(history)

        result = await history_service.update_history(
            history.id,
            UpdateHistoryRequest(final_situation=FinalSituation.PASSED, notes="Council approved"),
        )

        assert result.final_situation == FinalSituation.PASSED
        assert result.completion_date is not None
        assert result.notes == "Council approved"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_back_to_in_progress_clears_completion(
        self, history_service, mock_db, make_result,
    ):
        """Test an undecided situation has no completion date."""
        history = _history()
        mock_db.execute.return_value = make_result(history)

        result = await history_service.update_history(
            history.id, UpdateHistoryRequest(final_situation=FinalSituation.IN_PROGRESS)
        )

        assert result.completion_date is None

    @pytest.mark.asyncio
    async def test_naive_completion_date_stored_as_utc(
        self, history_service, mock_db, make_result,
    ):
        """Test a completion date without timezone is taken as UTC."""
        history = _history()
        mock_db.execute.return_value = make_result(history)

        await history_service.update_history(
            history.id, UpdateHistoryRequest(completion_date=datetime(2025, 12, 20, 9, 30))
        )

        assert history.completion_date == datetime(2025, 12, 20, 9, 30, tzinfo=timezone.utc)
        assert history.completion_date.tzinfo is timezone.utc

    @pytest.mark.asyncio
    async def test_move_to_taken_year_is_conflict(self, history_service, mock_db, make_result):
        """Test a history cannot move onto a year that already has one."""
        history = _history()
        other = _history(school_year_id="year-2")
        mock_db.execute.side_effect = [make_result(history), make_result(other)]

        with pytest.raises(HistoryAlreadyExistsError):
            await history_service.update_history(
                history.id, UpdateHistoryRequest(school_year_id="year-2")
            )

        assert history.school_year_id == "year-1"
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_move_to_free_year(self, history_service, mock_db, make_result):
        """Test a history moves when the target year has none."""
        history = _history()
        mock_db.execute.side_effect = [make_result(history), make_result(None)]

        result = await history_service.update_history(
            history.id, UpdateHistoryRequest(school_year_id="year-2")
        )

        assert result.school_year_id == "year-2"

    @pytest.mark.asyncio
    async def test_move_to_unknown_enrollment(self, history_service, mock_db, make_result):
        """Test moving a history to a missing enrollment."""
        history = _history()
        mock_db.execute.side_effect = [make_result(history), make_result(None)]

        with pytest.raises(HistoryEnrollmentNotFoundError):
            await history_service.update_history(
                history.id, UpdateHistoryRequest(enrollment_id="enrollment-9")
            )

    @pytest.mark.asyncio
    async def test_update_history_not_found(self, history_service, mock_db, make_result):
        """Test updating an unknown history."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(HistoryNotFoundError):
            await history_service.update_history(str(uuid4()), UpdateHistoryRequest(notes="x"))


class TestEnrollmentReport:
    """Tests for the per-enrollment report."""

    @pytest.mark.asyncio
    async def test_report_across_years(self, history_service, mock_db, make_result):
        """Test statistics cover every consolidated year."""
        histories = [
            _history(school_year_id="year-1", yearly_average=Decimal("8.00"), subjects_taken=9),
            _history(
                school_year_id="year-2",
                final_situation=FinalSituation.FAILED,
                yearly_average=Decimal("4.25"),
                subjects_taken=10,
            ),
            _history(
                school_year_id="year-3",
                final_situation=FinalSituation.PENDING_REVIEW,
                yearly_average=Decimal("6.50"),
                subjects_taken=10,
            ),
        ]
        mock_db.execute.return_value = make_result(items=histories)

        report = await history_service.enrollment_report("enrollment-1")

        assert report.enrollment_id == "enrollment-1"
        assert len(report.histories) == 3
        assert report.statistics.years_taken == 3
        assert report.statistics.years_passed == 1
        assert report.statistics.years_failed == 1
        assert report.statistics.approval_rate == Decimal("33.33")
        assert report.statistics.historical_average == Decimal("6.25")
        assert report.statistics.total_subjects == 29

    @pytest.mark.asyncio
    async def test_report_without_histories(self, history_service, mock_db, make_result):
        """Test an enrollment without histories has an empty report."""
        mock_db.execute.return_value = make_result(items=[])

        report = await history_service.enrollment_report("enrollment-1")

        assert report.histories == []
        assert report.statistics.years_taken == 0
        assert report.statistics.approval_rate == Decimal("0.00")
        assert report.statistics.historical_average == Decimal("0.00")


class TestDeleteHistory:
    """Tests for history deletion."""

    @pytest.mark.asyncio
    async def test_delete_history(self, history_service, mock_db, make_result):
        """Test deleting a history."""
        history = _history()
        mock_db.execute.return_value = make_result(history)

        await history_service.delete_history(history.id)

        mock_db.delete.assert_awaited_once_with(history)
        mock_db.commit.assert_called_once()

    @pytest.mark.asyncio
    async def test_delete_history_not_found(self, history_service, mock_db, make_result):
        """Test deleting an unknown history."""
        mock_db.execute.return_value = make_result(None)

        with pytest.raises(HistoryNotFoundError):
            await history_service.delete_history(str(uuid4()))

        mock_db.delete.assert_not_called()
