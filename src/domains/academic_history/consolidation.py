# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Year-end consolidation rules.

Pure functions turning bimester report cards into per-subject outcomes
and a year-level outcome. No database access happens here.

Rules:
    - A subject's final average is the mean of its bimester averages.
    - A subject is passed at or above the pass threshold, in recovery at
      or above the recovery threshold, and failed below it.
    - The year is passed when nothing is failed or in recovery, failed
      when any subject is failed or when failed plus recovery subjects
      exceed the failure ratio of subjects taken, and pending review
      otherwise.

All averages are Decimals rounded half-up to two places.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from src.core.config import GradingSettings
from src.models.academic_history import AcademicHistoryResponse
from src.models.common import FinalSituation, SubjectSituation
from src.models.report_card import ReportCardView

_CENTS = Decimal("0.01")

NOTES_SEPARATOR = "; "


@dataclass(frozen=True)
class SubjectOutcome:
    """Consolidated result of one subject over the year."""

    subject_link_id: str
    final_subject_average: Decimal
    total_subject_absences: int
    subject_situation: SubjectSituation
    notes: str | None = None


@dataclass(frozen=True)
class YearOutcome:
    """Consolidated result of the whole year."""

    subjects_taken: int
    subjects_passed: int
    subjects_failed: int
    subjects_in_recovery: int
    yearly_average: Decimal
    total_absences: int
    final_situation: FinalSituation

    @property
    def approval_rate(self) -> Decimal:
        """Percentage of subjects passed."""
        if not self.subjects_taken:
            return Decimal("0.00")
        return round_score(Decimal(self.subjects_passed * 100) / self.subjects_taken)


@dataclass(frozen=True)
class EnrollmentRecord:
    """Figures across every consolidated year of one enrollment."""

    years_taken: int
    years_passed: int
    years_failed: int
    historical_average: Decimal
    total_subjects: int

    @property
    def approval_rate(self) -> Decimal:
        """Percentage of years passed."""
        if not self.years_taken:
            return Decimal("0.00")
        return round_score(Decimal(self.years_passed * 100) / self.years_taken)


def round_score(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def mean(values: Sequence[Decimal]) -> Decimal:
    """Arithmetic mean rounded to two decimals; zero for no values."""
    if not values:
        return Decimal("0.00")
    return round_score(sum(values, Decimal("0")) / len(values))


def classify_subject(average: Decimal, grading: GradingSettings) -> SubjectSituation:
    """Situation of a subject given its final average."""
    if average >= Decimal(str(grading.pass_threshold)):
        return SubjectSituation.PASSED
    if average >= Decimal(str(grading.recovery_threshold)):
        return SubjectSituation.RECOVERY
    return SubjectSituation.FAILED


def decide_final_situation(
    subjects_taken: int,
    subjects_failed: int,
    subjects_in_recovery: int,
    failure_ratio: float,
) -> FinalSituation:
    """Year-level situation from subject counts.

    Example:
        >>> decide_final_situation(10, 0, 1, 0.25)
        <FinalSituation.PENDING_REVIEW: 'pending_review'>
    """
    if subjects_taken == 0:
        return FinalSituation.IN_PROGRESS
    if subjects_failed > 0:
        return FinalSituation.FAILED
    if subjects_in_recovery == 0:
        return FinalSituation.PASSED
    if subjects_failed + subjects_in_recovery > subjects_taken * failure_ratio:
        return FinalSituation.FAILED
    return FinalSituation.PENDING_REVIEW


def consolidate_subjects(
    cards: Iterable[ReportCardView],
    grading: GradingSettings,
) -> list[SubjectOutcome]:
    """Group subject lines by subject link and consolidate each group.

    Cards are processed in bimester order, so notes are joined in that
    order. Subjects keep the order in which they first appear.
    """
    groups: dict[str, list] = {}
    for card in sorted(cards, key=lambda c: c.bimester):
        for row in card.subjects:
            groups.setdefault(row.subject_link_id, []).append(row)

    outcomes = []
    for subject_link_id, rows in groups.items():
        average = mean([row.bimester_average for row in rows])
        notes = [row.notes.strip() for row in rows if row.notes and row.notes.strip()]
        outcomes.append(
            SubjectOutcome(
                subject_link_id=subject_link_id,
                final_subject_average=average,
                total_subject_absences=sum(row.bimester_absences for row in rows),
                subject_situation=classify_subject(average, grading),
                notes=NOTES_SEPARATOR.join(notes) or None,
            )
        )
    return outcomes


def aggregate_year(subjects: Sequence[SubjectOutcome], grading: GradingSettings) -> YearOutcome:
    """Aggregate consolidated subjects into the year outcome."""
    situations = [subject.subject_situation for subject in subjects]
    passed = situations.count(SubjectSituation.PASSED)
    failed = situations.count(SubjectSituation.FAILED)
    recovery = situations.count(SubjectSituation.RECOVERY)

    return YearOutcome(
        subjects_taken=len(subjects),
        subjects_passed=passed,
        subjects_failed=failed,
        subjects_in_recovery=recovery,
        yearly_average=mean([subject.final_subject_average for subject in subjects]),
        total_absences=sum(subject.total_subject_absences for subject in subjects),
        final_situation=decide_final_situation(
            len(subjects), failed, recovery, grading.failure_ratio
        ),
    )


def aggregate_enrollment(years: Sequence[AcademicHistoryResponse]) -> EnrollmentRecord:
    """Aggregate the yearly histories of one enrollment.

    Years pending review or in progress count as taken but neither
    passed nor failed.
    """
    situations = [year.final_situation for year in years]
    return EnrollmentRecord(
        years_taken=len(years),
        years_passed=situations.count(FinalSituation.PASSED),
        years_failed=situations.count(FinalSituation.FAILED),
        historical_average=mean([year.yearly_average for year in years]),
        total_subjects=sum(year.subjects_taken for year in years),
    )
