# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Read access to bimester report cards.

Report cards are written by the grading layer. This module only reads
them, restricted to one enrollment and one school year, in bimester
order.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.infrastructure.database.models import AcademicPeriod, ReportCard
from src.models.report_card import BimesterSummary, ReportCardSubjectRow, ReportCardView

logger = logging.getLogger(__name__)


class ReportCardReader:
    """Reads report cards and their subject lines.

    Attributes:
        db: Async database session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_for_enrollment(
        self,
        enrollment_id: str,
        school_year_id: str,
    ) -> list[ReportCardView]:
        """Get every report card of an enrollment within a school year.

        Args:
            enrollment_id: Enrollment identifier.
            school_year_id: School year the bimesters belong to.

        Returns:
            Report cards ordered by bimester, each with its subject lines.
        """
        query = (
            select(ReportCard, AcademicPeriod.bimester)
            .join(AcademicPeriod, ReportCard.period_id == AcademicPeriod.id)
            .where(
                ReportCard.enrollment_id == enrollment_id,
                AcademicPeriod.school_year_id == school_year_id,
            )
            .order_by(AcademicPeriod.bimester)
        )
        result = await self.db.execute(query)

        cards = [
            ReportCardView(
                id=card.id,
                enrollment_id=card.enrollment_id,
                period_id=card.period_id,
                bimester=bimester,
                subjects=[ReportCardSubjectRow.model_validate(row) for row in card.subjects],
            )
            for card, bimester in result.all()
        ]

        logger.debug(
            "Loaded %d report cards for enrollment %s in school year %s",
            len(cards),
            enrollment_id,
            school_year_id,
        )
        return cards

    async def count_for_enrollment(self, enrollment_id: str, school_year_id: str) -> int:
        """Count the report cards of an enrollment within a school year."""
        query = (
            select(func.count())
            .select_from(ReportCard)
            .join(AcademicPeriod, ReportCard.period_id == AcademicPeriod.id)
            .where(
                ReportCard.enrollment_id == enrollment_id,
                AcademicPeriod.school_year_id == school_year_id,
            )
        )
        result = await self.db.execute(query)
        return result.scalar() or 0

    async def summarize(self, enrollment_id: str, school_year_id: str) -> list[BimesterSummary]:
        """Get per-bimester summaries of an enrollment within a school year."""
        cards = await self.list_for_enrollment(enrollment_id, school_year_id)
        return [summarize_card(card) for card in cards]


def summarize_card(card: ReportCardView) -> BimesterSummary:
    """Compute subject count, mean and absence total of one report card."""
    average = None
    if card.subjects:
        total = sum((row.bimester_average for row in card.subjects), Decimal("0"))
        average = (total / len(card.subjects)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)

    return BimesterSummary(
        report_card_id=card.id,
        bimester=card.bimester,
        subject_count=len(card.subjects),
        average=average,
        total_absences=sum(row.bimester_absences for row in card.subjects),
    )
