# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report card read models."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.models.common import ORMModel


class ReportCardSubjectRow(ORMModel):
    """One subject line of a bimester report card."""

    subject_link_id: str
    bimester_average: Decimal
    bimester_absences: int = 0
    notes: str | None = None


class ReportCardView(BaseModel):
    """A bimester report card with its subject lines."""

    id: str
    enrollment_id: str
    period_id: str
    bimester: int = Field(ge=1, le=4)
    subjects: list[ReportCardSubjectRow] = Field(default_factory=list)


class BimesterSummary(BaseModel):
    """Per-bimester figures shown next to a consolidated history."""

    report_card_id: str
    bimester: int
    subject_count: int
    average: Decimal | None = None
    total_absences: int = 0
