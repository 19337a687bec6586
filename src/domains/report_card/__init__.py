# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Report card domain package (read path)."""

from src.domains.report_card.service import ReportCardReader, summarize_card

__all__ = [
    "ReportCardReader",
    "summarize_card",
]
