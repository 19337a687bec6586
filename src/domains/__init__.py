# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for School Records.

This package contains domain services that encapsulate business logic.

Domains:
    enrollment: Enrollment lifecycle and registration numbers.
    report_card: Read access to bimester report cards.
    academic_history: Yearly consolidation of report cards.
    registration: Complete student registration in one transaction.
"""
