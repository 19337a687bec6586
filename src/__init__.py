"""School Records Backend.

School administration backend covering the student enrollment lifecycle
and end-of-year consolidation of bimester report cards into academic
histories.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
