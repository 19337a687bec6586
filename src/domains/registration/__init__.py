# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Registration domain package.

This package provides the complete registration workflow that admits a
student and enrolls them in one transaction.
"""

from src.domains.registration.service import (
    RegistrationNotFoundError,
    RegistrationValidationError,
    RegistrationWorkflow,
    StudentAlreadyRegisteredError,
    validate_form,
)

__all__ = [
    "RegistrationWorkflow",
    "RegistrationValidationError",
    "RegistrationNotFoundError",
    "StudentAlreadyRegisteredError",
    "validate_form",
]
