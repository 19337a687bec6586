# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Server entry point.

Runs the API under uvicorn with the host, port, worker count and reload
flag taken from the API_* settings.

Usage:
    school-records
    API_PORT=8080 API_WORKERS=4 school-records
"""

import uvicorn

from src.core.config import get_settings

APP_FACTORY = "src.api.app:create_app"


def run() -> None:
    """Start the uvicorn server for the application factory."""
    settings = get_settings()
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=settings.api.host,
        port=settings.api.port,
        workers=None if settings.api.reload else settings.api.workers,
        reload=settings.api.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
