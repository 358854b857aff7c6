"""
API service entrypoint.
Runs the FastAPI application via uvicorn. PORT overrides the configured port when present.
"""
from __future__ import annotations

import os

import uvicorn

from shared.config import get_settings


def main() -> None:
    """Start the API service."""
    settings = get_settings()
    port = int(os.environ.get("PORT", settings.api_port))

    # Single worker: the record store is one whole document with last-write-wins saves
    uvicorn.run(
        "api.app:app",
        host=settings.api_host,
        port=port,
        workers=1,
        log_level=settings.log_level.lower(),
        access_log=False,  # We handle logging via middleware
        timeout_keep_alive=30,
    )


if __name__ == "__main__":
    main()
