"""
taskdesk - main entry point.

Runs the HTTP API with uvicorn:

    taskdesk                       # uses API_HOST / API_PORT
    uvicorn taskdesk.api.app:app --reload
"""

from __future__ import annotations

import uvicorn

from taskdesk.config import get_settings


def main():
    """Main entry point."""
    settings = get_settings()
    uvicorn.run(
        "taskdesk.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
