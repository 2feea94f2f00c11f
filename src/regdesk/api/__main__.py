"""
regdesk.api.__main__

Entrypoint for running the API via `python -m regdesk.api` (or the `regdesk-api` script).
"""

from __future__ import annotations

import uvicorn

from regdesk.api.app import create_app
from regdesk.settings import get_settings


def main() -> None:
    settings = get_settings()
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog owns formatting
        access_log=False,  # RequestContextMiddleware logs each request
        proxy_headers=settings.env == "prod",
    )


if __name__ == "__main__":
    main()
