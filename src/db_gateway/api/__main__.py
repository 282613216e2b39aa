"""
db_gateway.api.__main__

Entrypoint for running the gateway via `python -m db_gateway.api`.

Responsibilities:
- Load `.env` and settings.
- Create the app.
- Start uvicorn with structlog-compatible logging config.
"""

from __future__ import annotations

import uvicorn
from dotenv import load_dotenv

from db_gateway.api.app import create_app
from db_gateway.settings import get_settings


def main() -> None:
    load_dotenv()
    settings = get_settings()
    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,  # structlog
    )


if __name__ == "__main__":
    main()
