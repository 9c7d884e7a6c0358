"""
Run the shared todo service with uvicorn.

Usage:
    python -m shared_todo
"""
from __future__ import annotations

import uvicorn

from .logging_setup import setup_logging
from .main import create_app
from .settings import get_settings


# PUBLIC_INTERFACE
def main() -> None:
    """Configure logging once, then serve the app on HOST:PORT."""
    settings = get_settings()
    setup_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
