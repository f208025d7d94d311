"""Run the evaluations API with uvicorn: ``python -m app.server`` or ``evaluations-server``"""

import logging

import uvicorn

from .core.config import get_settings
from .main import configure_logging

logger = logging.getLogger(__name__)


def main():
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(f"Serving on http://localhost:{settings.port}")
    # uvicorn handles SIGINT/SIGTERM and runs the lifespan shutdown, which closes the store
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
