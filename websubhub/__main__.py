import logging

import uvicorn

from .config import settings
from .main import app


def main() -> None:
    logging.getLogger(__name__).info("serving %s:%s", settings.HOST, settings.PORT)
    uvicorn.run(
        app,
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        timeout_graceful_shutdown=settings.SHUTDOWN_GRACE_SECONDS,
    )


if __name__ == "__main__":
    main()
