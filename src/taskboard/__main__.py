import sys

import uvicorn
from loguru import logger

from taskboard.app import create_app
from taskboard.config import Settings


def main() -> None:
    settings = Settings.from_env()
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)

    app = create_app(settings)

    async def announce() -> None:
        logger.info(f"App listening on port {settings.port}!")

    app.on_startup.append(announce)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level="warning")


if __name__ == "__main__":
    main()
