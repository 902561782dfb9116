"""Entry point for the standalone sidecar process."""

import uvicorn

from modhandler.config import settings


def main() -> None:
    uvicorn.run(
        "modhandler.main:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
    )


if __name__ == "__main__":
    main()
