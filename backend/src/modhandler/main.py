import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from modhandler.config import settings
from modhandler.engine.client import EngineClient
from modhandler.routers import api_router
from modhandler.services.context import AppContext


def _configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )
    for name in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(name).setLevel(logging.WARNING)


_configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    async with EngineClient(settings.engine_url, timeout=settings.engine_timeout) as engine:
        context = AppContext(engine, reconnect_delay=settings.progress_reconnect_delay)
        app.state.context = context
        if settings.listen_progress:
            context.pump.start()
        logger.info("Application started, library engine at %s", settings.engine_url)
        try:
            yield
        finally:
            logger.info("Shutting down...")
            try:
                await context.pump.stop()
            except Exception:
                logger.exception("Failed to stop progress pump")
            context.hub.close_all()
    logger.info("Shutdown complete")


app = FastAPI(
    title="ModHandler",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(api_router)


@app.get("/")
async def root() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
