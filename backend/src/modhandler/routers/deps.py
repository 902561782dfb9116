"""Shared FastAPI dependencies used across routers."""

import httpx
from fastapi import HTTPException, Request

from modhandler.engine.client import EngineError
from modhandler.services.context import AppContext
from modhandler.services.import_session import ImportSession


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_session_or_404(ctx: AppContext) -> ImportSession:
    """Return the active import session, raising 404 if none was opened."""
    session = ctx.active_session
    if session is None:
        raise HTTPException(404, "No import session is open")
    return session


def engine_unavailable(exc: EngineError | httpx.HTTPError) -> HTTPException:
    if isinstance(exc, EngineError):
        return HTTPException(502, f"Library engine error: {exc.detail}")
    return HTTPException(502, "Library engine is unreachable")
