import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException

from modhandler.engine.client import EngineError
from modhandler.routers.deps import engine_unavailable, get_context, get_session_or_404
from modhandler.schemas.imports import (
    BulkBuildRequest,
    BulkQueueOut,
    ImportSessionOut,
    SessionFields,
    SessionOpenRequest,
)
from modhandler.schemas.mod import DraftPatch
from modhandler.services.context import AppContext
from modhandler.services.import_session import DraftEditError, InvalidTransitionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/import", tags=["import"])


@router.post("/session", response_model=ImportSessionOut)
async def open_session(
    body: SessionOpenRequest | None = None, ctx: AppContext = Depends(get_context)
) -> ImportSessionOut:
    try:
        session = await ctx.open_session(
            author_dir=body.author_dir if body else None,
            default_author=body.default_author if body else None,
        )
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e)) from e
    return session.to_out()


@router.get("/session", response_model=ImportSessionOut)
async def get_session(ctx: AppContext = Depends(get_context)) -> ImportSessionOut:
    return get_session_or_404(ctx).to_out()


@router.put("/session/fields", response_model=ImportSessionOut)
async def update_fields(
    body: SessionFields, ctx: AppContext = Depends(get_context)
) -> ImportSessionOut:
    session = get_session_or_404(ctx)
    try:
        if body.author_dir is not None:
            session.set_author_dir(body.author_dir)
        if body.default_author is not None:
            session.set_default_author(body.default_author)
        if body.default_download_url is not None:
            session.set_default_download_url(body.default_download_url)
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e)) from e
    await ctx.settle()
    return session.to_out()


@router.post("/session/scan", response_model=ImportSessionOut)
async def scan_session(ctx: AppContext = Depends(get_context)) -> ImportSessionOut:
    session = get_session_or_404(ctx)
    try:
        await session.start_scan()
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e)) from e
    return session.to_out()


@router.patch("/session/drafts/{index}", response_model=ImportSessionOut)
async def edit_draft(
    index: int, patch: DraftPatch, ctx: AppContext = Depends(get_context)
) -> ImportSessionOut:
    session = get_session_or_404(ctx)
    try:
        session.edit_row(index, patch)
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e)) from e
    except DraftEditError as e:
        raise HTTPException(422, str(e)) from e
    return session.to_out()


@router.post("/session/commit", response_model=ImportSessionOut)
async def commit_session(ctx: AppContext = Depends(get_context)) -> ImportSessionOut:
    session = get_session_or_404(ctx)
    try:
        await session.commit()
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e)) from e
    await ctx.settle()
    return session.to_out()


@router.post("/session/cancel", response_model=ImportSessionOut)
async def cancel_session(ctx: AppContext = Depends(get_context)) -> ImportSessionOut:
    session = get_session_or_404(ctx)
    try:
        session.cancel()
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e)) from e
    await ctx.settle()
    return session.to_out()


@router.post("/bulk", response_model=BulkQueueOut)
async def start_bulk(
    body: BulkBuildRequest | None = None, ctx: AppContext = Depends(get_context)
) -> BulkQueueOut:
    try:
        await ctx.start_bulk(body.roots if body else None)
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e)) from e
    except (EngineError, httpx.HTTPError) as e:
        logger.warning("Could not load library folders for bulk import", exc_info=True)
        raise engine_unavailable(e) from e
    return ctx.bulk.to_out()


@router.get("/bulk", response_model=BulkQueueOut)
async def get_bulk(ctx: AppContext = Depends(get_context)) -> BulkQueueOut:
    await ctx.settle()
    return ctx.bulk.to_out()


@router.delete("/bulk", response_model=BulkQueueOut)
async def stop_bulk(ctx: AppContext = Depends(get_context)) -> BulkQueueOut:
    try:
        ctx.bulk.stop()
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e)) from e
    return ctx.bulk.to_out()


@router.get("/revision")
async def get_library_revision(ctx: AppContext = Depends(get_context)) -> dict[str, int]:
    return {"library_revision": ctx.library_revision}
