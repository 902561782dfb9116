import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from modhandler.routers.deps import get_context
from modhandler.schemas.preview import PreviewKind, PreviewSelection, PreviewStateOut
from modhandler.services.context import AppContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/previews", tags=["previews"])


@router.get("/", response_model=PreviewStateOut)
async def get_preview_state(ctx: AppContext = Depends(get_context)) -> PreviewStateOut:
    return ctx.previews.to_out()


@router.post("/clear", response_model=PreviewStateOut)
async def clear_progress(ctx: AppContext = Depends(get_context)) -> PreviewStateOut:
    ctx.previews.clear()
    return ctx.previews.to_out()


@router.put("/selection", response_model=PreviewStateOut)
async def select_mod(
    body: PreviewSelection, ctx: AppContext = Depends(get_context)
) -> PreviewStateOut:
    await ctx.previews.select(body.mod_id)
    return ctx.previews.to_out()


@router.post("/{kind}/start", response_model=PreviewStateOut)
async def start_generation(
    kind: PreviewKind, ctx: AppContext = Depends(get_context)
) -> PreviewStateOut:
    await ctx.previews.start(kind)
    return ctx.previews.to_out()


@router.post("/{kind}/cancel", response_model=PreviewStateOut)
async def cancel_generation(
    kind: PreviewKind, ctx: AppContext = Depends(get_context)
) -> PreviewStateOut:
    await ctx.previews.cancel(kind)
    return ctx.previews.to_out()


@router.get("/events")
async def preview_events(
    view: str = "main", ctx: AppContext = Depends(get_context)
) -> EventSourceResponse:
    sub = ctx.hub.subscribe(view)
    initial = ctx.previews.to_out()

    async def event_stream() -> AsyncGenerator[dict[str, str], None]:
        try:
            yield {"event": "state", "data": initial.model_dump_json()}
            async for state in sub:
                yield {"event": "state", "data": state.model_dump_json()}
        finally:
            ctx.hub.unsubscribe(sub)
            logger.debug("Preview event stream for view %s closed", view)

    return EventSourceResponse(event_stream())
