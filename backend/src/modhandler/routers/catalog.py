from fastapi import APIRouter, Depends

from modhandler.routers.deps import get_context
from modhandler.schemas.catalog import CatalogOut
from modhandler.services.context import AppContext

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("/", response_model=CatalogOut)
async def get_catalog(ctx: AppContext = Depends(get_context)) -> CatalogOut:
    await ctx.catalog.ensure_loaded()
    return ctx.catalog.to_out()


@router.post("/refresh", response_model=CatalogOut)
async def refresh_catalog(ctx: AppContext = Depends(get_context)) -> CatalogOut:
    await ctx.catalog.refresh()
    return ctx.catalog.to_out()
