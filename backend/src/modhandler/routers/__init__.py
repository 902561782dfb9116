from fastapi import APIRouter

from modhandler.routers.catalog import router as catalog_router
from modhandler.routers.imports import router as imports_router
from modhandler.routers.previews import router as previews_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(catalog_router)
api_router.include_router(imports_router)
api_router.include_router(previews_router)
