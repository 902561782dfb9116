from pydantic import BaseModel

from modhandler.schemas.catalog import CatalogCostume
from modhandler.schemas.mod import AuthorFolder, DraftMod


class SessionFields(BaseModel):
    author_dir: str | None = None
    default_author: str | None = None
    default_download_url: str | None = None


class SessionOpenRequest(BaseModel):
    author_dir: str | None = None
    default_author: str | None = None


class DraftRowOut(BaseModel):
    index: int
    draft: DraftMod
    confidence_pct: int
    costume_options: list[CatalogCostume] = []


class ImportSessionOut(BaseModel):
    state: str
    author_dir: str
    default_author: str
    default_download_url: str
    rows: list[DraftRowOut] = []
    error: str | None = None
    message: str | None = None


class BulkBuildRequest(BaseModel):
    roots: list[str] | None = None


class BulkQueueOut(BaseModel):
    active: bool
    index: int = 0
    total: int = 0
    entries: list[AuthorFolder] = []
    current: ImportSessionOut | None = None
    message: str | None = None
