import asyncio
from typing import Any

import pytest
from fastapi.testclient import TestClient

from modhandler.config import settings
from modhandler.main import app
from modhandler.routers.deps import get_context
from modhandler.schemas.catalog import CatalogCharacter, CatalogCostume, CatalogResponse
from modhandler.schemas.mod import AuthorFolder, CommitResult, DraftMod, PreviewInfo
from modhandler.schemas.preview import PreviewKind, PreviewProgressEvent
from modhandler.services.catalog_cache import CatalogCache
from modhandler.services.context import AppContext
from modhandler.services.import_session import ImportSession

CHARACTERS = [
    CatalogCharacter(id=1, slug="anna", display_name="Anna"),
    CatalogCharacter(id=2, slug="erza", display_name="Erza"),
    CatalogCharacter(id=3, slug="hana", display_name="Hana"),
    CatalogCharacter(id=4, slug="luna", display_name="Luna"),
]

COSTUMES = [
    CatalogCostume(id=1, character_id=2, slug="armored", display_name="Armored"),
    CatalogCostume(id=2, character_id=2, slug="casual", display_name="Casual"),
    CatalogCostume(id=3, character_id=3, slug="summer", display_name="Summer Outfit"),
    CatalogCostume(id=4, character_id=4, slug="maid", display_name="Maid Uniform"),
]


class FakeEngine:
    """In-memory stand-in for the library engine."""

    def __init__(self) -> None:
        self.scan_results: dict[str, list[dict[str, Any]]] = {}
        self.scan_error: Exception | None = None
        self.scan_gate: asyncio.Event | None = None
        self.scan_calls: list[tuple[str, str | None, str | None]] = []

        self.commit_error: Exception | None = None
        self.commit_result = CommitResult(inserted=1, updated=0)
        self.committed: list[list[DraftMod]] = []

        self.author_folders: dict[str, list[AuthorFolder] | Exception] = {}
        self.library_roots: list[str] = []
        self.roots_error: Exception | None = None

        self.catalog = CatalogResponse(characters=CHARACTERS, costumes=COSTUMES)
        self.catalog_error: Exception | None = None
        self.catalog_calls = 0

        self.started: list[PreviewKind] = []
        self.start_error: Exception | None = None
        self.cancelled: list[PreviewKind] = []
        self.cancel_error: Exception | None = None

        self.previews: dict[int, PreviewInfo] = {}
        self.preview_calls: list[int] = []

        self.event_queue: asyncio.Queue[PreviewProgressEvent] = asyncio.Queue()
        self.stream_failures = 0
        self.stream_subscriptions = 0

    async def scan_author_folder(
        self,
        author_dir: str,
        default_author: str | None = None,
        default_download_url: str | None = None,
    ) -> list[dict[str, Any]]:
        self.scan_calls.append((author_dir, default_author, default_download_url))
        if self.scan_gate is not None:
            await self.scan_gate.wait()
        if self.scan_error is not None:
            raise self.scan_error
        return [dict(r) for r in self.scan_results.get(author_dir, [])]

    async def commit_drafts(self, drafts):
        if self.commit_error is not None:
            raise self.commit_error
        self.committed.append(list(drafts))
        return self.commit_result

    async def list_author_folders(self, library_root: str) -> list[AuthorFolder]:
        result = self.author_folders.get(library_root, [])
        if isinstance(result, Exception):
            raise result
        return list(result)

    async def get_library_roots(self) -> list[str]:
        if self.roots_error is not None:
            raise self.roots_error
        return list(self.library_roots)

    async def start_generation(self, kind: PreviewKind) -> None:
        if self.start_error is not None:
            raise self.start_error
        self.started.append(kind)

    async def cancel_generation(self, kind: PreviewKind) -> None:
        if self.cancel_error is not None:
            raise self.cancel_error
        self.cancelled.append(kind)

    async def list_catalog(self) -> CatalogResponse:
        self.catalog_calls += 1
        if self.catalog_error is not None:
            raise self.catalog_error
        return self.catalog

    async def get_mod_preview(self, mod_id: int) -> PreviewInfo:
        self.preview_calls.append(mod_id)
        return self.previews.get(mod_id, PreviewInfo(mod_id=mod_id))

    async def stream_progress(self):
        self.stream_subscriptions += 1
        if self.stream_failures:
            self.stream_failures -= 1
            raise RuntimeError("stream dropped")
        while True:
            yield await self.event_queue.get()


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine()


@pytest.fixture
def catalog(engine) -> CatalogCache:
    cache = CatalogCache(engine)
    cache.characters = list(CHARACTERS)
    cache.costumes = list(COSTUMES)
    cache.loaded = True
    return cache


@pytest.fixture
def make_session(engine, catalog):
    def _make(**kwargs: Any) -> ImportSession:
        return ImportSession(engine, catalog, **kwargs)

    return _make


@pytest.fixture
def context(engine) -> AppContext:
    return AppContext(engine, reconnect_delay=0)


@pytest.fixture
def client(context, monkeypatch):
    monkeypatch.setattr(settings, "listen_progress", False)
    app.dependency_overrides[get_context] = lambda: context
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc
    app.dependency_overrides.clear()
