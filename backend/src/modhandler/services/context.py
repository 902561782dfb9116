"""Per-process wiring of the import and preview state machines."""

import logging
from collections.abc import Iterable

from modhandler.engine.protocol import LibraryEngine
from modhandler.matching.author_inference import AuthorInferenceEngine
from modhandler.schemas.mod import CommitResult
from modhandler.services.bulk_import import BulkImportQueue
from modhandler.services.catalog_cache import CatalogCache
from modhandler.services.import_session import ImportSession, InvalidTransitionError
from modhandler.services.preview_controller import PreviewGenerationController
from modhandler.services.progress import ProgressHub, ProgressPump

logger = logging.getLogger(__name__)


class AppContext:
    def __init__(self, engine: LibraryEngine, *, reconnect_delay: float = 2.0) -> None:
        self.engine = engine
        self.authors = AuthorInferenceEngine()
        self.catalog = CatalogCache(engine)
        self.hub = ProgressHub()
        self.previews = PreviewGenerationController(engine, on_change=self.hub.publish)
        self.pump = ProgressPump(
            engine, self.previews.handle_event, reconnect_delay=reconnect_delay
        )
        self.bulk = BulkImportQueue(
            engine, self.catalog, authors=self.authors, on_imported=self._record_import
        )
        self.manual_session: ImportSession | None = None
        self.library_revision = 0

    def _record_import(self, result: CommitResult) -> None:
        self.library_revision += 1

    @property
    def active_session(self) -> ImportSession | None:
        if self.bulk.active:
            return self.bulk.session
        return self.manual_session

    async def open_session(
        self, author_dir: str | None = None, default_author: str | None = None
    ) -> ImportSession:
        """Open a fresh manual import session, replacing any idle previous one."""
        if self.bulk.active:
            raise InvalidTransitionError("A bulk import is in progress")
        current = self.manual_session
        if current is not None and current.busy:
            raise InvalidTransitionError(f"The open import is {current.state.value}")
        if current is not None:
            current.cancel()

        session = ImportSession(
            self.engine, self.catalog, authors=self.authors, on_imported=self._record_import
        )
        self.manual_session = session
        await self.catalog.refresh()
        if author_dir:
            session.seed(author_dir, default_author)
        return session

    async def start_bulk(self, roots: Iterable[str] | None = None) -> bool:
        if self.manual_session is not None and self.manual_session.busy:
            raise InvalidTransitionError("Finish the open import before starting a bulk import")
        if roots is None:
            roots = await self.engine.get_library_roots()
        if self.manual_session is not None:
            self.manual_session.cancel()
            self.manual_session = None
        await self.catalog.refresh()
        started = await self.bulk.build(roots)
        if started:
            await self.settle()
        return started

    async def settle(self) -> None:
        """Run the bulk queue's pending auto-scan, if any."""
        if self.bulk.active:
            await self.bulk.run_pending_auto_scan()
