"""Sequential import of every author folder found across the library roots."""

import logging
from collections.abc import Iterable

from modhandler.constants import MSG_BULK_FINISHED, MSG_NOTHING_TO_IMPORT
from modhandler.engine.protocol import LibraryEngine
from modhandler.matching.author_inference import AuthorInferenceEngine
from modhandler.schemas.imports import BulkQueueOut
from modhandler.schemas.mod import AuthorFolder
from modhandler.services.catalog_cache import CatalogCache
from modhandler.services.import_session import (
    ImportedCallback,
    ImportSession,
    ImportState,
    InvalidTransitionError,
)

logger = logging.getLogger(__name__)


def merge_author_folders(folders: Iterable[AuthorFolder]) -> list[AuthorFolder]:
    """Deduplicate by ``folder_path`` (first occurrence wins) and sort by path."""
    seen: dict[str, AuthorFolder] = {}
    for folder in folders:
        seen.setdefault(folder.folder_path, folder)
    return sorted(seen.values(), key=lambda f: f.folder_path)


class BulkImportQueue:
    """Drives one ImportSession per author folder, strictly one at a time.

    Closing the current session (commit or cancel) opens the next one. After the
    last entry closes, bulk mode ends and the queue is cleared.
    """

    def __init__(
        self,
        engine: LibraryEngine,
        catalog: CatalogCache,
        *,
        authors: AuthorInferenceEngine | None = None,
        on_imported: ImportedCallback | None = None,
    ) -> None:
        self._engine = engine
        self._catalog = catalog
        self._authors = authors or AuthorInferenceEngine()
        self._on_imported = on_imported
        self.entries: list[AuthorFolder] = []
        self.index = 0
        self.active = False
        self.session: ImportSession | None = None
        self.message: str | None = None
        self._last_auto_scan: str | None = None

    @property
    def current_entry(self) -> AuthorFolder | None:
        if not self.active or self.index >= len(self.entries):
            return None
        return self.entries[self.index]

    async def build(self, roots: Iterable[str]) -> bool:
        """Enumerate author folders under every root and enter bulk mode.

        A root whose listing fails is logged and skipped. Returns False when
        nothing was found, in which case bulk mode is not entered.
        """
        if self.session and self.session.busy:
            raise InvalidTransitionError("Cannot rebuild the queue while an import is running")

        collected: list[AuthorFolder] = []
        root_count = 0
        for root in roots:
            root_count += 1
            try:
                folders = await self._engine.list_author_folders(root)
            except Exception:
                logger.warning("Failed to list author folders in %s", root, exc_info=True)
                continue
            collected.extend(folders)

        entries = merge_author_folders(collected)
        self._reset()
        if not entries:
            logger.info("Bulk import: no author folders in %d roots", root_count)
            self.message = MSG_NOTHING_TO_IMPORT
            return False

        self.entries = entries
        self.active = True
        logger.info("Bulk import queue built: %d author folders", len(entries))
        self._open_current()
        return True

    def _open_current(self) -> None:
        entry = self.entries[self.index]
        session = ImportSession(
            self._engine,
            self._catalog,
            authors=self._authors,
            on_imported=self._on_imported,
        )
        session.seed(entry.folder_path, entry.inferred_author)
        session.add_close_listener(self._handle_session_closed)
        self.session = session
        self._last_auto_scan = None

    def is_settled(self) -> bool:
        """Whether the current session's live values match its queue entry."""
        entry = self.current_entry
        session = self.session
        if entry is None or session is None or session.state != ImportState.IDLE:
            return False
        if session.author_dir != entry.folder_path:
            return False
        return not (entry.inferred_author and session.default_author != entry.inferred_author)

    async def run_pending_auto_scan(self) -> bool:
        """Scan the current entry once, as soon as its session has settled."""
        entry = self.current_entry
        if entry is None or self.session is None:
            return False
        if self._last_auto_scan == entry.folder_path or not self.is_settled():
            return False
        self._last_auto_scan = entry.folder_path
        return await self.session.start_scan()

    def _handle_session_closed(self, session: ImportSession) -> None:
        if session is not self.session:
            logger.debug("Ignoring close from a replaced bulk session")
            return
        self.index += 1
        if self.index >= len(self.entries):
            logger.info("Bulk import finished after %d folders", len(self.entries))
            self._reset()
            self.message = MSG_BULK_FINISHED
            return
        logger.info(
            "Bulk import advancing to %d/%d: %s",
            self.index + 1,
            len(self.entries),
            self.entries[self.index].folder_path,
        )
        self._open_current()

    def stop(self) -> None:
        """Leave bulk mode without touching the remaining entries."""
        if not self.active:
            return
        if self.session and self.session.busy:
            raise InvalidTransitionError("Cannot stop bulk import while an import is running")
        logger.info("Bulk import stopped at %d/%d", self.index + 1, len(self.entries))
        self._reset()

    def _reset(self) -> None:
        self.session = None
        self.entries = []
        self.index = 0
        self.active = False
        self.message = None
        self._last_auto_scan = None

    def to_out(self) -> BulkQueueOut:
        return BulkQueueOut(
            active=self.active,
            index=self.index,
            total=len(self.entries),
            entries=self.entries,
            current=self.session.to_out() if self.session else None,
            message=self.message,
        )
