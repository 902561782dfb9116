"""Scan -> edit -> commit lifecycle for one author folder."""

import logging
from collections.abc import Callable, Mapping
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from modhandler.constants import MSG_NO_DRAFTS
from modhandler.engine.protocol import LibraryEngine
from modhandler.matching.author_inference import AuthorInferenceEngine
from modhandler.schemas.catalog import CatalogCostume
from modhandler.schemas.imports import DraftRowOut, ImportSessionOut
from modhandler.schemas.mod import CommitResult, DraftMod, DraftPatch
from modhandler.services.catalog_cache import CatalogCache
from modhandler.services.draft_reconciler import reconcile_drafts

logger = logging.getLogger(__name__)


class ImportState(StrEnum):
    IDLE = "idle"
    SCANNING = "scanning"
    EDITING = "editing"
    COMMITTING = "committing"
    CLOSED = "closed"


class ImportSessionError(Exception):
    pass


class InvalidTransitionError(ImportSessionError):
    pass


class DraftEditError(ImportSessionError):
    pass


ImportedCallback = Callable[[CommitResult], None]
ClosedCallback = Callable[["ImportSession"], None]


def _error_text(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


class ImportSession:
    """One import dialog's worth of state.

    States: idle -> scanning -> editing -> committing -> closed, with
    editing -> scanning for a re-scan (which discards unsaved edits). A failed
    scan returns to idle with no drafts; a failed commit stays in editing.
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
        self._close_listeners: list[ClosedCallback] = []
        self.state = ImportState.IDLE
        self.author_dir = ""
        self.default_author = ""
        self.default_download_url = ""
        self.drafts: list[DraftMod] = []
        self.error: str | None = None
        self.message: str | None = None
        self.last_result: CommitResult | None = None

    @property
    def busy(self) -> bool:
        return self.state in (ImportState.SCANNING, ImportState.COMMITTING)

    @property
    def closed(self) -> bool:
        return self.state == ImportState.CLOSED

    def add_close_listener(self, callback: ClosedCallback) -> None:
        self._close_listeners.append(callback)

    def _require(self, action: str, *allowed: ImportState) -> None:
        if self.state not in allowed:
            raise InvalidTransitionError(f"Cannot {action} while {self.state.value}")

    # -- fields ----------------------------------------------------------

    def set_author_dir(self, author_dir: str) -> None:
        """Change the author folder and re-infer the default author from it."""
        self._require("change the author folder", ImportState.IDLE, ImportState.EDITING)
        self.author_dir = author_dir
        self.default_author = self._authors.infer_from_path(author_dir) if author_dir else ""

    def set_default_author(self, default_author: str) -> None:
        self._require("change the default author", ImportState.IDLE, ImportState.EDITING)
        self.default_author = default_author

    def set_default_download_url(self, url: str) -> None:
        self._require("change the download URL", ImportState.IDLE, ImportState.EDITING)
        self.default_download_url = url

    def seed(self, author_dir: str, default_author: str | None = None) -> None:
        """Pre-fill the session for a given folder, discarding any drafts."""
        self.set_author_dir(author_dir)
        if default_author:
            self.default_author = default_author
        self.default_download_url = ""
        self.drafts = []
        self.error = None
        self.message = None
        self.state = ImportState.IDLE

    # -- scan ------------------------------------------------------------

    async def start_scan(self) -> bool:
        self._require("scan", ImportState.IDLE, ImportState.EDITING)
        if not self.author_dir.strip():
            raise InvalidTransitionError("Pick an author folder before scanning")

        self.state = ImportState.SCANNING
        self.drafts = []
        self.error = None
        self.message = None
        try:
            raw = await self._engine.scan_author_folder(
                self.author_dir,
                self.default_author or None,
                self.default_download_url or None,
            )
            drafts = reconcile_drafts(raw)
        except Exception as e:
            logger.exception("Scan failed for %s", self.author_dir)
            self.error = _error_text(e)
            self.state = ImportState.IDLE
            return False

        self.drafts = drafts
        self.state = ImportState.EDITING
        if not drafts:
            self.message = MSG_NO_DRAFTS
        logger.info("Scanned %s: %d drafts", self.author_dir, len(drafts))
        return True

    # -- edit ------------------------------------------------------------

    def _row(self, index: int) -> DraftMod:
        if not 0 <= index < len(self.drafts):
            raise DraftEditError(f"No draft at index {index}")
        return self.drafts[index]

    def costume_options(self, index: int) -> list[CatalogCostume]:
        return self._catalog.costumes_for(self._row(index).character_id)

    def edit_row(self, index: int, patch: DraftPatch | Mapping[str, Any]) -> DraftMod:
        """Apply a field-level patch to one draft.

        A patch that sets ``character_id`` always clears ``costume_id`` in the
        same update.
        """
        self._require("edit drafts", ImportState.EDITING)
        row = self._row(index)
        try:
            parsed = patch if isinstance(patch, DraftPatch) else DraftPatch.model_validate(patch)
        except ValidationError as e:
            raise DraftEditError(str(e)) from e
        changes = parsed.model_dump(exclude_unset=True)

        if "character_id" in changes:
            changes["costume_id"] = None
        elif changes.get("costume_id") is not None:
            self._check_costume(row, changes["costume_id"])

        try:
            updated = DraftMod.model_validate({**row.model_dump(), **changes})
        except ValidationError as e:
            raise DraftEditError(str(e)) from e

        drafts = list(self.drafts)
        drafts[index] = updated
        self.drafts = drafts
        return updated

    def _check_costume(self, row: DraftMod, costume_id: int) -> None:
        if row.character_id is None:
            raise DraftEditError("Pick a character before choosing a costume")
        if not self._catalog.loaded:
            return
        allowed = {c.id for c in self._catalog.costumes_for(row.character_id)}
        if costume_id not in allowed:
            raise DraftEditError(
                f"Costume {costume_id} does not belong to character {row.character_id}"
            )

    # -- commit / close --------------------------------------------------

    async def commit(self) -> bool:
        self._require("commit", ImportState.IDLE, ImportState.EDITING)
        if not self.drafts:
            self._close()
            return True

        self.state = ImportState.COMMITTING
        self.error = None
        drafts = list(self.drafts)
        try:
            result = await self._engine.commit_drafts(drafts)
        except Exception as e:
            logger.exception("Commit failed for %s (%d drafts)", self.author_dir, len(drafts))
            self.error = _error_text(e)
            self.state = ImportState.EDITING
            return False

        logger.info(
            "Committed %s: %d inserted, %d updated",
            self.author_dir,
            result.inserted,
            result.updated,
        )
        self.last_result = result
        self.drafts = []
        self._close()
        if self._on_imported:
            try:
                self._on_imported(result)
            except Exception:
                logger.exception("Imported callback failed")
        return True

    def cancel(self) -> None:
        """Close without committing. Drafts are discarded."""
        if self.closed:
            return
        if self.busy:
            raise InvalidTransitionError(f"Cannot cancel while {self.state.value}")
        self.drafts = []
        self._close()

    def _close(self) -> None:
        self.state = ImportState.CLOSED
        logger.info("Import session for %s closed", self.author_dir or "<none>")
        for callback in list(self._close_listeners):
            callback(self)

    # -- view ------------------------------------------------------------

    def to_out(self) -> ImportSessionOut:
        rows = [
            DraftRowOut(
                index=i,
                draft=d,
                confidence_pct=round(d.infer_confidence * 100),
                costume_options=self._catalog.costumes_for(d.character_id),
            )
            for i, d in enumerate(self.drafts)
        ]
        return ImportSessionOut(
            state=self.state.value,
            author_dir=self.author_dir,
            default_author=self.default_author,
            default_download_url=self.default_download_url,
            rows=rows,
            error=self.error,
            message=self.message,
        )
