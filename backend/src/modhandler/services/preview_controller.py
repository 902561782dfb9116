"""Start, track and cancel preview generation jobs (images or videos)."""

import logging
from collections.abc import Callable

from modhandler.constants import MSG_PREPARING
from modhandler.engine.protocol import LibraryEngine
from modhandler.schemas.mod import PreviewInfo
from modhandler.schemas.preview import (
    PreviewKind,
    PreviewProgress,
    PreviewProgressEvent,
    PreviewStateOut,
    PreviewStatus,
)

logger = logging.getLogger(__name__)

StateListener = Callable[[PreviewStateOut], None]


def _error_text(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


def _sticky(new: str | None, old: str | None) -> str | None:
    return new if new is not None else old


class PreviewGenerationController:
    """At most one generation job runs at a time, whatever its kind.

    ``busy`` is the single busy token shared by image and video jobs. Progress
    comes in through :meth:`handle_event`; while a job is tracked, events for
    the other kind are ignored. Cancellation is cooperative: it is
    only reflected once the engine reports a terminal status.
    """

    def __init__(self, engine: LibraryEngine, *, on_change: StateListener | None = None) -> None:
        self._engine = engine
        self._on_change = on_change
        self.progress: PreviewProgress | None = None
        self.busy: PreviewKind | None = None
        self.cancel_requested = False
        self.selected_mod_id: int | None = None
        self.selected_preview: PreviewInfo | None = None
        self.last_error: str | None = None

    @property
    def running(self) -> bool:
        return self.busy is not None

    async def start(self, kind: PreviewKind) -> bool:
        if self.busy is not None:
            logger.info(
                "Ignoring %s generation request: %s generation is running",
                kind.value,
                self.busy.value,
            )
            return False

        self.busy = kind
        self.cancel_requested = False
        self.last_error = None
        self.progress = PreviewProgress(
            kind=kind, status=PreviewStatus.RUNNING, message=MSG_PREPARING
        )
        self._notify()
        logger.info("Starting %s preview generation", kind.value)

        try:
            await self._engine.start_generation(kind)
        except Exception as e:
            logger.exception("Failed to start %s preview generation", kind.value)
            self.progress = PreviewProgress(
                kind=kind,
                status=PreviewStatus.ERROR,
                errors=1,
                message=_error_text(e),
            )
            if self.busy == kind:
                self.busy = None
            self._notify()
            return False
        return True

    async def handle_event(self, event: PreviewProgressEvent) -> None:
        if self.busy is not None and event.kind != self.busy:
            logger.warning(
                "Ignoring %s %s event while %s generation is running",
                event.kind.value,
                event.status.value,
                self.busy.value,
            )
            return

        prev = self.progress if self.progress and self.progress.kind == event.kind else None
        self.progress = PreviewProgress(
            kind=event.kind,
            status=event.status,
            total=event.total,
            processed=event.processed,
            generated=event.generated,
            skipped=event.skipped,
            errors=event.errors,
            current_mod=_sticky(event.current_mod, prev.current_mod if prev else None),
            message=_sticky(event.message, prev.message if prev else None),
        )

        if event.status == PreviewStatus.RUNNING:
            self.busy = event.kind
            self._notify()
            return

        if self.busy == event.kind:
            self.busy = None
        logger.info(
            "%s preview generation %s: %d generated, %d skipped, %d errors",
            event.kind.value.capitalize(),
            event.status.value,
            event.generated,
            event.skipped,
            event.errors,
        )
        self._notify()
        if self.selected_mod_id is not None:
            await self.refresh_selected_preview()
            self._notify()

    async def cancel(self, kind: PreviewKind) -> bool:
        if (
            self.busy != kind
            or self.progress is None
            or not self.progress.is_running
            or self.cancel_requested
        ):
            return False

        self.cancel_requested = True
        self._notify()
        try:
            await self._engine.cancel_generation(kind)
        except Exception as e:
            logger.warning("Failed to cancel %s generation", kind.value, exc_info=True)
            self.cancel_requested = False
            self.last_error = _error_text(e)
            self._notify()
            return False
        logger.info("Cancellation requested for %s preview generation", kind.value)
        return True

    def clear(self) -> bool:
        if self.busy is not None or (self.progress is not None and self.progress.is_running):
            return False
        self.progress = None
        self.cancel_requested = False
        self.last_error = None
        self._notify()
        return True

    async def select(self, mod_id: int | None) -> None:
        self.selected_mod_id = mod_id
        self.selected_preview = None
        if mod_id is not None:
            await self.refresh_selected_preview()
        self._notify()

    async def refresh_selected_preview(self) -> None:
        mod_id = self.selected_mod_id
        if mod_id is None:
            return
        try:
            preview = await self._engine.get_mod_preview(mod_id)
        except Exception:
            logger.warning("Failed to refresh preview for mod %d", mod_id, exc_info=True)
            return
        if self.selected_mod_id == mod_id:
            self.selected_preview = preview

    def to_out(self) -> PreviewStateOut:
        return PreviewStateOut(
            progress=self.progress,
            busy=self.busy,
            cancel_requested=self.cancel_requested,
            selected_mod_id=self.selected_mod_id,
            selected_preview=self.selected_preview,
            last_error=self.last_error,
        )

    def _notify(self) -> None:
        if self._on_change:
            self._on_change(self.to_out())
