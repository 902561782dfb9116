"""Progress stream plumbing: one engine subscription in, one subscription per view out."""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from modhandler.engine.protocol import LibraryEngine
from modhandler.schemas.preview import PreviewProgressEvent, PreviewStateOut

logger = logging.getLogger(__name__)

EventHandler = Callable[[PreviewProgressEvent], Awaitable[None]]


MAX_PENDING_SNAPSHOTS = 8


class ProgressSubscription:
    """Queue of state snapshots for one view. Iteration ends when it is closed.

    Each snapshot is a full state, so a reader that falls behind only loses
    intermediate ones: past ``max_pending`` the oldest snapshot is dropped.
    """

    def __init__(self, view_id: str, *, max_pending: int = MAX_PENDING_SNAPSHOTS) -> None:
        self.view_id = view_id
        self.closed = False
        self._max_pending = max(max_pending, 1)
        # one extra slot so the close sentinel always fits
        self._queue: asyncio.Queue[PreviewStateOut | None] = asyncio.Queue(
            maxsize=self._max_pending + 1
        )

    def push(self, state: PreviewStateOut) -> None:
        if self.closed:
            return
        if self._queue.qsize() >= self._max_pending:
            self._queue.get_nowait()
        self._queue.put_nowait(state)

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(None)

    def __aiter__(self) -> "ProgressSubscription":
        return self

    async def __anext__(self) -> PreviewStateOut:
        item = await self._queue.get()
        if item is None:
            raise StopAsyncIteration
        return item


class ProgressHub:
    """Fans state snapshots out to at most one live subscription per view id."""

    def __init__(self) -> None:
        self._subs: dict[str, ProgressSubscription] = {}

    @property
    def view_ids(self) -> list[str]:
        return list(self._subs)

    def subscribe(self, view_id: str) -> ProgressSubscription:
        previous = self._subs.get(view_id)
        if previous is not None:
            logger.info("View %s resubscribed, closing previous subscription", view_id)
            previous.close()
        sub = ProgressSubscription(view_id)
        self._subs[view_id] = sub
        return sub

    def unsubscribe(self, sub: ProgressSubscription) -> None:
        if self._subs.get(sub.view_id) is sub:
            del self._subs[sub.view_id]
        sub.close()

    def publish(self, state: PreviewStateOut) -> None:
        for sub in list(self._subs.values()):
            sub.push(state)

    def close_all(self) -> None:
        for sub in list(self._subs.values()):
            sub.close()
        self._subs.clear()


class ProgressPump:
    """Holds the single subscription to the engine's progress stream.

    Each received event is handed to ``handler`` exactly once. When the stream
    ends or fails, the pump waits ``reconnect_delay`` seconds and resubscribes.
    """

    def __init__(
        self,
        engine: LibraryEngine,
        handler: EventHandler,
        *,
        reconnect_delay: float = 2.0,
    ) -> None:
        self._engine = engine
        self._handler = handler
        self._reconnect_delay = reconnect_delay
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            try:
                async for event in self._engine.stream_progress():
                    await self._dispatch(event)
                logger.info("Progress stream ended, resubscribing")
            except Exception:
                logger.warning("Progress stream failed", exc_info=True)
            await asyncio.sleep(self._reconnect_delay)

    async def _dispatch(self, event: PreviewProgressEvent) -> None:
        try:
            await self._handler(event)
        except Exception:
            logger.exception("Failed to handle %s progress event", event.kind.value)
