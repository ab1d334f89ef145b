"""Periodic background refresh of every owner's knowledge graph."""

import asyncio
import contextlib
import logging
import time
from typing import Callable, Iterable

from notegraph.note_store.base import NoteStore
from notegraph.suggestions.manager import SuggestionManager

logger = logging.getLogger(__name__)


class BackgroundSweeper:
    """Re-runs the save path for every note on a fixed interval.

    The sweep runs as an explicit asyncio task; ``stop()`` is its cancellation
    handle. A sweep requested while another is running is skipped, not queued,
    and a note processed less than one interval ago is left alone.
    """

    def __init__(
        self,
        *,
        manager: SuggestionManager,
        note_store: NoteStore,
        owner_ids: Callable[[], Iterable[str]],
        interval_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.manager = manager
        self.note_store = note_store
        self.owner_ids = owner_ids
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._sweeping = asyncio.Lock()
        self._last_processed: dict[tuple[str, str], float] = {}
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the periodic sweep on the running event loop."""
        if self.running:
            raise RuntimeError("Background sweep is already running")
        self._task = asyncio.create_task(self._run(), name="notegraph-sweep")
        logger.info(f"Background sweep started with {self.interval_seconds / 60:g} minute interval")
        return self._task

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to wind down."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Background sweep stopped")

    async def sweep_once(self) -> int:
        """Process every note that is due.

        Returns:
            Number of notes processed, 0 when skipped because a sweep is in progress
        """
        if self._sweeping.locked():
            logger.info("Sweep already in progress, skipping")
            return 0

        async with self._sweeping:
            processed = 0
            now = self._clock()
            for owner_id in list(self.owner_ids()):
                for note in self.note_store.get_all_notes(owner_id):
                    key = (owner_id, note.id)
                    last = self._last_processed.get(key)
                    if last is not None and now - last < self.interval_seconds:
                        continue
                    try:
                        await self.manager.update_knowledge_graph(note.id, owner_id)
                    except Exception:
                        logger.exception(f"Error processing note {note.id} in background")
                        continue
                    self._last_processed[key] = now
                    processed += 1

            logger.info(f"Background sweep processed {processed} notes")
            return processed

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep_once()
            except Exception:
                logger.exception("Error in background sweep")
