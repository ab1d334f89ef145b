import asyncio
from collections import defaultdict


class NoteLocks:
    """One asyncio lock per (owner, note) pair.

    Interactive decisions and the background sweep take the lock of the note
    they rewrite, so neither can overwrite the other's result with stale data.
    """

    def __init__(self) -> None:
        self._locks: defaultdict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    def for_note(self, owner_id: str, note_id: str) -> asyncio.Lock:
        return self._locks[(owner_id, note_id)]

    def discard(self, owner_id: str, note_id: str) -> None:
        lock = self._locks.get((owner_id, note_id))
        if lock is not None and not lock.locked():
            del self._locks[(owner_id, note_id)]
