import json
from pathlib import Path
from typing import Any, Dict, List

from notegraph.domain.note import Note
from notegraph.note_store.base import NoteStore


class LocalNoteStore(NoteStore):
    """Local note store that keeps every owner's notes in a JSON file."""

    def __init__(self, filepath: str | Path | None = None) -> None:
        """Initialize LocalNoteStore.

        Args:
            filepath: Path to note store file. If provided and exists, will auto-load.
                     If provided and doesn't exist, will save to this path when save() is called.
                     If not provided, creates empty store in memory only.
        """
        self._filepath = str(filepath) if filepath else None

        if self._filepath and Path(self._filepath).exists():
            with open(self._filepath, "r") as f:
                data = json.load(f)
            self._notes: Dict[str, Dict[str, Note]] = {
                owner_id: {note_id: Note(**note_data) for note_id, note_data in notes.items()}
                for owner_id, notes in data["owners"].items()
            }
        else:
            self._notes = {}

    @classmethod
    def from_data(cls, notes: Dict[str, Dict[str, Note]] | None = None) -> "LocalNoteStore":
        """Create LocalNoteStore from provided data (useful for testing).

        Args:
            notes: Mapping of owner ID to that owner's notes keyed by note ID

        Returns:
            LocalNoteStore instance with provided data
        """
        instance = cls(filepath=None)
        instance._notes = notes or {}
        return instance

    def get_all_notes(self, owner_id: str) -> List[Note]:
        """Get every note belonging to an owner."""
        return [note.model_copy(deep=True) for note in self._notes.get(owner_id, {}).values()]

    def get_note(self, note_id: str, owner_id: str) -> Note | None:
        """Get a note by its ID."""
        note = self._notes.get(owner_id, {}).get(note_id)
        return note.model_copy(deep=True) if note else None

    def add_note(self, note: Note, owner_id: str) -> None:
        """Add a new note or replace an existing one."""
        self._notes.setdefault(owner_id, {})[note.id] = note.model_copy(deep=True)

    def update_note(self, note_id: str, fields: dict[str, Any], owner_id: str) -> Note | None:
        """Apply a partial update to a note and return the persisted note."""
        current = self._notes.get(owner_id, {}).get(note_id)
        if current is None:
            return None

        updated = Note.model_validate({**current.model_dump(), **fields})
        self._notes[owner_id][note_id] = updated
        return updated.model_copy(deep=True)

    def delete_note(self, note_id: str, owner_id: str) -> bool:
        """Delete a note, returning whether it existed."""
        return self._notes.get(owner_id, {}).pop(note_id, None) is not None

    def get_owner_ids(self) -> set[str]:
        """Get all owner IDs with at least one stored collection."""
        return set(self._notes.keys())

    def save(self, filepath: str | None = None) -> None:
        """Save the note store to a JSON file.

        Args:
            filepath: Path to save to. If not provided, uses the filepath from initialization.
        """
        save_path = filepath or self._filepath
        if not save_path:
            raise ValueError(
                "No filepath provided and no default filepath set during initialization"
            )

        save_path = str(save_path)
        data = {
            "owners": {
                owner_id: {note_id: note.model_dump(mode="json") for note_id, note in notes.items()}
                for owner_id, notes in self._notes.items()
            }
        }
        with open(save_path, "w") as f:
            json.dump(data, f)
