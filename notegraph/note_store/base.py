from typing import Any, List, Protocol

from notegraph.domain.note import Note


class NoteStore(Protocol):
    """Protocol for note persistence implementations."""

    def get_all_notes(self, owner_id: str) -> List[Note]:
        """Get every note belonging to an owner."""
        ...

    def get_note(self, note_id: str, owner_id: str) -> Note | None:
        """Get a note by its ID."""
        ...

    def update_note(self, note_id: str, fields: dict[str, Any], owner_id: str) -> Note | None:
        """Apply a partial update to a note and return the persisted note.

        Args:
            note_id: ID of the note to update
            fields: Mapping of field name to new value; omitted fields are left untouched
            owner_id: Owner of the note collection

        Returns:
            The updated note, or None if the note does not exist
        """
        ...

    def add_note(self, note: Note, owner_id: str) -> None:
        """Add a new note or replace an existing one."""
        ...

    def delete_note(self, note_id: str, owner_id: str) -> bool:
        """Delete a note, returning whether it existed."""
        ...
