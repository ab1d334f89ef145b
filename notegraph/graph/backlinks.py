"""Keeping backlinks consistent with the references of each note."""

import logging
from typing import Iterable

from notegraph.domain.note import BacklinkEdge, Note
from notegraph.graph.extractor import ReferenceExtractor
from notegraph.note_store.base import NoteStore

logger = logging.getLogger(__name__)


class BacklinkSynchronizer:
    """Recomputes the inverse edges of a note's references across a collection.

    The multi-note write is not atomic: a failure part way through leaves the
    graph inconsistent until the next sync of the same note, so store errors
    are raised to the caller.
    """

    def __init__(self, note_store: NoteStore, extractor: ReferenceExtractor | None = None):
        self.note_store = note_store
        self.extractor = extractor or ReferenceExtractor()

    def sync(
        self,
        source: Note,
        all_notes: dict[str, Note],
        owner_id: str,
        pinned_references: Iterable[str] = (),
    ) -> Note:
        """Recompute the source note's references and every backlink they imply.

        Args:
            source: Note whose content was saved
            all_notes: Dictionary of note ID to Note objects; mutated in place
            owner_id: Owner of the note collection
            pinned_references: Note IDs kept as references even without a marker,
                such as accepted suggestions

        Returns:
            The persisted source note
        """
        all_notes[source.id] = source
        mutated = self._remove_backlinks_from(source.id, all_notes)

        resolved = self.extractor.resolve_markers(
            source.content, all_notes.values(), source_id=source.id
        )
        references = [note_id for note_id in resolved if note_id != source.id]
        for note_id in pinned_references:
            if note_id in all_notes and note_id != source.id and note_id not in references:
                references.append(note_id)
        source.references = references

        for target_id in references:
            context = self._context_for(source.content, target_id, resolved.get(target_id, []))
            all_notes[target_id].backlinks.append(
                BacklinkEdge(source_note_id=source.id, context=context)
            )
            mutated.add(target_id)

        logger.debug(
            f"Synced note {source.id}: {len(references)} references, {len(mutated)} notes touched"
        )
        return self._persist(source, all_notes, mutated, owner_id)

    def remove_note(self, note_id: str, all_notes: dict[str, Note], owner_id: str) -> bool:
        """Delete a note and prune every edge that points at it.

        Args:
            note_id: ID of the note being deleted
            all_notes: Dictionary of note ID to Note objects; mutated in place
            owner_id: Owner of the note collection

        Returns:
            True if the store held the note
        """
        mutated = self._remove_backlinks_from(note_id, all_notes)
        all_notes.pop(note_id, None)

        for note in all_notes.values():
            if note_id in note.references or note_id in note.accepted_references:
                note.references = [ref for ref in note.references if ref != note_id]
                note.accepted_references = [
                    ref for ref in note.accepted_references if ref != note_id
                ]
                mutated.add(note.id)
            if any(bl.source_note_id == note_id for bl in note.backlinks):
                note.backlinks = [bl for bl in note.backlinks if bl.source_note_id != note_id]
                mutated.add(note.id)
            if any(s.target_note_id == note_id for s in note.suggested_links):
                note.suggested_links = [
                    s for s in note.suggested_links if s.target_note_id != note_id
                ]
                mutated.add(note.id)

        for mutated_id in mutated:
            if mutated_id in all_notes:
                note = all_notes[mutated_id]
                self.note_store.update_note(
                    mutated_id,
                    {
                        "references": note.references,
                        "accepted_references": note.accepted_references,
                        "backlinks": note.backlinks,
                        "suggested_links": note.suggested_links,
                    },
                    owner_id,
                )

        deleted = self.note_store.delete_note(note_id, owner_id)
        logger.info(f"Deleted note {note_id}, pruned edges on {len(mutated)} notes")
        return deleted

    @staticmethod
    def _remove_backlinks_from(source_id: str, all_notes: dict[str, Note]) -> set[str]:
        """Drop every backlink created by a source note, returning the touched note IDs."""
        touched = set()
        for note in all_notes.values():
            kept = [bl for bl in note.backlinks if bl.source_note_id != source_id]
            if len(kept) != len(note.backlinks):
                note.backlinks = kept
                touched.add(note.id)
        return touched

    def _context_for(self, content: str, target_id: str, identifiers: list[str]) -> str:
        """Find the marker sentence by ID first, then by the identifiers that resolved to it."""
        context = self.extractor.get_context(content, target_id)
        for identifier in identifiers:
            if context:
                break
            context = self.extractor.get_context(content, identifier)
        return context

    def _persist(
        self, source: Note, all_notes: dict[str, Note], mutated: set[str], owner_id: str
    ) -> Note:
        persisted = self.note_store.update_note(
            source.id,
            {"references": source.references, "backlinks": source.backlinks},
            owner_id,
        )
        for note_id in mutated:
            if note_id == source.id:
                continue
            self.note_store.update_note(
                note_id, {"backlinks": all_notes[note_id].backlinks}, owner_id
            )
        return persisted or source
