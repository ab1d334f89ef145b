"""Extraction and resolution of explicit [[link]] markers in note bodies."""

import logging
import re
from typing import Iterable

from notegraph.domain.note import Note

logger = logging.getLogger(__name__)

# [[identifier]] or [[identifier|display title]]
LINK_PATTERN = re.compile(r"\[\[([^\]|]+)(?:\|([^\]]+))?\]\]")
ID_PATTERN = re.compile(r"^[0-9a-f-]+$", re.IGNORECASE)
TAG_PATTERN = re.compile(r"(?<![\w#])#(\w[\w-]*)")


class ReferenceExtractor:
    """Turns link markers in a note body into IDs of existing notes."""

    def extract_markers(self, content: str) -> list[str]:
        """Extract the identifier part of every link marker.

        Args:
            content: Note body

        Returns:
            Stripped identifiers in order of appearance, display titles and blank
            identifiers dropped
        """
        identifiers = (match.group(1).strip() for match in LINK_PATTERN.finditer(content))
        return [identifier for identifier in identifiers if identifier]

    def extract_references(
        self, content: str, all_notes: Iterable[Note], source_id: str | None = None
    ) -> list[str]:
        """Resolve the link markers of a note body to note IDs.

        Args:
            content: Note body
            all_notes: The owner's note collection
            source_id: ID of the note owning the body, never matched by title lookups

        Returns:
            Deduplicated IDs of existing notes, in order of first appearance
        """
        return list(self.resolve_markers(content, all_notes, source_id=source_id))

    def resolve_markers(
        self, content: str, all_notes: Iterable[Note], source_id: str | None = None
    ) -> dict[str, list[str]]:
        """Resolve link markers, keeping which identifiers resolved to each note.

        Args:
            content: Note body
            all_notes: The owner's note collection
            source_id: ID of the note owning the body, never matched by title lookups

        Returns:
            Dictionary mapping resolved note ID to the identifiers that resolved to it
        """
        notes = list(all_notes)
        existing_ids = {note.id for note in notes}
        candidates = [note for note in notes if note.id != source_id]
        resolved: dict[str, list[str]] = {}

        for identifier in self.extract_markers(content):
            note_id = self._resolve_single_marker(identifier, candidates)
            if note_id is None or note_id not in existing_ids:
                logger.debug(f"Dropping unresolved link marker: {identifier}")
                continue
            identifiers = resolved.setdefault(note_id, [])
            if identifier not in identifiers:
                identifiers.append(identifier)

        return resolved

    def get_context(self, content: str, target_id: str) -> str:
        """Extract the sentence holding the link marker for a target.

        Args:
            content: Note body
            target_id: Identifier used inside the marker

        Returns:
            The trimmed sentence, or an empty string if no terminated sentence holds the marker
        """
        pattern = re.compile(
            rf"[^.!?]*\[\[\s*{re.escape(target_id)}\s*(?:\|[^\]]*)?\]\][^.!?]*[.!?]"
        )
        match = pattern.search(content)
        return match.group(0).strip() if match else ""

    def extract_tags(self, content: str) -> list[str]:
        """Extract lowercase #hashtags, deduplicated in order of appearance."""
        tags: list[str] = []
        for match in TAG_PATTERN.finditer(content):
            tag = match.group(1).lower()
            if tag not in tags:
                tags.append(tag)
        return tags

    def _resolve_single_marker(self, identifier: str, notes: list[Note]) -> str | None:
        """Resolve one identifier; the first matching strategy wins."""
        if ID_PATTERN.match(identifier):
            return identifier

        for strategy in [
            self._match_exact_title,
            self._match_substring_title,
            self._match_substring_content,
        ]:
            result = strategy(identifier, notes)
            if result:
                return result.id
        return None

    @staticmethod
    def _match_exact_title(identifier: str, notes: list[Note]) -> Note | None:
        """Match title case insensitively."""
        for note in notes:
            if note.title.lower() == identifier.lower():
                return note
        return None

    @staticmethod
    def _match_substring_title(identifier: str, notes: list[Note]) -> Note | None:
        """Match by substring in title."""
        for note in notes:
            if identifier.lower() in note.title.lower():
                return note
        return None

    @staticmethod
    def _match_substring_content(identifier: str, notes: list[Note]) -> Note | None:
        """Match by substring anywhere in the body."""
        for note in notes:
            if identifier.lower() in note.content.lower():
                return note
        return None
