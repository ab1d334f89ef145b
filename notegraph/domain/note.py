"""Note domain models."""

from datetime import datetime, timezone
from hashlib import sha256

from pydantic import BaseModel, Field

from notegraph.domain.suggestion import SuggestionEdge


def hash_content(content: str) -> str:
    """SHA-256 hex digest of a note body."""
    return sha256(content.encode()).hexdigest()


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BacklinkEdge(BaseModel):
    """Derived inverse of a reference, stored on the referenced note."""

    source_note_id: str
    context: str = ""  # sentence around the link marker in the source note
    timestamp: datetime = Field(default_factory=_now)


class Note(BaseModel):
    """Represents a note together with its graph-derived fields.

    Attributes:
        id: Unique identifier
        content: Free-text body; the first line doubles as the title
        tags: Tags attached to the note, including hashtags found in the body
        references: Note IDs this note links to, in order of first appearance
        accepted_references: Targets of accepted suggestions, kept as references
            even though the body has no marker for them
        backlinks: Edges from notes that reference this note
        suggested_links: Pending link suggestions for this note
        created_at: Creation timestamp
        last_modified: Last content modification timestamp
    """

    id: str
    content: str = ""
    tags: list[str] = []
    references: list[str] = []
    accepted_references: list[str] = []
    backlinks: list[BacklinkEdge] = []
    suggested_links: list[SuggestionEdge] = []
    created_at: datetime = Field(default_factory=_now)
    last_modified: datetime = Field(default_factory=_now)

    @property
    def title(self) -> str:
        first_line = self.content.split("\n")[0] if self.content else ""
        return first_line.lstrip("#").strip()
