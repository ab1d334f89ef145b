"""Suggestion domain models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field


class SuggestionState(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class SuggestionEdge(BaseModel):
    """A system-proposed link from the owning note to another note.

    Attributes:
        target_note_id: The note the owning note could link to
        relevance: Similarity score between 0.0 and 1.0
        context: Either a relevance percentage or a one-sentence description
        state: Lifecycle state of the suggestion
        timestamp: When the suggestion was produced or last refreshed
    """

    target_note_id: str
    relevance: float = Field(ge=0.0, le=1.0)
    context: str = ""
    state: SuggestionState = SuggestionState.PENDING
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
