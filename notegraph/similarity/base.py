from typing import Protocol

from notegraph.domain.note import Note


class SimilarityStrategy(Protocol):
    def score(self, source: Note, candidate: Note) -> float:
        """Score how related two notes are, between 0.0 and 1.0."""
        ...
