"""Choosing a similarity strategy and the notes it should score."""

import logging
from typing import Iterable, Literal

from notegraph.domain.note import Note
from notegraph.embedders.base import Embedder
from notegraph.similarity.base import SimilarityStrategy
from notegraph.similarity.lexical import LexicalSimilarity
from notegraph.similarity.vector import VectorSimilarity

logger = logging.getLogger(__name__)


def select_strategy(
    embedder: Embedder | None, prefer: Literal["vector", "lexical"] = "vector"
) -> SimilarityStrategy:
    """Pick vector scoring when an available embedder is configured, lexical otherwise.

    Args:
        embedder: Embedding provider, or None when embeddings are disabled
        prefer: Force lexical scoring even if an embedder is configured

    Returns:
        The similarity strategy to use for suggestion generation
    """
    if embedder is None or prefer == "lexical":
        return LexicalSimilarity()

    strategy = VectorSimilarity(embedder)
    if not strategy.available:
        logger.warning("Falling back to lexical similarity")
        return LexicalSimilarity()
    return strategy


def candidate_notes(source: Note, all_notes: Iterable[Note]) -> list[Note]:
    """Notes worth scoring against the source: not itself, not already referenced."""
    return [
        note
        for note in all_notes
        if note.id != source.id and note.id not in source.references
    ]
