"""Pluggable relatedness scoring between notes."""

from notegraph.similarity.base import SimilarityStrategy
from notegraph.similarity.lexical import LexicalSimilarity, jaccard_similarity
from notegraph.similarity.selection import candidate_notes, select_strategy
from notegraph.similarity.vector import VectorSimilarity, cosine_similarity

__all__ = [
    "LexicalSimilarity",
    "SimilarityStrategy",
    "VectorSimilarity",
    "candidate_notes",
    "cosine_similarity",
    "jaccard_similarity",
    "select_strategy",
]
