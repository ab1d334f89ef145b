from notegraph.domain.note import Note
from notegraph.similarity.base import SimilarityStrategy


def tokenize(text: str) -> set[str]:
    return set(text.lower().split())


def jaccard_similarity(source_text: str, candidate_text: str) -> float:
    """Ratio of shared to total distinct whitespace tokens, case-insensitive."""
    source_tokens = tokenize(source_text)
    candidate_tokens = tokenize(candidate_text)
    union = source_tokens | candidate_tokens
    if not union:
        return 0.0
    return len(source_tokens & candidate_tokens) / len(union)


class LexicalSimilarity(SimilarityStrategy):
    """Jaccard similarity over word sets. Deterministic, no external services."""

    def score(self, source: Note, candidate: Note) -> float:
        return jaccard_similarity(source.content, candidate.content)
