import logging
import threading

import numpy as np

from notegraph.domain.note import Note, hash_content
from notegraph.embedders.base import Embedder
from notegraph.similarity.base import SimilarityStrategy

logger = logging.getLogger(__name__)


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity clamped into [0, 1]; mismatched or zero vectors score 0."""
    a = np.asarray(a, dtype=np.float32)
    b = np.asarray(b, dtype=np.float32)
    if a.shape != b.shape:
        return 0.0

    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, 0.0, 1.0))


class VectorSimilarity(SimilarityStrategy):
    """Cosine similarity between note embeddings.

    The embedder's availability is checked once per instance. Embeddings are
    cached by content hash, so a note whose body did not change is embedded once.
    """

    def __init__(self, embedder: Embedder):
        self.embedder = embedder
        self._available: bool | None = None
        self._availability_lock = threading.Lock()
        self._embeddings: dict[str, np.ndarray] = {}

    @property
    def available(self) -> bool:
        with self._availability_lock:
            if self._available is None:
                self._available = self.embedder.is_available()
                if not self._available:
                    logger.warning("Embedding provider is unavailable, vector scores are 0")
        return self._available

    def score(self, source: Note, candidate: Note) -> float:
        if not self.available:
            return 0.0
        return cosine_similarity(
            self._embedding(source.content), self._embedding(candidate.content)
        )

    def _embedding(self, content: str) -> np.ndarray:
        key = hash_content(content)
        if key not in self._embeddings:
            self._embeddings[key] = self.embedder.embed(content)
        return self._embeddings[key]
