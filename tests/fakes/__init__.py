from tests.fakes.fake_embedder import FakeEmbedder
from tests.fakes.fake_llm import FakeGenerationService, FakeInstructor
from tests.fakes.fake_note_store import FailingNoteStore
from tests.fakes.fake_similarity import CountingSimilarity, GatedSimilarity

__all__ = [
    "CountingSimilarity",
    "FailingNoteStore",
    "FakeEmbedder",
    "FakeGenerationService",
    "FakeInstructor",
    "GatedSimilarity",
]
