from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from notegraph.api import create_app
from notegraph.domain.note import Note
from notegraph.note_store.local import LocalNoteStore
from notegraph.service import KnowledgeService
from notegraph.similarity.lexical import LexicalSimilarity
from notegraph.suggestions.manager import SuggestionManager

OWNER_ID = "owner-1"


@pytest.fixture
def owner_id() -> str:
    return OWNER_ID


@pytest.fixture
def test_notes() -> dict[str, Note]:
    return {
        "a1": Note(id="a1", content="the quick brown fox"),
        "b2": Note(id="b2", content="the quick brown dog"),
        "c3": Note(id="c3", content="completely unrelated words here"),
    }


@pytest.fixture
def note_store(test_notes: dict[str, Note]) -> LocalNoteStore:
    return LocalNoteStore.from_data(notes={OWNER_ID: test_notes})


@pytest.fixture
def store_factory() -> Callable[..., LocalNoteStore]:
    """Build a store for the test owner from a list of notes."""

    def factory(*notes: Note) -> LocalNoteStore:
        return LocalNoteStore.from_data(notes={OWNER_ID: {note.id: note for note in notes}})

    return factory


@pytest.fixture
def manager(note_store: LocalNoteStore) -> SuggestionManager:
    return SuggestionManager(
        note_store=note_store,
        strategy=LexicalSimilarity(),
        threshold=0.5,
    )


@pytest.fixture
def service(manager: SuggestionManager) -> KnowledgeService:
    return KnowledgeService(manager)


@pytest.fixture
def test_client(service: KnowledgeService) -> Generator[TestClient, None, None]:
    """Create test client around the in-memory service."""
    app = create_app(service=service)
    with TestClient(app) as client:
        yield client
