"""Test suite for the suggestion lifecycle."""

import asyncio
import tempfile
from pathlib import Path
from typing import Callable

import pytest

from notegraph.domain.note import Note
from notegraph.domain.suggestion import SuggestionState
from notegraph.exceptions import InvalidTransitionError, NoteNotFoundError
from notegraph.note_store.local import LocalNoteStore
from notegraph.similarity.lexical import LexicalSimilarity
from notegraph.suggestions.describer import SuggestionDescriber
from notegraph.suggestions.linked_notes import LinkedNoteWriter
from notegraph.suggestions.manager import SuggestionManager
from tests.fakes import (
    CountingSimilarity,
    FailingNoteStore,
    FakeGenerationService,
    GatedSimilarity,
)


def _targets(note: Note) -> list[str]:
    return [s.target_note_id for s in note.suggested_links]


@pytest.mark.asyncio
async def test_generate_suggests_related_note(manager: SuggestionManager, owner_id: str) -> None:
    note = await manager.generate("a1", owner_id)

    assert _targets(note) == ["b2"]
    suggestion = note.suggested_links[0]
    assert suggestion.relevance == pytest.approx(0.6)
    assert suggestion.context == "Relevance score: 60.00%"
    assert suggestion.state == SuggestionState.PENDING
    assert _targets(manager.note_store.get_note("a1", owner_id)) == ["b2"]


@pytest.mark.asyncio
async def test_generate_respects_default_threshold(
    note_store: LocalNoteStore, owner_id: str
) -> None:
    manager = SuggestionManager(note_store=note_store, strategy=LexicalSimilarity())

    note = await manager.generate("a1", owner_id)

    assert note.suggested_links == []


@pytest.mark.asyncio
async def test_suggestions_are_in_range_and_never_self(
    store_factory: Callable[..., LocalNoteStore], owner_id: str
) -> None:
    store = store_factory(
        Note(id="n1", content="alpha beta gamma"),
        Note(id="n2", content="alpha beta gamma"),
        Note(id="n3", content="alpha beta delta"),
        Note(id="n4", content="something else entirely"),
    )
    manager = SuggestionManager(note_store=store, strategy=LexicalSimilarity(), threshold=0.0)

    note = await manager.generate("n1", owner_id)

    assert "n1" not in _targets(note)
    assert _targets(note)[:2] == ["n2", "n3"]
    relevances = [s.relevance for s in note.suggested_links]
    assert all(0.0 <= r <= 1.0 for r in relevances)
    assert relevances == sorted(relevances, reverse=True)


@pytest.mark.asyncio
async def test_unchanged_content_reuses_cached_scores(
    note_store: LocalNoteStore, owner_id: str
) -> None:
    strategy = CountingSimilarity()
    manager = SuggestionManager(note_store=note_store, strategy=strategy, threshold=0.5)

    await manager.generate("a1", owner_id)
    await manager.generate("a1", owner_id)
    assert len(strategy.calls) == 2

    note_store.update_note("a1", {"content": "the quick brown fox jumps"}, owner_id)
    note = await manager.generate("a1", owner_id)

    assert len(strategy.calls) == 4
    assert note.suggested_links[0].relevance == pytest.approx(0.5)


@pytest.mark.asyncio
async def test_cached_suggestions_skip_newly_referenced_targets(
    manager: SuggestionManager, note_store: LocalNoteStore, owner_id: str
) -> None:
    await manager.generate("a1", owner_id)
    note_store.update_note("a1", {"references": ["b2"]}, owner_id)

    note = await manager.generate("a1", owner_id)

    assert note.suggested_links == []


@pytest.mark.asyncio
async def test_accept_creates_reference_and_backlink(
    manager: SuggestionManager, note_store: LocalNoteStore, owner_id: str
) -> None:
    await manager.generate("a1", owner_id)

    note = await manager.accept("a1", "b2", owner_id)

    assert note.references == ["b2"]
    assert note.suggested_links == []
    target = note_store.get_note("b2", owner_id)
    assert [(bl.source_note_id, bl.context) for bl in target.backlinks] == [
        ("a1", "Relevance score: 60.00%")
    ]
    decision = manager.decision_for(owner_id, "a1", "b2")
    assert decision is not None
    assert decision.state == SuggestionState.ACCEPTED


@pytest.mark.asyncio
async def test_accept_is_idempotent(
    manager: SuggestionManager, note_store: LocalNoteStore, owner_id: str
) -> None:
    await manager.accept("a1", "b2", owner_id)
    note = await manager.accept("a1", "b2", owner_id)

    assert note.references == ["b2"]
    assert len(note_store.get_note("b2", owner_id).backlinks) == 1


@pytest.mark.asyncio
async def test_accepted_reference_survives_resync(
    manager: SuggestionManager, note_store: LocalNoteStore, owner_id: str
) -> None:
    await manager.generate("a1", owner_id)
    await manager.accept("a1", "b2", owner_id)

    note = await manager.update_knowledge_graph("a1", owner_id)

    assert note.references == ["b2"]
    assert note.suggested_links == []
    sources = [bl.source_note_id for bl in note_store.get_note("b2", owner_id).backlinks]
    assert sources == ["a1"]


@pytest.mark.asyncio
async def test_rejected_suggestion_stays_hidden(
    manager: SuggestionManager, owner_id: str
) -> None:
    await manager.generate("a1", owner_id)

    rejected = await manager.reject("a1", "b2", owner_id)
    regenerated = await manager.generate("a1", owner_id)

    assert rejected.suggested_links == []
    assert regenerated.suggested_links == []
    assert manager.decision_for(owner_id, "a1", "b2").state == SuggestionState.REJECTED


@pytest.mark.asyncio
async def test_rejection_reopens_after_content_change(
    manager: SuggestionManager, note_store: LocalNoteStore, owner_id: str
) -> None:
    await manager.generate("a1", owner_id)
    await manager.reject("a1", "b2", owner_id)

    note_store.update_note("a1", {"content": "the quick brown fox jumps"}, owner_id)
    note = await manager.generate("a1", owner_id)

    assert _targets(note) == ["b2"]
    assert manager.decision_for(owner_id, "a1", "b2") is None


@pytest.mark.asyncio
async def test_terminal_decisions_cannot_be_reversed(
    manager: SuggestionManager, owner_id: str
) -> None:
    await manager.generate("a1", owner_id)
    await manager.reject("a1", "b2", owner_id)
    # Repeating the same decision is a no-op
    await manager.reject("a1", "b2", owner_id)

    with pytest.raises(InvalidTransitionError):
        await manager.accept("a1", "b2", owner_id)

    await manager.accept("b2", "a1", owner_id)
    with pytest.raises(InvalidTransitionError):
        await manager.reject("b2", "a1", owner_id)


@pytest.mark.asyncio
async def test_unknown_notes_and_self_links(manager: SuggestionManager, owner_id: str) -> None:
    with pytest.raises(NoteNotFoundError):
        await manager.generate("missing", owner_id)
    with pytest.raises(NoteNotFoundError):
        await manager.accept("a1", "missing", owner_id)
    with pytest.raises(NoteNotFoundError):
        await manager.reject("missing", "a1", owner_id)
    with pytest.raises(NoteNotFoundError):
        await manager.generate("a1", "other-owner")
    with pytest.raises(ValueError, match="itself"):
        await manager.accept("a1", "a1", owner_id)


@pytest.mark.asyncio
async def test_failing_candidate_is_skipped(note_store: LocalNoteStore, owner_id: str) -> None:
    strategy = CountingSimilarity(failing_ids={"c3"})
    manager = SuggestionManager(note_store=note_store, strategy=strategy, threshold=0.5)

    note = await manager.generate("a1", owner_id)

    assert _targets(note) == ["b2"]
    assert sorted(candidate for _, candidate in strategy.calls) == ["b2", "c3"]


@pytest.mark.asyncio
async def test_generated_description(note_store: LocalNoteStore, owner_id: str) -> None:
    generation_service = FakeGenerationService(response=" Both describe a quick brown animal. ")
    manager = SuggestionManager(
        note_store=note_store,
        strategy=LexicalSimilarity(),
        describer=SuggestionDescriber(generation_service),
        threshold=0.5,
    )

    note = await manager.generate("a1", owner_id)

    assert note.suggested_links[0].context == "Both describe a quick brown animal."
    assert len(generation_service.prompts) == 1
    assert generation_service.prompts[0].startswith("Compare these two notes")
    assert "the quick brown dog" in generation_service.prompts[0]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "generation_service",
    [
        FakeGenerationService(error=RuntimeError("backend down")),
        FakeGenerationService(response="   "),
    ],
)
async def test_description_falls_back_to_relevance(
    note_store: LocalNoteStore, owner_id: str, generation_service: FakeGenerationService
) -> None:
    manager = SuggestionManager(
        note_store=note_store,
        strategy=LexicalSimilarity(),
        describer=SuggestionDescriber(generation_service),
        threshold=0.5,
    )

    note = await manager.generate("a1", owner_id)

    assert note.suggested_links[0].context == "Relevance score: 60.00%"


@pytest.mark.asyncio
async def test_update_knowledge_graph_refreshes_tags_and_links(
    store_factory: Callable[..., LocalNoteStore], owner_id: str
) -> None:
    store = store_factory(
        Note(id="n1", content="Plan with #Garden ideas. See [[abc-1]] soon.", tags=["plans"]),
        Note(id="abc-1", content="Garden\nNotes about soil."),
    )
    manager = SuggestionManager(note_store=store, strategy=LexicalSimilarity())

    note = await manager.update_knowledge_graph("n1", owner_id)

    assert note.tags == ["plans", "garden"]
    assert note.references == ["abc-1"]
    target = store.get_note("abc-1", owner_id)
    assert [(bl.source_note_id, bl.context) for bl in target.backlinks] == [
        ("n1", "See [[abc-1]] soon.")
    ]


@pytest.mark.asyncio
async def test_delete_note_cascades_and_forgets(
    manager: SuggestionManager, note_store: LocalNoteStore, owner_id: str
) -> None:
    await manager.generate("b2", owner_id)
    await manager.accept("c3", "a1", owner_id)
    await manager.reject("b2", "a1", owner_id)

    deleted = await manager.delete_note("a1", owner_id)

    assert deleted is True
    assert note_store.get_note("a1", owner_id) is None
    assert note_store.get_note("c3", owner_id).references == []
    assert note_store.get_note("c3", owner_id).accepted_references == []
    assert manager.decision_for(owner_id, "b2", "a1") is None
    assert manager.decision_for(owner_id, "c3", "a1") is None
    assert (await manager.generate("b2", owner_id)).suggested_links == []

    with pytest.raises(NoteNotFoundError):
        await manager.delete_note("a1", owner_id)


@pytest.mark.asyncio
async def test_process_all_notes(manager: SuggestionManager, owner_id: str) -> None:
    processed = await manager.process_all_notes(owner_id)

    assert processed == 3
    assert _targets(manager.note_store.get_note("a1", owner_id)) == ["b2"]
    assert _targets(manager.note_store.get_note("b2", owner_id)) == ["a1"]


@pytest.mark.asyncio
async def test_process_all_notes_isolates_failures(
    test_notes: dict[str, Note], owner_id: str
) -> None:
    store = FailingNoteStore(notes={owner_id: test_notes}, failing_ids={"a1"})
    manager = SuggestionManager(note_store=store, strategy=LexicalSimilarity(), threshold=0.5)

    processed = await manager.process_all_notes(owner_id)

    assert processed == 2
    assert _targets(store.get_note("b2", owner_id)) == ["a1"]


@pytest.mark.asyncio
async def test_concurrent_generate_and_reject(
    manager: SuggestionManager, note_store: LocalNoteStore, owner_id: str
) -> None:
    await asyncio.gather(
        manager.generate("a1", owner_id),
        manager.reject("a1", "b2", owner_id),
    )

    assert note_store.get_note("a1", owner_id).suggested_links == []


@pytest.mark.asyncio
async def test_acceptance_survives_restart(
    manager: SuggestionManager, note_store: LocalNoteStore, owner_id: str
) -> None:
    await manager.generate("a1", owner_id)
    await manager.accept("a1", "b2", owner_id)

    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "notes.json"
        note_store.save(str(path))
        reloaded = LocalNoteStore(filepath=path)
    restarted = SuggestionManager(note_store=reloaded, strategy=LexicalSimilarity(), threshold=0.5)

    note = await restarted.update_knowledge_graph("a1", owner_id)

    assert note.references == ["b2"]
    assert note.accepted_references == ["b2"]
    assert note.suggested_links == []
    sources = [bl.source_note_id for bl in reloaded.get_note("b2", owner_id).backlinks]
    assert sources == ["a1"]

    with pytest.raises(InvalidTransitionError):
        await restarted.reject("a1", "b2", owner_id)
    assert (await restarted.accept("a1", "b2", owner_id)).references == ["b2"]


@pytest.mark.asyncio
async def test_note_deleted_while_scoring_is_not_suggested(
    note_store: LocalNoteStore, owner_id: str
) -> None:
    strategy = GatedSimilarity()
    manager = SuggestionManager(note_store=note_store, strategy=strategy, threshold=0.0)

    generating = asyncio.create_task(manager.generate("a1", owner_id))
    assert await asyncio.to_thread(strategy.started.wait, 5)
    await manager.delete_note("c3", owner_id)
    strategy.release.set()
    note = await generating

    assert _targets(note) == ["b2"]
    assert _targets(note_store.get_note("a1", owner_id)) == ["b2"]
    assert _targets(await manager.generate("a1", owner_id)) == ["b2"]


@pytest.mark.asyncio
async def test_create_linked_note(
    manager: SuggestionManager, note_store: LocalNoteStore, owner_id: str
) -> None:
    note = await manager.create_linked_note("a1", " Fox habitats ", owner_id, note_id="f00d")

    assert note.content == "# Fox habitats\n\nRelated to: [[a1]]."
    assert note.title == "Fox habitats"
    assert note.references == ["a1"]
    assert note.accepted_references == ["a1"]
    sources = [bl.source_note_id for bl in note_store.get_note("a1", owner_id).backlinks]
    assert sources == ["f00d"]


@pytest.mark.asyncio
async def test_linked_note_keeps_link_without_marker(
    store_factory: Callable[..., LocalNoteStore], owner_id: str
) -> None:
    store = store_factory(Note(id="note-src", content="Planning\nthe garden"))
    manager = SuggestionManager(note_store=store, strategy=LexicalSimilarity())

    note = await manager.create_linked_note("note-src", "Soil", owner_id, note_id="note-new")

    assert note.references == ["note-src"]
    target = store.get_note("note-src", owner_id)
    assert [bl.source_note_id for bl in target.backlinks] == ["note-new"]


@pytest.mark.asyncio
async def test_linked_note_drafted_by_generation_service(
    note_store: LocalNoteStore, owner_id: str
) -> None:
    generation_service = FakeGenerationService(response="# Foxes\n\nFoxes hunt at dusk.")
    manager = SuggestionManager(
        note_store=note_store,
        strategy=LexicalSimilarity(),
        note_writer=LinkedNoteWriter(generation_service),
        threshold=0.5,
    )

    note = await manager.create_linked_note("a1", "Foxes", owner_id, note_id="f00d")

    assert note.content == "# Foxes\n\nFoxes hunt at dusk.\n\nRelated to: [[a1]]."
    assert note.references == ["a1"]
    prompt = generation_service.prompts[0]
    assert prompt.startswith('Create a new note about "Foxes"')
    assert "the quick brown fox" in prompt


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "generation_service",
    [
        FakeGenerationService(error=RuntimeError("backend down")),
        FakeGenerationService(response="  "),
    ],
)
async def test_linked_note_falls_back_to_stub(
    note_store: LocalNoteStore, owner_id: str, generation_service: FakeGenerationService
) -> None:
    manager = SuggestionManager(
        note_store=note_store,
        strategy=LexicalSimilarity(),
        note_writer=LinkedNoteWriter(generation_service),
    )

    note = await manager.create_linked_note("a1", "Foxes", owner_id, note_id="f00d")

    assert note.content.startswith("# Foxes\n\n_Note: This is a basic version.")
    assert note.references == ["a1"]


@pytest.mark.asyncio
async def test_linked_note_errors(manager: SuggestionManager, owner_id: str) -> None:
    with pytest.raises(ValueError, match="topic"):
        await manager.create_linked_note("a1", "   ", owner_id)
    with pytest.raises(NoteNotFoundError):
        await manager.create_linked_note("missing", "Foxes", owner_id)
    with pytest.raises(ValueError, match="already exists"):
        await manager.create_linked_note("a1", "Foxes", owner_id, note_id="b2")
