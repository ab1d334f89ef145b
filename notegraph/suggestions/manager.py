"""Producing, caching and deciding link suggestions between notes."""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from notegraph.domain.note import BacklinkEdge, Note, hash_content
from notegraph.domain.suggestion import SuggestionEdge, SuggestionState
from notegraph.exceptions import InvalidTransitionError, NoteNotFoundError
from notegraph.graph.backlinks import BacklinkSynchronizer
from notegraph.graph.extractor import ReferenceExtractor
from notegraph.note_store.base import NoteStore
from notegraph.similarity.base import SimilarityStrategy
from notegraph.similarity.selection import candidate_notes
from notegraph.suggestions.describer import SuggestionDescriber
from notegraph.suggestions.linked_notes import LinkedNoteWriter
from notegraph.suggestions.locks import NoteLocks

logger = logging.getLogger(__name__)

NoteKey = tuple[str, str]  # (owner_id, note_id)


@dataclass
class Decision:
    """A user decision on one suggested pair, tied to the source content it was made on."""

    state: SuggestionState
    content_hash: str


class SuggestionManager:
    """Owns the suggestion lifecycle for every note of every owner.

    All caches are instance state: the last scored suggestions per note, the
    content hash they were scored on, and a decision ledger per source note.
    A rejection lives in the ledger only and holds while the source content is
    unchanged. An acceptance is also persisted on the source note as an
    accepted reference, so it outlives the process.
    """

    def __init__(
        self,
        *,
        note_store: NoteStore,
        strategy: SimilarityStrategy,
        describer: SuggestionDescriber | None = None,
        note_writer: LinkedNoteWriter | None = None,
        synchronizer: BacklinkSynchronizer | None = None,
        extractor: ReferenceExtractor | None = None,
        threshold: float = 0.7,
        locks: NoteLocks | None = None,
    ):
        """Initialize the manager with its collaborators.

        Args:
            note_store: Persistence for notes
            strategy: Similarity strategy used to score candidates
            describer: Builds the context string of each suggestion
            note_writer: Drafts the body of linked notes
            synchronizer: Keeps backlinks in line with references
            extractor: Link marker and hashtag extraction
            threshold: Minimum relevance for a candidate to be suggested
            locks: Per-note lock registry, shared with anything else writing notes
        """
        self.note_store = note_store
        self.strategy = strategy
        self.describer = describer or SuggestionDescriber()
        self.note_writer = note_writer or LinkedNoteWriter()
        self.extractor = extractor or ReferenceExtractor()
        self.synchronizer = synchronizer or BacklinkSynchronizer(note_store, self.extractor)
        self.threshold = threshold
        self.locks = locks or NoteLocks()

        self._suggestions: dict[NoteKey, list[SuggestionEdge]] = {}
        self._content_hashes: dict[NoteKey, str] = {}
        self._decisions: dict[NoteKey, dict[str, Decision]] = {}
        self._graph_locks: dict[str, asyncio.Lock] = {}

    async def update_knowledge_graph(self, note_id: str, owner_id: str) -> Note:
        """Refresh everything derived from a note's content after it was saved.

        Merges body hashtags into the tags, synchronizes backlinks, then
        regenerates suggestions.
        """
        async with self.locks.for_note(owner_id, note_id):
            async with self._graph_lock(owner_id):
                all_notes = self._collection(owner_id)
                note = self._require(all_notes, note_id)
                self._merge_hashtags(note, owner_id)
                note = self.synchronizer.sync(
                    note,
                    all_notes,
                    owner_id,
                    pinned_references=note.accepted_references,
                )
            return await self._generate_locked(note, all_notes, owner_id)

    async def generate(self, source_id: str, owner_id: str) -> Note:
        """Produce the pending suggestions of a note and persist them.

        Args:
            source_id: ID of the note to suggest links for
            owner_id: Owner of the note collection

        Returns:
            The note with its refreshed suggested_links
        """
        async with self.locks.for_note(owner_id, source_id):
            all_notes = self._collection(owner_id)
            note = self._require(all_notes, source_id)
            return await self._generate_locked(note, all_notes, owner_id)

    async def accept(self, source_id: str, target_id: str, owner_id: str) -> Note:
        """Turn a suggestion into a reference with its backlink.

        Accepting the same pair twice leaves a single reference and backlink.
        """
        if source_id == target_id:
            raise ValueError("A note cannot link to itself")

        key = (owner_id, source_id)
        async with self.locks.for_note(owner_id, source_id):
            async with self._graph_lock(owner_id):
                all_notes = self._collection(owner_id)
                source = self._require(all_notes, source_id)
                target = self._require(all_notes, target_id)
                self._transition(key, source, target_id, SuggestionState.ACCEPTED)

                if target_id not in source.references:
                    source.references.append(target_id)
                if target_id not in source.accepted_references:
                    source.accepted_references.append(target_id)
                if not any(bl.source_note_id == source_id for bl in target.backlinks):
                    target.backlinks.append(
                        BacklinkEdge(
                            source_note_id=source_id,
                            context=self._accepted_context(key, source, target_id),
                        )
                    )
                source.suggested_links = [
                    s for s in source.suggested_links if s.target_note_id != target_id
                ]

                updated = self.note_store.update_note(
                    source_id,
                    {
                        "references": source.references,
                        "accepted_references": source.accepted_references,
                        "suggested_links": source.suggested_links,
                    },
                    owner_id,
                )
                self.note_store.update_note(target_id, {"backlinks": target.backlinks}, owner_id)

        logger.info(f"Accepted suggestion {source_id} -> {target_id}")
        return updated or source

    async def reject(self, source_id: str, target_id: str, owner_id: str) -> Note:
        """Dismiss a suggestion so it stays hidden while the source content is unchanged."""
        key = (owner_id, source_id)
        async with self.locks.for_note(owner_id, source_id):
            source = self.note_store.get_note(source_id, owner_id)
            if source is None:
                raise NoteNotFoundError(source_id)
            self._transition(key, source, target_id, SuggestionState.REJECTED)

            source.suggested_links = [
                s for s in source.suggested_links if s.target_note_id != target_id
            ]
            updated = self.note_store.update_note(
                source_id, {"suggested_links": source.suggested_links}, owner_id
            )

        logger.info(f"Rejected suggestion {source_id} -> {target_id}")
        return updated or source

    async def delete_note(self, note_id: str, owner_id: str) -> bool:
        """Delete a note, prune every edge pointing at it and forget its cached state."""
        async with self.locks.for_note(owner_id, note_id):
            async with self._graph_lock(owner_id):
                all_notes = self._collection(owner_id)
                self._require(all_notes, note_id)
                deleted = self.synchronizer.remove_note(note_id, all_notes, owner_id)
                self._forget(owner_id, note_id)
        self.locks.discard(owner_id, note_id)
        return deleted

    async def create_linked_note(
        self, source_id: str, topic: str, owner_id: str, note_id: str | None = None
    ) -> Note:
        """Create a note about a topic of the source note, linked back to the source.

        The new note references the source through a marker in its body and
        through its accepted references, so the link survives later edits.

        Args:
            source_id: ID of the note the topic comes from
            topic: Subject of the new note
            owner_id: Owner of the note collection
            note_id: ID for the new note; a UUID when omitted

        Returns:
            The new note after its references, backlinks and suggestions were computed
        """
        topic = topic.strip()
        if not topic:
            raise ValueError("A linked note needs a topic")
        source = self.note_store.get_note(source_id, owner_id)
        if source is None:
            raise NoteNotFoundError(source_id)

        body = await asyncio.to_thread(self.note_writer.draft, source, topic)
        if source_id not in self.extractor.extract_markers(body):
            body = f"{body.rstrip()}\n\nRelated to: [[{source_id}]]."

        note = Note(id=note_id or str(uuid.uuid4()), content=body, accepted_references=[source_id])
        async with self._graph_lock(owner_id):
            if self.note_store.get_note(note.id, owner_id) is not None:
                raise ValueError(f"Note {note.id} already exists")
            self.note_store.add_note(note, owner_id)

        logger.info(f"Created note {note.id} on '{topic}' linked to {source_id}")
        return await self.update_knowledge_graph(note.id, owner_id)

    async def process_all_notes(self, owner_id: str) -> int:
        """Run the save path for every note of an owner, isolating failures per note.

        Returns:
            Number of notes processed successfully
        """
        notes = self.note_store.get_all_notes(owner_id)
        logger.info(f"Processing {len(notes)} notes for owner {owner_id}")

        processed = 0
        for note in notes:
            try:
                await self.update_knowledge_graph(note.id, owner_id)
                processed += 1
            except Exception:
                logger.exception(f"Error processing note {note.id}")
        return processed

    def decision_for(self, owner_id: str, source_id: str, target_id: str) -> Decision | None:
        """Look up the recorded decision on a suggested pair, if any."""
        return self._decisions.get((owner_id, source_id), {}).get(target_id)

    async def _generate_locked(
        self, note: Note, all_notes: dict[str, Note], owner_id: str
    ) -> Note:
        key = (owner_id, note.id)
        current_hash = hash_content(note.content)
        cached = self._suggestions.get(key)

        if cached is not None and self._content_hashes.get(key) == current_hash:
            logger.debug(f"Content of note {note.id} unchanged, reusing cached suggestions")
            suggestions = cached
        else:
            suggestions = await self._score_candidates(note, all_notes)
            self._suggestions[key] = suggestions
            self._content_hashes[key] = current_hash
            self._drop_stale_rejections(key, current_hash)

        # Scoring ran unlocked; notes deleted meanwhile must not come back as targets
        async with self._graph_lock(owner_id):
            live_notes = self._collection(owner_id)
            current = self._require(live_notes, note.id)
            suggestions = [s for s in suggestions if s.target_note_id in live_notes]
            self._suggestions[key] = suggestions

            pending = self._active(key, current, suggestions, live_notes, current_hash)
            updated = self.note_store.update_note(
                note.id, {"suggested_links": pending}, owner_id
            )
        return updated or current.model_copy(update={"suggested_links": pending})

    async def _score_candidates(
        self, note: Note, all_notes: dict[str, Note]
    ) -> list[SuggestionEdge]:
        candidates = candidate_notes(note, all_notes.values())
        results = await asyncio.gather(*(self._score_one(note, c) for c in candidates))
        suggestions = [s for s in results if s is not None]
        suggestions.sort(key=lambda s: s.relevance, reverse=True)
        logger.debug(
            f"Scored {len(candidates)} candidates for note {note.id}, kept {len(suggestions)}"
        )
        return suggestions

    async def _score_one(self, source: Note, candidate: Note) -> SuggestionEdge | None:
        """Score and describe one candidate. Any failure drops only this candidate."""
        try:
            relevance = await asyncio.to_thread(self.strategy.score, source, candidate)
            relevance = min(max(float(relevance), 0.0), 1.0)
            if relevance < self.threshold:
                return None
            context = await asyncio.to_thread(
                self.describer.describe, source, candidate, relevance
            )
        except Exception as e:
            logger.warning(f"Skipping candidate {candidate.id} for note {source.id}: {e}")
            return None

        return SuggestionEdge(target_note_id=candidate.id, relevance=relevance, context=context)

    def _active(
        self,
        key: NoteKey,
        note: Note,
        suggestions: list[SuggestionEdge],
        all_notes: dict[str, Note],
        current_hash: str,
    ) -> list[SuggestionEdge]:
        """Pending suggestions: target still exists, not yet referenced, not decided."""
        ledger = self._decisions.get(key, {})
        now = datetime.now(timezone.utc)
        active = []
        for suggestion in suggestions:
            target_id = suggestion.target_note_id
            if (
                target_id == note.id
                or target_id not in all_notes
                or target_id in note.references
                or target_id in note.accepted_references
            ):
                continue
            decision = ledger.get(target_id)
            if decision and (
                decision.state == SuggestionState.ACCEPTED or decision.content_hash == current_hash
            ):
                continue
            active.append(
                suggestion.model_copy(update={"state": SuggestionState.PENDING, "timestamp": now})
            )
        return active

    def _transition(
        self, key: NoteKey, source: Note, target_id: str, requested: SuggestionState
    ) -> None:
        """Record a decision; terminal decisions may only be repeated, never reversed.

        Acceptances persisted on the source note count as recorded decisions,
        also when the ledger was lost with a previous process.
        """
        content_hash = hash_content(source.content)
        ledger = self._decisions.setdefault(key, {})
        existing = ledger.get(target_id)
        if existing is None and target_id in source.accepted_references:
            existing = ledger[target_id] = Decision(
                state=SuggestionState.ACCEPTED, content_hash=content_hash
            )

        if existing and (
            existing.state == SuggestionState.ACCEPTED or existing.content_hash == content_hash
        ):
            if existing.state != requested:
                raise InvalidTransitionError(
                    key[1], target_id, existing.state.value, requested.value
                )
            return

        ledger[target_id] = Decision(state=requested, content_hash=content_hash)
        for suggestion in self._suggestions.get(key, []):
            if suggestion.target_note_id == target_id:
                suggestion.state = requested

    def _drop_stale_rejections(self, key: NoteKey, current_hash: str) -> None:
        ledger = self._decisions.get(key)
        if not ledger:
            return
        for target_id, decision in list(ledger.items()):
            if decision.state == SuggestionState.REJECTED and decision.content_hash != current_hash:
                del ledger[target_id]

    def _accepted_context(self, key: NoteKey, source: Note, target_id: str) -> str:
        for suggestion in self._suggestions.get(key, []):
            if suggestion.target_note_id == target_id:
                return suggestion.context
        return self.extractor.get_context(source.content, target_id)

    def _merge_hashtags(self, note: Note, owner_id: str) -> None:
        new_tags = [t for t in self.extractor.extract_tags(note.content) if t not in note.tags]
        if new_tags:
            note.tags = note.tags + new_tags
            self.note_store.update_note(note.id, {"tags": note.tags}, owner_id)

    def _forget(self, owner_id: str, note_id: str) -> None:
        key = (owner_id, note_id)
        self._suggestions.pop(key, None)
        self._content_hashes.pop(key, None)
        self._decisions.pop(key, None)

        for (other_owner, _), suggestions in self._suggestions.items():
            if other_owner == owner_id:
                suggestions[:] = [s for s in suggestions if s.target_note_id != note_id]
        for (other_owner, _), ledger in self._decisions.items():
            if other_owner == owner_id:
                ledger.pop(note_id, None)

    def _collection(self, owner_id: str) -> dict[str, Note]:
        return {note.id: note for note in self.note_store.get_all_notes(owner_id)}

    @staticmethod
    def _require(all_notes: dict[str, Note], note_id: str) -> Note:
        if note_id not in all_notes:
            raise NoteNotFoundError(note_id)
        return all_notes[note_id]

    def _graph_lock(self, owner_id: str) -> asyncio.Lock:
        """Serializes multi-note edge writes within one owner's collection."""
        return self._graph_locks.setdefault(owner_id, asyncio.Lock())
