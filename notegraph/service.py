"""The knowledge-graph operations offered to the HTTP layer."""

from notegraph.domain.note import Note
from notegraph.operations import OperationRegistry
from notegraph.suggestions.manager import SuggestionManager


class KnowledgeService:
    """Runs suggestion lifecycle operations as cancellable, time-bounded operations.

    Suggestion generation and note synchronization use the long timeout tier;
    accept and reject use the default tier.
    """

    def __init__(self, manager: SuggestionManager, operations: OperationRegistry | None = None):
        self.manager = manager
        self.operations = operations or OperationRegistry()

    async def get_suggestions(
        self, note_id: str, owner_id: str, operation_id: str | None = None
    ) -> Note:
        return await self.operations.run(
            operation_id, self.manager.generate(note_id, owner_id), long=True
        )

    async def accept_suggestion(
        self, note_id: str, target_id: str, owner_id: str, operation_id: str | None = None
    ) -> Note:
        return await self.operations.run(
            operation_id, self.manager.accept(note_id, target_id, owner_id)
        )

    async def reject_suggestion(
        self, note_id: str, target_id: str, owner_id: str, operation_id: str | None = None
    ) -> Note:
        return await self.operations.run(
            operation_id, self.manager.reject(note_id, target_id, owner_id)
        )

    async def sync_note(self, note_id: str, owner_id: str, operation_id: str | None = None) -> Note:
        """Refresh tags, backlinks and suggestions after a note's content was saved."""
        return await self.operations.run(
            operation_id, self.manager.update_knowledge_graph(note_id, owner_id), long=True
        )

    async def delete_note(self, note_id: str, owner_id: str) -> bool:
        return await self.manager.delete_note(note_id, owner_id)

    def cancel(self, operation_id: str) -> bool:
        return self.operations.cancel(operation_id)

    async def create_linked_note(
        self, note_id: str, topic: str, owner_id: str, operation_id: str | None = None
    ) -> Note:
        return await self.operations.run(
            operation_id,
            self.manager.create_linked_note(note_id, topic, owner_id),
            long=True,
        )
