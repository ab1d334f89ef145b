import sys

import instructor
from anthropic import Anthropic
from loguru import logger

from notegraph.api import create_app
from notegraph.config import settings
from notegraph.embedders.factory import build_embedder
from notegraph.llms.base import GenerationService
from notegraph.llms.instructor_generation import InstructorGenerationService
from notegraph.note_store.local import LocalNoteStore
from notegraph.operations import OperationRegistry
from notegraph.service import KnowledgeService
from notegraph.similarity import select_strategy
from notegraph.suggestions.describer import SuggestionDescriber
from notegraph.suggestions.linked_notes import LinkedNoteWriter
from notegraph.suggestions.manager import SuggestionManager
from notegraph.suggestions.sweeper import BackgroundSweeper

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])


def build_generation_service() -> GenerationService | None:
    if not settings.anthropic_api_key:
        return None

    # Create instructor client with Anthropic Claude
    anthropic_client = Anthropic(api_key=settings.anthropic_api_key)
    instructor_client = instructor.from_anthropic(
        anthropic_client, mode=instructor.Mode.ANTHROPIC_TOOLS
    )
    return InstructorGenerationService(
        instructor_client,
        model=settings.generation_model,
        max_attempts=settings.generation_max_attempts,
        retry_delay=settings.generation_retry_delay,
        max_chunk_chars=settings.max_chunk_chars,
        max_context_chars=settings.max_context_chars,
    )


logger.info("Initializing knowledge graph engine")
generation_service = build_generation_service()
note_store = LocalNoteStore(settings.local_note_store_path)
manager = SuggestionManager(
    note_store=note_store,
    strategy=select_strategy(
        build_embedder(
            settings.embedding_provider, settings.voyage_ai_api_key, settings.openai_api_key
        )
    ),
    describer=SuggestionDescriber(
        generation_service, temperature=settings.generation_temperature
    ),
    note_writer=LinkedNoteWriter(
        generation_service,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
    ),
    threshold=settings.similarity_threshold,
)
service = KnowledgeService(
    manager,
    OperationRegistry(
        default_timeout=settings.default_operation_timeout,
        long_timeout=settings.long_operation_timeout,
    ),
)
sweeper = BackgroundSweeper(
    manager=manager,
    note_store=note_store,
    owner_ids=note_store.get_owner_ids,
    interval_seconds=settings.sweep_interval_minutes * 60,
)
app = create_app(service=service, sweeper=sweeper, shutdown_hooks=[note_store.save])
