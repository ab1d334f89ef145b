"""Human-readable context for a link suggestion."""

import logging

from notegraph.domain.note import Note
from notegraph.llms.base import GenerationService

logger = logging.getLogger(__name__)

DESCRIBE_PROMPT_TEMPLATE = """Compare these two notes and explain their relationship in one sentence:

Note 1: {source}...

Note 2: {target}..."""


def relevance_context(relevance: float) -> str:
    return f"Relevance score: {relevance * 100:.2f}%"


class SuggestionDescriber:
    """Describes why two notes are related.

    Without a generation service, or when it fails, the description is the
    plain relevance percentage.
    """

    def __init__(
        self,
        generation_service: GenerationService | None = None,
        excerpt_chars: int = 500,
        temperature: float = 0.7,
        max_tokens: int = 150,
    ):
        self.generation_service = generation_service
        self.excerpt_chars = excerpt_chars
        self.temperature = temperature
        self.max_tokens = max_tokens

    def describe(self, source: Note, target: Note, relevance: float) -> str:
        if self.generation_service is None:
            return relevance_context(relevance)

        prompt = DESCRIBE_PROMPT_TEMPLATE.format(
            source=source.content[: self.excerpt_chars],
            target=target.content[: self.excerpt_chars],
        )
        try:
            description = self.generation_service.generate(
                prompt, temperature=self.temperature, max_tokens=self.max_tokens
            ).strip()
        except Exception as e:
            logger.warning(f"Could not describe link {source.id} -> {target.id}: {e}")
            return relevance_context(relevance)

        return description or relevance_context(relevance)
