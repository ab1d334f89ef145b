"""Drafting the body of a note spun off from a topic in another note."""

import logging

from notegraph.domain.note import Note
from notegraph.llms.base import GenerationService

logger = logging.getLogger(__name__)

LINKED_NOTE_PROMPT_TEMPLATE = """Create a new note about "{topic}" that relates to this context:

{source}

Include relevant connections and references to the source material. Format in markdown."""

FALLBACK_BODY_TEMPLATE = """# {topic}

_Note: This is a basic version. AI-enhanced content generation failed._"""


class LinkedNoteWriter:
    """Writes the first draft of a linked note.

    Without a generation service the draft is just the topic heading; when the
    service fails or answers with nothing, it is a stub that says so.
    """

    def __init__(
        self,
        generation_service: GenerationService | None = None,
        temperature: float = 0.7,
        max_tokens: int = 2048,
    ):
        self.generation_service = generation_service
        self.temperature = temperature
        self.max_tokens = max_tokens

    def draft(self, source: Note, topic: str) -> str:
        if self.generation_service is None:
            return f"# {topic}"

        prompt = LINKED_NOTE_PROMPT_TEMPLATE.format(topic=topic, source=source.content)
        try:
            body = self.generation_service.generate(
                prompt, temperature=self.temperature, max_tokens=self.max_tokens
            ).strip()
        except Exception as e:
            logger.warning(f"Could not draft linked note '{topic}' from {source.id}: {e}")
            return FALLBACK_BODY_TEMPLATE.format(topic=topic)

        return body or FALLBACK_BODY_TEMPLATE.format(topic=topic)
