import logging
import time
from typing import Callable

import anthropic
from instructor import Instructor

from notegraph.exceptions import GenerationError
from notegraph.llms.prompt_chunker import PromptChunker
from notegraph.llms.schemas import GeneratedText

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS: tuple[type[Exception], ...] = (
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)


class InstructorGenerationService:
    """Text generation through an instructor-wrapped Anthropic client.

    Prompts longer than ``max_context_chars`` are split into sentence-bounded
    chunks, generated one by one and joined with blank lines. Each call is
    retried on transient errors; every retry shrinks the token budget by 20%
    and raises the temperature by 0.1.
    """

    def __init__(
        self,
        instructor: Instructor,
        *,
        model: str = "claude-3-5-sonnet-20241022",
        max_attempts: int = 3,
        retry_delay: float = 1.0,
        max_chunk_chars: int = 4000,
        max_context_chars: int = 8000,
        retry_on: tuple[type[Exception], ...] = TRANSIENT_ERRORS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.instructor = instructor
        self.model = model
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.max_context_chars = max_context_chars
        self.retry_on = retry_on
        self.chunker = PromptChunker(max_chars=max_chunk_chars)
        self._sleep = sleep

    def generate(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2048) -> str:
        if len(prompt) <= self.max_context_chars:
            return self._generate_with_retry(prompt, temperature, max_tokens)

        chunks = self.chunker.chunk_text(prompt)
        logger.info(f"Splitting long prompt ({len(prompt)} chars) into {len(chunks)} chunks")

        results = []
        for chunk in chunks:
            try:
                results.append(
                    self._generate_with_retry(
                        chunk, temperature, min(max_tokens, int(len(chunk) * 1.5))
                    )
                )
            except GenerationError as e:
                logger.error(f"Error processing chunk: {e}")

        if not results:
            raise GenerationError("Every chunk of the prompt failed to generate")
        return "\n\n".join(results)

    def _generate_with_retry(self, prompt: str, temperature: float, max_tokens: int) -> str:
        delay = self.retry_delay
        for attempt in range(1, self.max_attempts + 1):
            try:
                return self._complete(prompt, temperature, max_tokens)
            except self.retry_on as e:
                if attempt == self.max_attempts:
                    raise GenerationError(
                        f"Generation failed after {attempt} attempts: {e}"
                    ) from e
                logger.warning(
                    f"Retrying generation, {self.max_attempts - attempt} attempts left. Error: {e}"
                )
                self._sleep(delay)
                delay *= 1.5
                temperature = min(temperature + 0.1, 1.0)
                max_tokens = max(int(max_tokens * 0.8), 1)
        raise GenerationError("Generation was not attempted")

    def _complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        response = self.instructor.chat.completions.create(
            model=self.model,
            max_tokens=max_tokens,
            temperature=temperature,
            messages=[{"role": "user", "content": prompt}],  # type: ignore
            response_model=GeneratedText,
        )
        return response.text
