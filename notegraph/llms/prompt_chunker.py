"""Splitting over-length prompts on sentence boundaries."""

import re


class PromptChunker:
    """Splits text into chunks of at most ``max_chars`` characters.

    Sentences are kept whole where possible; a single sentence longer than the
    limit is split on words.
    """

    def __init__(self, max_chars: int = 4000):
        self.max_chars = max_chars

    def chunk_text(self, text: str) -> list[str]:
        if len(text) <= self.max_chars:
            return [text]

        chunks = []
        current_chunk = ""

        for sentence in self._split_on_sentences(text):
            if len(current_chunk) + len(sentence) + 1 <= self.max_chars:
                current_chunk = f"{current_chunk} {sentence}" if current_chunk else sentence
                continue

            if current_chunk:
                chunks.append(current_chunk)
                current_chunk = ""

            if len(sentence) > self.max_chars:
                word_chunks = self._split_on_words(sentence)
                chunks.extend(word_chunks[:-1])
                current_chunk = word_chunks[-1]
            else:
                current_chunk = sentence

        if current_chunk:
            chunks.append(current_chunk)

        return chunks

    @staticmethod
    def _split_on_sentences(text: str) -> list[str]:
        """Split text into sentences."""
        sentences = re.split(r"(?<=[.!?])\s+", text)
        return [s.strip() for s in sentences if s.strip()]

    def _split_on_words(self, sentence: str) -> list[str]:
        chunks = []
        current = ""
        for word in sentence.split():
            if current and len(current) + len(word) + 1 > self.max_chars:
                chunks.append(current)
                current = word
            else:
                current = f"{current} {word}" if current else word
        if current:
            chunks.append(current)
        return chunks
