from typing import Protocol


class GenerationService(Protocol):
    def generate(self, prompt: str, temperature: float = 0.7, max_tokens: int = 2048) -> str:
        """Generate text for a prompt, splitting long prompts and retrying transient failures."""
        ...
