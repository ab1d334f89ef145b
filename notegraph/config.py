from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Storage settings
    local_note_store_path: str = "data/notes.json"
    default_owner_id: str = "default"

    # Embedding settings
    embedding_provider: Literal["voyage", "openai", "none"] = "voyage"
    voyage_ai_api_key: str = ""
    openai_api_key: str = ""

    # Generation settings
    anthropic_api_key: str = ""
    generation_model: str = "claude-3-5-sonnet-20241022"
    generation_temperature: float = 0.7
    generation_max_tokens: int = 2048
    generation_max_attempts: int = 3
    generation_retry_delay: float = 1.0  # seconds, grows by 1.5x per retry
    max_chunk_chars: int = 4000
    max_context_chars: int = 8000

    # Knowledge graph settings
    similarity_threshold: float = 0.7
    sweep_interval_minutes: float = 15
    default_operation_timeout: float = 60  # seconds
    long_operation_timeout: float = 120  # seconds

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()
