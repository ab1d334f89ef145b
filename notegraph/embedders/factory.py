from typing import Literal

from notegraph.embedders.base import Embedder
from notegraph.embedders.openai_embedder import OpenAIEmbedder
from notegraph.embedders.voyage_embedder import VoyageEmbedder


def build_embedder(
    provider: Literal["voyage", "openai", "none"],
    voyage_ai_api_key: str = "",
    openai_api_key: str = "",
) -> Embedder | None:
    """Create the configured embedding provider, or None when it has no API key."""
    if provider == "voyage" and voyage_ai_api_key:
        return VoyageEmbedder(api_key=voyage_ai_api_key)
    if provider == "openai" and openai_api_key:
        return OpenAIEmbedder(api_key=openai_api_key)
    return None
