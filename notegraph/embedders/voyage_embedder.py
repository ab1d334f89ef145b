import logging

import numpy as np
import voyageai

logger = logging.getLogger(__name__)


class VoyageEmbedder:
    def __init__(self, api_key: str, model: str = "voyage-3"):
        self.client = voyageai.Client(api_key=api_key)
        self.model = model

    def embed(self, text: str) -> np.ndarray:
        result = self.client.embed(texts=[text], model=self.model, input_type="document")
        embedding = result.embeddings[0]
        return np.array(embedding, dtype=np.float32)

    def is_available(self) -> bool:
        try:
            self.embed("ping")
        except Exception as e:
            logger.warning(f"Voyage AI embeddings unavailable: {e}")
            return False
        return True
