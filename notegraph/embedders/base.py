from typing import Protocol

import numpy as np


class Embedder(Protocol):
    def embed(self, text: str) -> np.ndarray: ...

    def is_available(self) -> bool:
        """Check whether the embedding backend can currently serve requests."""
        ...
