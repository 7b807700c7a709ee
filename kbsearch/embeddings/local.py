"""Local sentence-transformers embedding provider.

Requires the ``local`` extra (``pip install kbsearch[local]``). The model is
loaded once at construction; encoding runs in a worker thread so the event
loop stays responsive.
"""

import asyncio
from typing import List

import structlog
from sentence_transformers import SentenceTransformer

from .base import EmbeddingGenerationFailedError, EmbeddingProvider

logger = structlog.get_logger("embeddings.local")


class LocalEmbeddingProvider(EmbeddingProvider):
    """Embeddings computed in-process with a SentenceTransformer model."""

    provider_name = "local"

    DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"

    def __init__(self, model: str = DEFAULT_MODEL):
        self.model = model
        self._model = SentenceTransformer(model)
        self._dimensions = self._model.get_sentence_embedding_dimension()
        logger.info("Loaded embedding model", model_name=model, dimension=self._dimensions)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def is_available(self) -> bool:
        return True

    async def embed(self, text: str) -> List[float]:
        text = self._prepare_text(text)
        try:
            vector = await asyncio.to_thread(self._model.encode, text)
        except Exception as e:
            logger.error("Local embedding failed", model_name=self.model, error=str(e))
            raise EmbeddingGenerationFailedError(
                f"Local embedding failed: {e}",
                {"provider": self.provider_name, "model": self.model},
            ) from e
        return [float(v) for v in vector.tolist()]
