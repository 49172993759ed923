"""
Embedding Service

Turns one text into one vector through a LangChain Embeddings backend
(Ollama or an OpenAI-compatible API).
"""
import asyncio
import logging
import math
from typing import Any, List, Optional

from ...errors import EmbeddingShapeError, EmbeddingTimeout, EmbeddingUnavailable
from .rag_config_service import EmbeddingConfig

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Single-text embedding client with deadline and shape checks"""

    def __init__(
        self,
        embeddings: Any = None,
        *,
        config: Optional[EmbeddingConfig] = None,
        ollama_url: str = "http://localhost:11434",
        default_model: str = "nomic-embed-text",
    ):
        self.config = config or EmbeddingConfig()
        self.ollama_url = ollama_url
        self.model = self.config.model or default_model
        self._embeddings = embeddings if embeddings is not None else self.get_embedding_function()

    def get_embedding_function(self):
        """
        Build the LangChain Embeddings instance described by config.

        Returns:
            OllamaEmbeddings or OpenAIEmbeddings instance
        """
        config = self.config
        if config.provider == "ollama":
            from langchain_ollama import OllamaEmbeddings

            return OllamaEmbeddings(
                model=self.model,
                base_url=config.base_url or self.ollama_url,
            )
        if config.provider == "api":
            from langchain_openai import OpenAIEmbeddings

            kwargs = {
                "model": self.model,
                # API key is optional for local OpenAI-compatible endpoints
                "api_key": config.api_key or "local",
                "check_embedding_ctx_length": False,
                "max_retries": 0,
            }
            if config.base_url:
                kwargs["base_url"] = config.base_url
            return OpenAIEmbeddings(**kwargs)

        raise ValueError(f"Unknown embedding provider: {config.provider}")

    @staticmethod
    def _extract_vector(raw: Any) -> List[float]:
        """Validate that the backend returned a flat, finite numeric vector."""
        if isinstance(raw, dict) and "embedding" in raw:
            raw = raw["embedding"]
        if not isinstance(raw, (list, tuple)):
            raise EmbeddingShapeError(
                f"Embedding response is not a sequence: {type(raw).__name__}"
            )
        if not raw:
            raise EmbeddingShapeError("Embedding response is empty")

        vector: List[float] = []
        for index, item in enumerate(raw):
            if isinstance(item, bool) or not isinstance(item, (int, float)):
                raise EmbeddingShapeError(
                    f"Embedding element {index} is not numeric: {type(item).__name__}"
                )
            value = float(item)
            if not math.isfinite(value):
                raise EmbeddingShapeError(f"Embedding element {index} is not finite")
            vector.append(value)
        return vector

    async def embed(self, text: str, timeout: Optional[float] = None) -> List[float]:
        """
        Embed one text.

        Args:
            text: Text to embed
            timeout: Deadline in seconds for the remote call

        Returns:
            Embedding vector

        Raises:
            EmbeddingUnavailable: Remote call failed
            EmbeddingTimeout: Remote call exceeded the deadline
            EmbeddingShapeError: Response is not a numeric sequence
        """
        try:
            call = self._embeddings.aembed_query(text or "")
            if timeout is not None:
                raw = await asyncio.wait_for(call, timeout)
            else:
                raw = await call
        except asyncio.TimeoutError:
            raise EmbeddingTimeout(timeout) from None
        except Exception as e:
            logger.warning(f"Embedding call failed: {e}")
            raise EmbeddingUnavailable(f"Embedding service error: {e}") from e

        return self._extract_vector(raw)
