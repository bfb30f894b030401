"""
Embedding Provider Abstraction for Continuum
Supports Gemini and OpenAI embedding backends plus a per-turn vector cache.
"""

import asyncio
import hashlib
import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from ..core.errors import ContinuumError, EmbeddingError, MissingCredentialError, is_auth_error

logger = logging.getLogger(__name__)


class EmbeddingProviderType(str, Enum):
    """Supported embedding providers."""
    GEMINI = "gemini"
    OPENAI = "openai"


class EmbeddingProviderInfo(BaseModel):
    """Metadata about an embedding provider."""
    provider_type: EmbeddingProviderType
    model_name: str
    dimension: int


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    # Seconds before a request is abandoned; None waits indefinitely.
    timeout: Optional[float] = None

    @property
    @abstractmethod
    def info(self) -> EmbeddingProviderInfo:
        """Get provider metadata including dimension."""
        pass

    @property
    def dimension(self) -> int:
        """Get the embedding dimension."""
        return self.info.dimension

    @property
    def provider_id(self) -> str:
        """Get a unique identifier for this provider configuration."""
        info = self.info
        return f"{info.provider_type.value}__{info.model_name}__{info.dimension}"

    @abstractmethod
    async def _embed(self, texts: List[str]) -> List[List[float]]:
        """Provider-specific embedding call."""
        pass

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings for a list of texts.

        Args:
            texts: List of texts to embed

        Returns:
            List of embedding vectors, one per input text

        Raises:
            EmbeddingError: the provider failed or returned malformed vectors
        """
        if not texts:
            return []
        try:
            if self.timeout is None:
                vectors = await self._embed(texts)
            else:
                vectors = await asyncio.wait_for(self._embed(texts), timeout=self.timeout)
        except ContinuumError:
            raise
        except asyncio.TimeoutError as e:
            raise EmbeddingError(
                f"Embedding request timed out after {self.timeout}s",
                provider=self.info.provider_type.value,
            ) from e
        except Exception as e:
            if is_auth_error(e):
                raise MissingCredentialError() from e
            raise EmbeddingError(
                f"Embedding request failed: {e}",
                provider=self.info.provider_type.value,
            ) from e

        if len(vectors) != len(texts):
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(vectors)}",
                provider=self.info.provider_type.value,
            )
        for vector in vectors:
            if len(vector) != self.dimension:
                raise EmbeddingError(
                    f"Embedding dimension {len(vector)} does not match {self.dimension}",
                    provider=self.info.provider_type.value,
                )
        return vectors

    async def embed_single(self, text: str) -> List[float]:
        """Generate embedding for a single text.

        Args:
            text: Text to embed

        Returns:
            Embedding vector
        """
        embeddings = await self.embed([text])
        return embeddings[0]


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Google Gemini embedding provider."""

    MODEL_NAME = "models/embedding-001"
    DIMENSION = 768

    def __init__(self, api_key: str, timeout: Optional[float] = None):
        self._api_key = api_key
        self.timeout = timeout
        self._configured = False

    @property
    def info(self) -> EmbeddingProviderInfo:
        return EmbeddingProviderInfo(
            provider_type=EmbeddingProviderType.GEMINI,
            model_name=self.MODEL_NAME,
            dimension=self.DIMENSION,
        )

    def _configure(self):
        if not self._configured:
            import google.generativeai as genai
            genai.configure(api_key=self._api_key)
            self._configured = True

    async def _embed(self, texts: List[str]) -> List[List[float]]:
        self._configure()
        import google.generativeai as genai

        result = await asyncio.to_thread(
            genai.embed_content,
            model=self.MODEL_NAME,
            content=texts,
            task_type="retrieval_document",
        )
        return [list(vector) for vector in result["embedding"]]


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """OpenAI embedding provider using text-embedding-3-small."""

    MODEL_NAME = "text-embedding-3-small"
    DIMENSION = 1536

    def __init__(self, api_key: str, timeout: Optional[float] = None):
        self._api_key = api_key
        self.timeout = timeout
        self._client = None

    @property
    def info(self) -> EmbeddingProviderInfo:
        return EmbeddingProviderInfo(
            provider_type=EmbeddingProviderType.OPENAI,
            model_name=self.MODEL_NAME,
            dimension=self.DIMENSION,
        )

    async def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def _embed(self, texts: List[str]) -> List[List[float]]:
        client = await self._get_client()
        response = await client.embeddings.create(
            model=self.MODEL_NAME,
            input=texts,
        )
        return [item.embedding for item in response.data]


def create_embedding_provider(
    provider_type: EmbeddingProviderType,
    api_key: Optional[str],
    timeout: Optional[float] = None,
) -> EmbeddingProvider:
    """Create an embedding provider of the requested type."""
    if not api_key:
        raise MissingCredentialError(f"No API key configured for {provider_type.value} embeddings")

    if provider_type == EmbeddingProviderType.GEMINI:
        return GeminiEmbeddingProvider(api_key, timeout=timeout)
    elif provider_type == EmbeddingProviderType.OPENAI:
        return OpenAIEmbeddingProvider(api_key, timeout=timeout)
    else:
        raise ValueError(f"Unsupported embedding provider: {provider_type}")


# ============================================================================
# Per-turn vector cache
# ============================================================================

def _content_digest(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


class EmbeddingCache:
    """
    Vectors keyed by (provider id, turn id, content digest).

    Only turns missing from the cache are sent to the provider, so a turn
    whose content was edited gets a fresh vector on the next lookup. Once
    max_entries is exceeded the least recently used vectors are dropped.
    """

    def __init__(self, max_entries: int = 10000):
        self.max_entries = max_entries
        self._vectors: "OrderedDict[Tuple[str, str, str], List[float]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._vectors)

    def clear(self) -> None:
        self._vectors.clear()

    async def get_or_embed(
        self,
        provider: EmbeddingProvider,
        items: Sequence[Tuple[str, str]],
    ) -> List[List[float]]:
        """
        Return vectors for (turn_id, content) pairs in input order,
        embedding cache misses in one batch.
        """
        provider_id = provider.provider_id
        keys = [(provider_id, item_id, _content_digest(content)) for item_id, content in items]

        # Copy hits out before awaiting the provider
        resolved: Dict[Tuple[str, str, str], List[float]] = {}
        missing: Dict[Tuple[str, str, str], str] = {}
        for key, (_, content) in zip(keys, items):
            if key in self._vectors:
                resolved[key] = self._vectors[key]
            elif key not in missing:
                missing[key] = content

        if missing:
            logger.debug(f"[EmbeddingCache] {len(missing)} misses, {len(resolved)} hits")
            vectors = await provider.embed(list(missing.values()))
            resolved.update(zip(missing.keys(), vectors))

        result = [resolved[key] for key in keys]

        for key, vector in zip(keys, result):
            self._vectors[key] = vector
            self._vectors.move_to_end(key)
        while len(self._vectors) > self.max_entries:
            self._vectors.popitem(last=False)

        return result
