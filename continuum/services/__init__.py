"""
Continuum Services Module
External service integrations.
"""

from .embedding_providers import (
    EmbeddingCache,
    EmbeddingProvider,
    EmbeddingProviderInfo,
    EmbeddingProviderType,
    GeminiEmbeddingProvider,
    OpenAIEmbeddingProvider,
    create_embedding_provider,
)
from .storage import InMemoryStorage, StorageBackend
from .supabase_storage import StorageNotConnectedError, SupabaseStorage

__all__ = [
    "EmbeddingCache",
    "EmbeddingProvider",
    "EmbeddingProviderInfo",
    "EmbeddingProviderType",
    "GeminiEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "create_embedding_provider",
    "StorageBackend",
    "InMemoryStorage",
    "SupabaseStorage",
    "StorageNotConnectedError",
]
