"""
Continuum Core Module
Error taxonomy, vector math, memory consolidation and the request orchestrator.
"""

from .errors import (
    ContinuumError,
    EmbeddingError,
    MissingCredentialError,
    ProviderError,
    SafetyBlockError,
    SettingsNotFoundError,
)
from .similarity import cosine_similarity

__all__ = [
    "ContinuumError",
    "MissingCredentialError",
    "SettingsNotFoundError",
    "ProviderError",
    "EmbeddingError",
    "SafetyBlockError",
    "cosine_similarity",
]
