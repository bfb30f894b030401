"""
Continuum
Narrative agent pipeline: retrieval, distillation, compliant generation
and long-term memory consolidation for an interactive story.
"""

from .config import LLMConfiguration, PipelineConfig, create_default_config_from_env
from .core.errors import (
    ContinuumError,
    MissingCredentialError,
    ProviderError,
    SettingsNotFoundError,
)
from .core.orchestrator import NarrativeOrchestrator, PipelineState, ProviderBundle, build_provider_bundle
from .models import PipelineResult, RuntimeSettings, Turn
from .services import InMemoryStorage, SupabaseStorage

__version__ = "0.1.0"

__all__ = [
    "NarrativeOrchestrator",
    "PipelineState",
    "ProviderBundle",
    "build_provider_bundle",
    "LLMConfiguration",
    "PipelineConfig",
    "create_default_config_from_env",
    "PipelineResult",
    "RuntimeSettings",
    "Turn",
    "InMemoryStorage",
    "SupabaseStorage",
    "ContinuumError",
    "MissingCredentialError",
    "SettingsNotFoundError",
    "ProviderError",
]
