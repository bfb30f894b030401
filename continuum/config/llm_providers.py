"""
LLM Provider Configuration for Continuum
Supports Google Gemini (default), OpenAI, OpenRouter and Anthropic Claude.
"""

import os
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, SecretStr, model_validator


class LLMProvider(str, Enum):
    """Supported LLM providers."""
    GEMINI = "gemini"
    OPENAI = "openai"
    OPENROUTER = "openrouter"
    CLAUDE = "claude"


class PipelineRole(str, Enum):
    """Pipeline stages that talk to a language model."""
    DISTILLER = "distiller"
    WRITER = "writer"
    PROOFREADER = "proofreader"
    LOCATOR = "locator"
    SUMMARIZER = "summarizer"
    CLASSIFIER = "classifier"


# ============================================================================
# Model Definitions by Provider
# ============================================================================

GEMINI_MODELS: Dict[str, Dict[str, Any]] = {
    "gemini-3-pro-preview": {
        "name": "Gemini 3 Pro (preview)",
        "description": "Long-form prose generation for story continuations",
        "context_window": 1000000,
        "max_output": 65536,
    },
    "gemini-3-flash-preview": {
        "name": "Gemini 3 Flash (preview)",
        "description": "Fast extraction and tagging calls",
        "context_window": 1000000,
        "max_output": 65536,
    },
    "gemini-2.5-pro": {
        "name": "Gemini 2.5 Pro",
        "description": "Careful reading for context selection and compliance review",
        "context_window": 1000000,
        "max_output": 65536,
    },
    "gemini-2.5-flash": {
        "name": "Gemini 2.5 Flash",
        "description": "Cheap summarization",
        "context_window": 1000000,
        "max_output": 65536,
    },
}

OPENAI_MODELS: Dict[str, Dict[str, Any]] = {
    "gpt-4o": {
        "name": "GPT-4o",
        "description": "Most capable GPT-4 model, multimodal",
        "context_window": 128000,
        "max_output": 16384,
    },
    "gpt-4o-mini": {
        "name": "GPT-4o Mini",
        "description": "Smaller, faster, cheaper GPT-4o variant",
        "context_window": 128000,
        "max_output": 16384,
    },
}

OPENROUTER_MODELS: Dict[str, Dict[str, Any]] = {
    "anthropic/claude-3.5-sonnet": {
        "name": "Claude 3.5 Sonnet (via OpenRouter)",
        "description": "Anthropic Claude 3.5 Sonnet through OpenRouter",
        "context_window": 200000,
        "max_output": 8192,
    },
    "google/gemini-2.0-flash-exp": {
        "name": "Gemini 2.0 Flash (via OpenRouter)",
        "description": "Google Gemini 2.0 Flash through OpenRouter",
        "context_window": 1000000,
        "max_output": 8192,
    },
}

CLAUDE_MODELS: Dict[str, Dict[str, Any]] = {
    "claude-3-5-sonnet-20241022": {
        "name": "Claude 3.5 Sonnet",
        "description": "Strong prose and careful instruction following",
        "context_window": 200000,
        "max_output": 8192,
    },
    "claude-3-5-haiku-20241022": {
        "name": "Claude 3.5 Haiku",
        "description": "Fast and cheap helper model",
        "context_window": 200000,
        "max_output": 8192,
    },
}

MODEL_CATALOGS: Dict[LLMProvider, Dict[str, Dict[str, Any]]] = {
    LLMProvider.GEMINI: GEMINI_MODELS,
    LLMProvider.OPENAI: OPENAI_MODELS,
    LLMProvider.OPENROUTER: OPENROUTER_MODELS,
    LLMProvider.CLAUDE: CLAUDE_MODELS,
}


# ============================================================================
# Provider Configuration Models
# ============================================================================

class ProviderConfig(BaseModel):
    """Base configuration for an LLM provider."""
    provider: LLMProvider
    api_key: SecretStr
    base_url: Optional[str] = None
    default_model: str
    enabled: bool = True


class GeminiConfig(ProviderConfig):
    """Google Gemini-specific configuration."""
    provider: LLMProvider = LLMProvider.GEMINI
    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    default_model: str = "gemini-2.5-pro"


class OpenAIConfig(ProviderConfig):
    """OpenAI-specific configuration."""
    provider: LLMProvider = LLMProvider.OPENAI
    base_url: str = "https://api.openai.com/v1"
    default_model: str = "gpt-4o"


class OpenRouterConfig(ProviderConfig):
    """OpenRouter-specific configuration."""
    provider: LLMProvider = LLMProvider.OPENROUTER
    base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "anthropic/claude-3.5-sonnet"


class ClaudeConfig(ProviderConfig):
    """Anthropic Claude-specific configuration."""
    provider: LLMProvider = LLMProvider.CLAUDE
    base_url: str = "https://api.anthropic.com/v1"
    default_model: str = "claude-3-5-sonnet-20241022"


# ============================================================================
# Agent Model Assignment
# ============================================================================

class AgentModelConfig(BaseModel):
    """Configuration for which model each pipeline role uses."""
    distiller_provider: LLMProvider = LLMProvider.GEMINI
    distiller_model: str = "gemini-2.5-pro"

    writer_provider: LLMProvider = LLMProvider.GEMINI
    writer_model: str = "gemini-3-pro-preview"

    proofreader_provider: LLMProvider = LLMProvider.GEMINI
    proofreader_model: str = "gemini-2.5-pro"

    locator_provider: LLMProvider = LLMProvider.GEMINI
    locator_model: str = "gemini-3-flash-preview"

    summarizer_provider: LLMProvider = LLMProvider.GEMINI
    summarizer_model: str = "gemini-2.5-flash"

    classifier_provider: LLMProvider = LLMProvider.GEMINI
    classifier_model: str = "gemini-3-flash-preview"

    embedding_provider: LLMProvider = LLMProvider.GEMINI

    def for_role(self, role: PipelineRole) -> tuple[LLMProvider, str]:
        """Return the (provider, model) pair assigned to a pipeline role."""
        return (
            getattr(self, f"{role.value}_provider"),
            getattr(self, f"{role.value}_model"),
        )


# ============================================================================
# Pipeline Tunables
# ============================================================================

class PipelineConfig(BaseModel):
    """Constants that shape retrieval, review and consolidation."""

    # Keyword retrieval
    min_keyword_length: int = Field(default=3, ge=1)
    few_keywords_threshold: int = Field(default=5, ge=1)
    keyword_cap_few: int = Field(default=15, ge=1)
    keyword_cap_many: int = Field(default=10, ge=1)

    # Semantic retrieval
    similarity_threshold: float = Field(default=0.1, ge=-1.0, le=1.0)
    semantic_cap: int = Field(default=15, ge=0)

    # Merge
    retrieval_cap: int = Field(default=100, ge=1)

    # Context windows
    recent_history_window: int = Field(default=5, ge=0)
    conversation_history_window: int = Field(default=20, ge=0)

    # Compliance loop
    max_generation_attempts: int = Field(default=2, ge=1)

    # Location tracking
    unknown_location: str = "Unknown"
    location_header_lines: int = Field(default=5, ge=1)
    min_location_length: int = Field(default=5, ge=0)

    # Memory consolidation
    consolidation_interval: int = Field(default=4, ge=1)
    default_importance: int = Field(default=5, ge=1, le=10)
    background_consolidation: bool = True
    summarization_attempts: int = Field(default=3, ge=1)
    backoff_base_seconds: float = Field(default=1.0, ge=0.0)
    backoff_cap_seconds: float = Field(default=30.0, ge=0.0)
    backoff_jitter_seconds: float = Field(default=1.0, ge=0.0)

    @model_validator(mode="after")
    def _check_caps(self) -> "PipelineConfig":
        if self.backoff_cap_seconds < self.backoff_base_seconds:
            raise ValueError("backoff_cap_seconds must be >= backoff_base_seconds")
        return self


# ============================================================================
# Master Configuration
# ============================================================================

class LLMConfiguration(BaseModel):
    """Master configuration with all providers and pipeline tunables."""

    # Provider configurations (keys may also come from runtime settings)
    gemini: Optional[GeminiConfig] = None
    openai: Optional[OpenAIConfig] = None
    openrouter: Optional[OpenRouterConfig] = None
    claude: Optional[ClaudeConfig] = None

    agent_models: AgentModelConfig = Field(default_factory=AgentModelConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    # Global settings
    temperature: float = Field(default=0.8, ge=0.0, le=2.0)  # writer sampling temperature
    timeout_seconds: int = Field(default=120, ge=30, le=600)  # per provider call

    def get_provider_config(self, provider: LLMProvider) -> Optional[ProviderConfig]:
        """Get configuration for a specific provider."""
        provider_map = {
            LLMProvider.GEMINI: self.gemini,
            LLMProvider.OPENAI: self.openai,
            LLMProvider.OPENROUTER: self.openrouter,
            LLMProvider.CLAUDE: self.claude,
        }
        return provider_map.get(provider)

    def get_enabled_providers(self) -> List[LLMProvider]:
        """Get list of enabled providers."""
        enabled = []
        for provider in LLMProvider:
            provider_config = self.get_provider_config(provider)
            if provider_config and provider_config.enabled:
                enabled.append(provider)
        return enabled

    def resolve_api_key(self, provider: LLMProvider) -> Optional[str]:
        """Return the configured key for a provider, if any."""
        cfg = self.get_provider_config(provider)
        if cfg is None or not cfg.enabled:
            return None
        return cfg.api_key.get_secret_value() or None

    def validate_agent_models(self) -> List[str]:
        """List role assignments whose model is not in the provider's catalog."""
        errors = []
        for role in PipelineRole:
            provider, model = self.agent_models.for_role(role)
            provider_config = self.get_provider_config(provider)
            if provider_config is not None and not provider_config.enabled:
                errors.append(f"{role.value}: Provider {provider.value} is disabled")
            elif model not in MODEL_CATALOGS[provider]:
                errors.append(f"{role.value}: Model {model} not available for {provider.value}")
        return errors


# ============================================================================
# Helper Functions
# ============================================================================

def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else None


def create_default_config_from_env() -> LLMConfiguration:
    """Create configuration from environment variables."""
    config = LLMConfiguration()

    # Gemini
    if os.getenv("GEMINI_API_KEY"):
        config.gemini = GeminiConfig(
            api_key=SecretStr(os.getenv("GEMINI_API_KEY")),
        )

    # OpenAI
    if os.getenv("OPENAI_API_KEY"):
        config.openai = OpenAIConfig(
            api_key=SecretStr(os.getenv("OPENAI_API_KEY")),
        )

    # OpenRouter
    if os.getenv("OPENROUTER_API_KEY"):
        config.openrouter = OpenRouterConfig(
            api_key=SecretStr(os.getenv("OPENROUTER_API_KEY")),
        )

    # Claude
    if os.getenv("ANTHROPIC_API_KEY"):
        config.claude = ClaudeConfig(
            api_key=SecretStr(os.getenv("ANTHROPIC_API_KEY")),
        )

    # Pipeline overrides
    overrides = {
        "max_generation_attempts": _env_int("CONTINUUM_MAX_GENERATION_ATTEMPTS"),
        "consolidation_interval": _env_int("CONTINUUM_CONSOLIDATION_INTERVAL"),
        "retrieval_cap": _env_int("CONTINUUM_RETRIEVAL_CAP"),
        "conversation_history_window": _env_int("CONTINUUM_HISTORY_WINDOW"),
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if os.getenv("CONTINUUM_BACKGROUND_CONSOLIDATION"):
        overrides["background_consolidation"] = (
            os.getenv("CONTINUUM_BACKGROUND_CONSOLIDATION", "").lower() in ("1", "true", "yes")
        )
    if overrides:
        config.pipeline = PipelineConfig(**{**config.pipeline.model_dump(), **overrides})

    return config
