"""
Continuum Configuration Module
LLM provider configuration and pipeline settings.
"""

from .llm_providers import (
    CLAUDE_MODELS,
    # Model Definitions
    GEMINI_MODELS,
    MODEL_CATALOGS,
    OPENAI_MODELS,
    OPENROUTER_MODELS,
    AgentModelConfig,
    ClaudeConfig,
    GeminiConfig,
    LLMConfiguration,
    # Enums
    LLMProvider,
    OpenAIConfig,
    OpenRouterConfig,
    PipelineConfig,
    PipelineRole,
    # Configuration Models
    ProviderConfig,
    # Helper Functions
    create_default_config_from_env,
)

__all__ = [
    "LLMProvider",
    "PipelineRole",
    "GEMINI_MODELS",
    "OPENAI_MODELS",
    "OPENROUTER_MODELS",
    "CLAUDE_MODELS",
    "MODEL_CATALOGS",
    "ProviderConfig",
    "GeminiConfig",
    "OpenAIConfig",
    "OpenRouterConfig",
    "ClaudeConfig",
    "AgentModelConfig",
    "PipelineConfig",
    "LLMConfiguration",
    "create_default_config_from_env",
]
