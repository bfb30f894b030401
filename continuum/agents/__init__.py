"""
Continuum Agents Module
LLM clients and the agents that make up the narrative pipeline.
"""

from .base import (
    BaseAgent,
    ClaudeClient,
    GeminiClient,
    LLMClient,
    ModelResponse,
    OpenAIClient,
    create_llm_client,
)
from .classification_agent import ClassificationAgent
from .generation_agent import GenerationAgent
from .location_agent import (
    ExplicitLocationStrategy,
    InferredLocationStrategy,
    LocationResolution,
    LocationSource,
    LocationStrategy,
    LocationTracker,
)
from .proofreader_agent import ProofreaderAgent, parse_verdict
from .query_agent import QueryAgent
from .smart_rag_agent import SmartRagAgent
from .summary_agent import SummaryAgent

__all__ = [
    "BaseAgent",
    "LLMClient",
    "ModelResponse",
    "GeminiClient",
    "OpenAIClient",
    "ClaudeClient",
    "create_llm_client",
    "QueryAgent",
    "SmartRagAgent",
    "GenerationAgent",
    "ProofreaderAgent",
    "parse_verdict",
    "LocationTracker",
    "LocationStrategy",
    "ExplicitLocationStrategy",
    "InferredLocationStrategy",
    "LocationResolution",
    "LocationSource",
    "SummaryAgent",
    "ClassificationAgent",
]
