"""
Base Agent Implementation for Continuum
Provides the LLM client layer and common functionality for all pipeline agents.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Optional, Sequence, TypeVar, Union

from ..config import LLMConfiguration, LLMProvider
from ..core.errors import (
    ContinuumError,
    MissingCredentialError,
    ProviderError,
    SafetyBlockError,
    is_auth_error,
)
from ..models import AgentEvent, HistoryEntry

logger = logging.getLogger(__name__)

Contents = Union[str, Sequence[HistoryEntry]]
T = TypeVar("T")

SAFETY_CATEGORIES = (
    "HARM_CATEGORY_HARASSMENT",
    "HARM_CATEGORY_HATE_SPEECH",
    "HARM_CATEGORY_SEXUALLY_EXPLICIT",
    "HARM_CATEGORY_DANGEROUS_CONTENT",
)

# Content filtering is delegated to the proofreader, not to the provider.
DEFAULT_SAFETY_SETTINGS: List[Dict[str, str]] = [
    {"category": category, "threshold": "BLOCK_NONE"} for category in SAFETY_CATEGORIES
]


@dataclass
class ModelResponse:
    """Unified response from any LLM provider."""
    text: str
    blocked: bool = False
    model: str = ""
    provider: Optional[LLMProvider] = None
    finish_reason: str = "stop"
    usage: Dict[str, int] = field(default_factory=dict)


def translate_provider_error(
    error: BaseException,
    provider: Optional[LLMProvider] = None,
) -> ContinuumError:
    """Map an SDK exception onto the Continuum error taxonomy."""
    if isinstance(error, ContinuumError):
        return error
    if is_auth_error(error):
        return MissingCredentialError()
    return ProviderError(
        f"Failed to generate response: {str(error) or type(error).__name__}",
        provider=provider.value if provider else None,
    )


def _enum_name(value: Any) -> str:
    """Gemini reports reasons as enums or ints depending on SDK version."""
    if value is None:
        return ""
    return str(getattr(value, "name", value))


class LLMClient(ABC):
    """Abstract base class for LLM clients."""

    provider: LLMProvider

    def __init__(self, api_key: str, model: str, timeout: Optional[float] = None):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    async def _with_timeout(self, call: Awaitable[T]) -> T:
        """Await a provider call, failing with ProviderError once the timeout elapses."""
        if self.timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ProviderError(
                f"Request to {self.provider.value} timed out after {self.timeout}s",
                provider=self.provider.value,
            ) from e

    @abstractmethod
    async def generate(
        self,
        contents: Contents,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        safety_settings: Optional[List[Dict[str, str]]] = None,
    ) -> ModelResponse:
        """Generate a response from the LLM."""
        pass


class GeminiClient(LLMClient):
    """Google Gemini API client implementation."""

    provider = LLMProvider.GEMINI

    def __init__(self, api_key: str, model: str, timeout: Optional[float] = None):
        super().__init__(api_key, model, timeout)
        self._configured = False

    def _configure(self) -> None:
        if not self._configured:
            import google.generativeai as genai
            genai.configure(api_key=self.api_key)
            self._configured = True

    @staticmethod
    def _to_gemini_contents(contents: Contents) -> Any:
        if isinstance(contents, str):
            return contents
        return [{"role": entry.role, "parts": [entry.content]} for entry in contents]

    @staticmethod
    def _is_blocked(response: Any) -> bool:
        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and _enum_name(getattr(feedback, "block_reason", None)) == "SAFETY":
            return True
        candidates = getattr(response, "candidates", None) or []
        if candidates and _enum_name(getattr(candidates[0], "finish_reason", None)) == "SAFETY":
            return True
        return False

    @staticmethod
    def _safe_text(response: Any) -> str:
        # response.text raises when the candidate carries no parts
        try:
            return response.text or ""
        except ValueError:
            return ""

    async def generate(
        self,
        contents: Contents,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        safety_settings: Optional[List[Dict[str, str]]] = None,
    ) -> ModelResponse:
        self._configure()
        import google.generativeai as genai
        from google.generativeai.types import BlockedPromptException, StopCandidateException

        model = genai.GenerativeModel(
            self.model,
            safety_settings=safety_settings or DEFAULT_SAFETY_SETTINGS,
        )
        generation_config: Dict[str, Any] = {"temperature": temperature}
        if max_tokens:
            generation_config["max_output_tokens"] = max_tokens

        try:
            response = await self._with_timeout(model.generate_content_async(
                self._to_gemini_contents(contents),
                generation_config=generation_config,
            ))
        except (BlockedPromptException, StopCandidateException) as e:
            raise SafetyBlockError(str(e), provider=self.provider.value) from e
        except Exception as e:
            raise translate_provider_error(e, self.provider) from e

        if self._is_blocked(response):
            return ModelResponse(
                text="",
                blocked=True,
                model=self.model,
                provider=self.provider,
                finish_reason="SAFETY",
            )

        usage = getattr(response, "usage_metadata", None)
        return ModelResponse(
            text=self._safe_text(response),
            model=self.model,
            provider=self.provider,
            usage={
                "prompt_tokens": getattr(usage, "prompt_token_count", 0) or 0,
                "completion_tokens": getattr(usage, "candidates_token_count", 0) or 0,
                "total_tokens": getattr(usage, "total_token_count", 0) or 0,
            },
        )


class OpenAIClient(LLMClient):
    """OpenAI API client implementation (also serves OpenRouter)."""

    provider = LLMProvider.OPENAI

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        provider: LLMProvider = LLMProvider.OPENAI,
        timeout: Optional[float] = None,
    ):
        super().__init__(api_key, model, timeout)
        self.base_url = base_url
        self.provider = provider
        self._client = None

    async def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        return self._client

    @staticmethod
    def _to_messages(contents: Contents) -> List[Dict[str, str]]:
        if isinstance(contents, str):
            return [{"role": "user", "content": contents}]
        return [
            {"role": "user" if entry.role == "user" else "assistant", "content": entry.content}
            for entry in contents
        ]

    async def generate(
        self,
        contents: Contents,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        safety_settings: Optional[List[Dict[str, str]]] = None,
    ) -> ModelResponse:
        client = await self._get_client()
        try:
            response = await self._with_timeout(client.chat.completions.create(
                model=self.model,
                messages=self._to_messages(contents),
                temperature=temperature,
                max_tokens=max_tokens,
            ))
        except Exception as e:
            raise translate_provider_error(e, self.provider) from e

        choice = response.choices[0]
        finish_reason = choice.finish_reason or "stop"
        return ModelResponse(
            text=choice.message.content or "",
            blocked=finish_reason == "content_filter",
            model=self.model,
            provider=self.provider,
            finish_reason=finish_reason,
            usage={
                "prompt_tokens": response.usage.prompt_tokens if response.usage else 0,
                "completion_tokens": response.usage.completion_tokens if response.usage else 0,
                "total_tokens": response.usage.total_tokens if response.usage else 0,
            },
        )


class ClaudeClient(LLMClient):
    """Anthropic Claude API client implementation."""

    provider = LLMProvider.CLAUDE

    def __init__(self, api_key: str, model: str, timeout: Optional[float] = None):
        super().__init__(api_key, model, timeout)
        self._client = None

    async def _get_client(self):
        if self._client is None:
            from anthropic import AsyncAnthropic
            self._client = AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        contents: Contents,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        safety_settings: Optional[List[Dict[str, str]]] = None,
    ) -> ModelResponse:
        client = await self._get_client()
        messages = OpenAIClient._to_messages(contents)
        try:
            response = await self._with_timeout(client.messages.create(
                model=self.model,
                max_tokens=max_tokens or 4096,
                messages=messages,
                temperature=temperature,
            ))
        except Exception as e:
            raise translate_provider_error(e, self.provider) from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        stop_reason = response.stop_reason or "stop"
        return ModelResponse(
            text=text,
            blocked=stop_reason == "refusal",
            model=self.model,
            provider=self.provider,
            finish_reason=stop_reason,
            usage={
                "prompt_tokens": response.usage.input_tokens if response.usage else 0,
                "completion_tokens": response.usage.output_tokens if response.usage else 0,
                "total_tokens": (
                    (response.usage.input_tokens + response.usage.output_tokens)
                    if response.usage else 0
                ),
            },
        )


def create_llm_client(
    provider: LLMProvider,
    config: LLMConfiguration,
    model: str,
    api_key: Optional[str] = None,
) -> LLMClient:
    """
    Factory function to create the appropriate LLM client.

    An explicit api_key (from runtime settings or the caller) wins over the
    key held in the provider configuration. Every call is bounded by
    config.timeout_seconds.
    """
    key = api_key or config.resolve_api_key(provider)
    if not key:
        raise MissingCredentialError(f"No API key configured for provider {provider.value}")
    timeout = float(config.timeout_seconds)

    if provider == LLMProvider.GEMINI:
        return GeminiClient(api_key=key, model=model, timeout=timeout)

    elif provider == LLMProvider.OPENAI:
        base_url = config.openai.base_url if config.openai else "https://api.openai.com/v1"
        return OpenAIClient(api_key=key, model=model, base_url=base_url, timeout=timeout)

    elif provider == LLMProvider.OPENROUTER:
        base_url = config.openrouter.base_url if config.openrouter else "https://openrouter.ai/api/v1"
        return OpenAIClient(  # OpenRouter uses OpenAI-compatible API
            api_key=key,
            model=model,
            base_url=base_url,
            provider=LLMProvider.OPENROUTER,
            timeout=timeout,
        )

    elif provider == LLMProvider.CLAUDE:
        return ClaudeClient(api_key=key, model=model, timeout=timeout)

    else:
        raise ValueError(f"Unsupported provider: {provider}")


def estimate_tokens(text: str) -> int:
    """Rough estimate: one token is about four characters."""
    return -(-len(text) // 4)


class BaseAgent(ABC):
    """Base class for all Continuum agents."""

    def __init__(self, name: str, llm_client: LLMClient):
        self.name = name
        self.llm_client = llm_client
        self.events: List[AgentEvent] = []

    async def generate_with_logging(
        self,
        contents: Contents,
        run_id: str,
        temperature: float = 0.7,
        action: str = "generate",
        attempt: int = 1,
        max_tokens: Optional[int] = None,
    ) -> ModelResponse:
        """Generate a response and record an audit event for it."""
        start_time = time.time()

        response = await self.llm_client.generate(
            contents,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        duration_ms = int((time.time() - start_time) * 1000)
        input_text = contents if isinstance(contents, str) else "\n".join(e.content for e in contents)

        self.events.append(AgentEvent(
            run_id=run_id,
            agent_name=self.name,
            action=action,
            input_summary=input_text[:500] + "..." if len(input_text) > 500 else input_text,
            output_summary=response.text[:500] + "..." if len(response.text) > 500 else response.text,
            duration_ms=duration_ms,
            attempt=attempt,
        ))
        logger.debug(
            f"[{self.name}] {action} took {duration_ms}ms, ~{estimate_tokens(input_text)} input tokens"
        )

        return response

    def drain_events(self) -> List[AgentEvent]:
        """Return and clear the recorded events."""
        events, self.events = self.events, []
        return events
