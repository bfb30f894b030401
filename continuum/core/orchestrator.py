"""
Narrative Orchestrator for Continuum

Drives one user request through retrieval, distillation, generation,
compliance review, location tracking and persistence, then schedules memory
consolidation on the turn-count boundary.

Pipeline:
    START -> RETRIEVE -> DISTILL -> GENERATE -> REVIEW -> ACCEPT
                                       ^          |
                                       +- RETRY <-+
    ACCEPT -> LOCATE_AND_PERSIST -> DONE
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, TypeVar

from ..agents.base import BaseAgent, LLMClient, create_llm_client
from ..agents.classification_agent import ClassificationAgent
from ..agents.generation_agent import GenerationAgent
from ..agents.location_agent import LocationTracker
from ..agents.proofreader_agent import ProofreaderAgent
from ..agents.query_agent import QueryAgent
from ..agents.smart_rag_agent import SmartRagAgent
from ..agents.summary_agent import SummaryAgent
from ..config import LLMConfiguration, LLMProvider, PipelineRole
from ..models import (
    AgentEvent,
    GenerationContext,
    HistoryEntry,
    MemoryLogEntry,
    PipelineResult,
    RuntimeSettings,
    Turn,
    TurnRole,
)
from ..prompts import SAFETY_BLOCK_RESPONSE
from ..services.embedding_providers import (
    EmbeddingCache,
    EmbeddingProvider,
    EmbeddingProviderType,
    create_embedding_provider,
)
from ..services.storage import StorageBackend
from .consolidation import MemoryConsolidator, should_consolidate
from .errors import MissingCredentialError, SettingsNotFoundError
from .recall import RecallResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PipelineState(str, Enum):
    START = "start"
    RETRIEVE = "retrieve"
    DISTILL = "distill"
    GENERATE = "generate"
    REVIEW = "review"
    RETRY = "retry"
    ACCEPT = "accept"
    LOCATE_AND_PERSIST = "locate_and_persist"
    DONE = "done"


@dataclass
class ProviderBundle:
    """One language-model client per pipeline role plus the embedding backend."""
    distiller: LLMClient
    writer: LLMClient
    proofreader: LLMClient
    locator: LLMClient
    summarizer: LLMClient
    classifier: LLMClient
    embeddings: Optional[EmbeddingProvider] = None


def build_provider_bundle(config: LLMConfiguration, api_key: str) -> ProviderBundle:
    """
    Create provider clients for a request. The runtime key is a Gemini key;
    roles assigned to other providers use the key from their own config.
    """
    models = config.agent_models

    def client_for(role: PipelineRole) -> LLMClient:
        provider, model = models.for_role(role)
        key = api_key if provider == LLMProvider.GEMINI else None
        return create_llm_client(provider, config, model, api_key=key)

    embeddings = None
    embedding_key = (
        api_key if models.embedding_provider == LLMProvider.GEMINI
        else config.resolve_api_key(models.embedding_provider)
    )
    if embedding_key:
        embeddings = create_embedding_provider(
            EmbeddingProviderType(models.embedding_provider.value),
            embedding_key,
            timeout=float(config.timeout_seconds),
        )
    else:
        logger.warning("[Orchestrator] No embedding key configured, semantic search disabled")

    return ProviderBundle(
        distiller=client_for(PipelineRole.DISTILLER),
        writer=client_for(PipelineRole.WRITER),
        proofreader=client_for(PipelineRole.PROOFREADER),
        locator=client_for(PipelineRole.LOCATOR),
        summarizer=client_for(PipelineRole.SUMMARIZER),
        classifier=client_for(PipelineRole.CLASSIFIER),
        embeddings=embeddings,
    )


@dataclass
class PipelineAgents:
    query: QueryAgent
    distiller: SmartRagAgent
    writer: GenerationAgent
    proofreader: ProofreaderAgent
    locator: LocationTracker
    consolidator: MemoryConsolidator
    recall: RecallResolver

    def llm_agents(self) -> List[BaseAgent]:
        return [self.distiller, self.writer, self.proofreader, *self.locator.agents]


def _tail(items: Sequence[T], count: int) -> List[T]:
    return list(items[-count:]) if count > 0 else []


class NarrativeOrchestrator:
    """
    Coordinates the per-request pipeline.

    Storage is the only state shared across requests. Provider clients and
    agents are built fresh for every request from the resolved credential.
    """

    def __init__(
        self,
        storage: StorageBackend,
        config: Optional[LLMConfiguration] = None,
        provider_factory: Optional[Callable[[str], ProviderBundle]] = None,
        embedding_cache: Optional[EmbeddingCache] = None,
    ):
        self.storage = storage
        self.config = config or LLMConfiguration()
        self.provider_factory = provider_factory or (
            lambda api_key: build_provider_bundle(self.config, api_key)
        )
        self.embedding_cache = embedding_cache or EmbeddingCache()
        self.state = PipelineState.START
        self._state_trail: List[str] = []
        self._consolidation_task: Optional[asyncio.Task] = None

    @property
    def pipeline(self):
        return self.config.pipeline

    def _transition(self, state: PipelineState) -> None:
        self.state = state
        self._state_trail.append(state.value)
        logger.debug(f"[Orchestrator] -> {state.value}")

    def _resolve_api_key(self, settings: RuntimeSettings, client_api_key: Optional[str]) -> str:
        key = client_api_key
        if not key and settings.provider_api_key is not None:
            key = settings.provider_api_key.get_secret_value()
        if not key:
            key = self.config.resolve_api_key(self.config.agent_models.writer_provider)
        if not key:
            raise MissingCredentialError()
        return key

    def _build_agents(self, providers: ProviderBundle) -> PipelineAgents:
        pipeline = self.pipeline
        return PipelineAgents(
            query=QueryAgent(providers.embeddings, pipeline, self.embedding_cache),
            distiller=SmartRagAgent(providers.distiller),
            writer=GenerationAgent(providers.writer, temperature=self.config.temperature),
            proofreader=ProofreaderAgent(providers.proofreader),
            locator=LocationTracker.default(providers.locator, pipeline),
            consolidator=MemoryConsolidator(
                self.storage,
                SummaryAgent(providers.summarizer, pipeline),
                ClassificationAgent(providers.classifier),
                providers.embeddings,
                pipeline,
            ),
            recall=RecallResolver(self.storage),
        )

    async def handle_request(self, user_message: str, client_api_key: Optional[str] = None) -> PipelineResult:
        """
        Process one user message and return the accepted response.

        Raises SettingsNotFoundError or MissingCredentialError before any
        provider is contacted. Distillation and generation failures propagate
        after the user turn has been persisted.
        """
        if not user_message or not user_message.strip():
            raise ValueError("user_message must not be empty")

        run_id = str(uuid.uuid4())
        self._state_trail = []
        self._transition(PipelineState.START)

        settings = await self.storage.get_settings()
        if settings is None:
            raise SettingsNotFoundError("Settings not found.")
        api_key = self._resolve_api_key(settings, client_api_key)

        agents = self._build_agents(self.provider_factory(api_key))
        pipeline = self.pipeline

        await self._settle_pending_consolidation()

        history = await self.storage.get_all_turns()
        last_known_location = (history[-1].location if history else None) or pipeline.unknown_location

        user_turn = await self.storage.create_turn(TurnRole.USER, user_message, last_known_location)
        updated_history = history + [user_turn]
        logger.info(f"[Orchestrator] Run {run_id} started at \"{last_known_location}\"")

        self._transition(PipelineState.RETRIEVE)
        retrieved = await agents.query.retrieve(user_message, updated_history)

        self._transition(PipelineState.DISTILL)
        distilled = await agents.distiller.distill(
            user_message,
            retrieved,
            _tail(updated_history, pipeline.recent_history_window),
            run_id=run_id,
        )
        transcript = await agents.recall.resolve(user_message, last_known_location)

        # The current message is appended by the generation agent itself
        context = GenerationContext(
            behavior_prompt=settings.behavior_prompt,
            framework_template=settings.framework_template,
            character_preset=settings.character_preset or None,
            lore=settings.lore or None,
            relevant_memories=(distilled,) if distilled else (),
            high_fidelity_transcript=transcript,
            conversation_history=tuple(
                HistoryEntry.from_turn(turn)
                for turn in _tail(history, pipeline.conversation_history_window)
            ),
        )

        response, attempts, compliant, feedback_history = await self._generate_until_compliant(
            agents, user_message, context, run_id
        )

        self._transition(PipelineState.LOCATE_AND_PERSIST)
        if response == SAFETY_BLOCK_RESPONSE:
            location = last_known_location
        else:
            location = await agents.locator.extract_location(
                response,
                previous_location=last_known_location,
                run_id=run_id,
            )
        assistant_turn = await self.storage.create_turn(TurnRole.ASSISTANT, response, location)

        total_turns = await self.storage.count_turns()
        scheduled = should_consolidate(total_turns, pipeline.consolidation_interval)
        if scheduled:
            recent_turns = _tail(await self.storage.get_all_turns(), pipeline.consolidation_interval)
            await self._schedule_consolidation(agents.consolidator, recent_turns, location, run_id)

        self._transition(PipelineState.DONE)
        logger.info(
            f"[Orchestrator] Run {run_id} done after {attempts} attempt(s), compliant={compliant}"
        )

        return PipelineResult(
            run_id=run_id,
            response=response,
            location=location or pipeline.unknown_location,
            attempts=attempts,
            compliant=compliant,
            feedback_history=feedback_history,
            memory_log_scheduled=scheduled,
            user_turn=user_turn,
            assistant_turn=assistant_turn,
            events=self._collect_events(agents),
            states=list(self._state_trail),
        )

    async def _generate_until_compliant(
        self,
        agents: PipelineAgents,
        user_message: str,
        context: GenerationContext,
        run_id: str,
    ):
        max_attempts = self.pipeline.max_generation_attempts
        working_context = context
        feedback_history: List[str] = []
        response = ""

        for attempt in range(1, max_attempts + 1):
            self._transition(PipelineState.GENERATE)
            logger.info(f"[Orchestrator] Generation attempt {attempt}/{max_attempts}")
            response = await agents.writer.generate_story_response(
                user_message, working_context, run_id=run_id, attempt=attempt
            )

            if response == SAFETY_BLOCK_RESPONSE:
                self._transition(PipelineState.ACCEPT)
                return response, attempt, False, feedback_history

            self._transition(PipelineState.REVIEW)
            verdict = await agents.proofreader.review_response(
                response, user_message, run_id=run_id, attempt=attempt
            )
            if verdict.is_compliant:
                self._transition(PipelineState.ACCEPT)
                return response, attempt, True, feedback_history

            feedback_history.append(verdict.feedback)
            if attempt < max_attempts:
                self._transition(PipelineState.RETRY)
                working_context = working_context.with_corrective_note(response, verdict.feedback)

        logger.warning(
            f"[Orchestrator] Response still non-compliant after {max_attempts} attempts, accepting last draft"
        )
        self._transition(PipelineState.ACCEPT)
        return response, max_attempts, False, feedback_history

    @staticmethod
    def _collect_events(agents: PipelineAgents) -> List[AgentEvent]:
        events: List[AgentEvent] = []
        for agent in agents.llm_agents():
            events.extend(agent.drain_events())
        events.sort(key=lambda event: event.timestamp)
        return events

    async def _schedule_consolidation(
        self,
        consolidator: MemoryConsolidator,
        turns: Sequence[Turn],
        location: Optional[str],
        run_id: str,
    ) -> None:
        if not self.pipeline.background_consolidation:
            await consolidator.consolidate(turns, location, run_id=run_id)
            return

        task = asyncio.create_task(consolidator.consolidate(turns, location, run_id=run_id))
        task.add_done_callback(self._log_consolidation_failure)
        self._consolidation_task = task
        logger.info(f"[Orchestrator] Memory consolidation scheduled for {len(turns)} turns")

    @staticmethod
    def _log_consolidation_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"[Orchestrator] Memory consolidation failed: {error}", exc_info=error)

    async def _settle_pending_consolidation(self) -> None:
        # Failures were already logged by the done callback
        task, self._consolidation_task = self._consolidation_task, None
        if task is not None:
            await asyncio.wait([task])

    async def wait_for_consolidation(self) -> Optional[MemoryLogEntry]:
        """Await the pending consolidation, if any, and return its entry."""
        task, self._consolidation_task = self._consolidation_task, None
        if task is None:
            return None
        return await task
