"""
Memory consolidation for Continuum.

Every few turns the most recent block of the exchange is summarized,
classified, embedded and stored as a memory log entry, with the verbatim
transcript archived beside it.
"""

import logging
from typing import Optional, Sequence

from ..agents.classification_agent import ClassificationAgent
from ..agents.summary_agent import SummaryAgent
from ..config import PipelineConfig
from ..models import MemoryLogEntry, MemoryLogEntryCreate, Turn
from ..services.embedding_providers import EmbeddingProvider
from ..services.storage import StorageBackend
from .errors import ContinuumError

logger = logging.getLogger(__name__)


def should_consolidate(total_turns: int, interval: int) -> bool:
    """True when the persisted turn count lands on a consolidation boundary."""
    return total_turns > 0 and total_turns % interval == 0


def format_transcript(turns: Sequence[Turn]) -> str:
    return "\n".join(f"{turn.role.value}: {turn.content}" for turn in turns)


class MemoryConsolidator:
    """Turns a block of recent turns into a memory log entry."""

    def __init__(
        self,
        storage: StorageBackend,
        summary_agent: SummaryAgent,
        classification_agent: ClassificationAgent,
        embedding_provider: Optional[EmbeddingProvider] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.storage = storage
        self.summary_agent = summary_agent
        self.classification_agent = classification_agent
        self.embedding_provider = embedding_provider
        self.config = config or PipelineConfig()

    async def consolidate(
        self,
        turns: Sequence[Turn],
        location: Optional[str],
        run_id: Optional[str] = None,
    ) -> MemoryLogEntry:
        transcript = format_transcript(turns)
        logger.info(f"[Consolidation] Consolidating {len(turns)} turns at \"{location}\"")

        summary = await self.summary_agent.summarize_for_memory(
            [turn.content for turn in turns],
            location,
            run_id=run_id,
        )
        classification = await self.classification_agent.classify(summary, run_id=run_id)

        embedding = None
        if self.embedding_provider is not None:
            try:
                embedding = await self.embedding_provider.embed_single(summary)
            except ContinuumError as e:
                logger.warning(f"[Consolidation] Could not embed summary, storing without vector: {e}")

        entry = await self.storage.create_memory_log_entry(MemoryLogEntryCreate(
            content=transcript,
            summary=summary,
            location=location,
            entity_name=classification.entity_name,
            type=classification.type,
            importance=self.config.default_importance,
            embedding=embedding,
        ))
        await self.storage.create_archived_transcript(entry.id, transcript)

        logger.info(f"[Consolidation] Stored memory log {entry.id} ({entry.type.value})")
        return entry
