"""
Unit tests for memory consolidation.
"""

import pytest

from continuum.agents.classification_agent import ClassificationAgent
from continuum.agents.summary_agent import SummaryAgent
from continuum.config import PipelineConfig
from continuum.core.consolidation import MemoryConsolidator, format_transcript, should_consolidate
from continuum.models import MemoryLogType, TurnRole
from continuum.services import InMemoryStorage

from fakes import BagOfWordsEmbeddingProvider, ScriptedLLMClient, make_turn


async def _no_sleep(delay):
    return None


def _turns():
    return [
        make_turn("t1", "We reach the harbor.", TurnRole.USER),
        make_turn("t2", "Ships creak at anchor.", TurnRole.ASSISTANT),
        make_turn("t3", "Find the captain.", TurnRole.USER),
        make_turn("t4", "The captain raises a lantern.", TurnRole.ASSISTANT),
    ]


def _consolidator(storage, summary="Header: Harbor\nThe crew meets the captain.",
                  classification='{"type": "PLOT", "entity_name": "Captain"}',
                  embeddings=None):
    return MemoryConsolidator(
        storage,
        SummaryAgent(ScriptedLLMClient(default=summary), sleep=_no_sleep),
        ClassificationAgent(ScriptedLLMClient(default=classification)),
        embeddings,
        PipelineConfig(),
    )


class TestShouldConsolidate:

    @pytest.mark.parametrize("count,expected", [
        (0, False), (1, False), (3, False), (4, True), (6, False), (8, True),
    ])
    def test_boundary(self, count, expected):
        assert should_consolidate(count, 4) is expected


class TestFormatTranscript:

    def test_role_prefixed_lines(self):
        assert format_transcript(_turns()[:2]) == (
            "user: We reach the harbor.\nassistant: Ships creak at anchor."
        )


class TestMemoryConsolidator:

    @pytest.mark.asyncio
    async def test_stores_entry_and_transcript(self):
        storage = InMemoryStorage()
        consolidator = _consolidator(storage, embeddings=BagOfWordsEmbeddingProvider())

        entry = await consolidator.consolidate(_turns(), "Harbor", run_id="r1")

        assert entry.summary == "Header: Harbor\nThe crew meets the captain."
        assert entry.type == MemoryLogType.PLOT
        assert entry.entity_name == "Captain"
        assert entry.location == "Harbor"
        assert entry.importance == 5
        assert entry.embedding is not None
        assert entry.content == format_transcript(_turns())

        transcript = await storage.get_archived_transcript_by_memory_log_id(entry.id)
        assert transcript.transcript_content == format_transcript(_turns())

    @pytest.mark.asyncio
    async def test_embedding_failure_stores_without_vector(self):
        storage = InMemoryStorage()
        consolidator = _consolidator(storage, embeddings=BagOfWordsEmbeddingProvider(fail=True))

        entry = await consolidator.consolidate(_turns(), "Harbor")

        assert entry.embedding is None
        assert len(await storage.get_all_memory_log_entries()) == 1

    @pytest.mark.asyncio
    async def test_unclassifiable_summary_is_other(self):
        storage = InMemoryStorage()
        consolidator = _consolidator(storage, classification="no idea")

        entry = await consolidator.consolidate(_turns(), "Harbor")

        assert entry.type == MemoryLogType.OTHER
        assert entry.entity_name is None
