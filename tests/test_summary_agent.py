"""
Unit tests for memory summarization with retries.
"""

import pytest

from continuum.agents.base import ModelResponse
from continuum.agents.summary_agent import SummaryAgent
from continuum.config import PipelineConfig
from continuum.core.errors import ProviderError

from fakes import ScriptedLLMClient


class RecordingSleep:
    """Collects requested delays instead of sleeping."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


class TestBackoff:
    """Tests for the retry delay schedule."""

    def test_exponential_without_jitter(self):
        agent = SummaryAgent(ScriptedLLMClient(), PipelineConfig(backoff_jitter_seconds=0.0))
        assert [agent.backoff_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 4.0]

    def test_capped(self):
        config = PipelineConfig(backoff_base_seconds=10.0, backoff_cap_seconds=15.0, backoff_jitter_seconds=0.0)
        agent = SummaryAgent(ScriptedLLMClient(), config)
        assert agent.backoff_delay(3) == 15.0

    def test_jitter_is_bounded(self):
        agent = SummaryAgent(ScriptedLLMClient(), PipelineConfig())
        for _ in range(20):
            assert 1.0 <= agent.backoff_delay(1) <= 2.0


class TestSummarizeForMemory:
    """Tests for SummaryAgent.summarize_for_memory."""

    @pytest.mark.asyncio
    async def test_success_first_try(self):
        client = ScriptedLLMClient("Header: Harbor Docks\nThey arrive at dusk.")
        sleep = RecordingSleep()
        agent = SummaryAgent(client, sleep=sleep)

        summary = await agent.summarize_for_memory(["We arrive.", "The docks are quiet."], "Harbor Docks")

        assert summary == "Header: Harbor Docks\nThey arrive at dusk."
        assert sleep.delays == []
        assert "We arrive.\nThe docks are quiet." in client.calls[0]

    @pytest.mark.asyncio
    async def test_header_added_when_missing(self):
        agent = SummaryAgent(ScriptedLLMClient("They arrive at dusk."), sleep=RecordingSleep())
        summary = await agent.summarize_for_memory(["We arrive."], "Harbor Docks")
        assert summary == "Header: Harbor Docks\nThey arrive at dusk."

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self):
        client = ScriptedLLMClient(ProviderError("overloaded"), "Header: Pier\nCalm seas.")
        sleep = RecordingSleep()
        agent = SummaryAgent(client, PipelineConfig(backoff_jitter_seconds=0.0), sleep=sleep)

        summary = await agent.summarize_for_memory(["Calm."], "Pier")

        assert summary == "Header: Pier\nCalm seas."
        assert sleep.delays == [1.0]
        assert [event.attempt for event in agent.events] == [2]

    @pytest.mark.asyncio
    async def test_falls_back_to_raw_text(self):
        """After the final failed attempt the source text is kept verbatim."""
        client = ScriptedLLMClient(
            ProviderError("a"), ProviderError("b"), ProviderError("c"), "never reached"
        )
        sleep = RecordingSleep()
        agent = SummaryAgent(client, PipelineConfig(backoff_jitter_seconds=0.0), sleep=sleep)

        summary = await agent.summarize_for_memory(["line one", "line two"], "Pier")

        assert summary == "line one\nline two"
        assert len(client.calls) == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_blocked_summary_is_retried(self):
        """A blocked reply counts as a failed attempt; raw text is kept once attempts run out."""
        client = ScriptedLLMClient(
            ModelResponse(text="", blocked=True),
            ModelResponse(text="", blocked=True),
            ModelResponse(text="", blocked=True),
        )
        sleep = RecordingSleep()
        agent = SummaryAgent(client, PipelineConfig(backoff_jitter_seconds=0.0), sleep=sleep)

        assert await agent.summarize_for_memory(["raw"], "Pier") == "raw"
        assert len(client.calls) == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_empty_summary_then_success(self):
        client = ScriptedLLMClient("   ", "Header: Pier\nCalm seas.")
        sleep = RecordingSleep()
        agent = SummaryAgent(client, PipelineConfig(backoff_jitter_seconds=0.0), sleep=sleep)

        summary = await agent.summarize_for_memory(["Calm."], "Pier")

        assert summary == "Header: Pier\nCalm seas."
        assert len(client.calls) == 2
        assert sleep.delays == [1.0]

    @pytest.mark.asyncio
    async def test_unknown_location_in_prompt(self):
        client = ScriptedLLMClient("Header: Unknown\nText.")
        agent = SummaryAgent(client, sleep=RecordingSleep())
        await agent.summarize_for_memory(["raw"], None)
        assert "Scene Location: Unknown" in client.calls[0]
