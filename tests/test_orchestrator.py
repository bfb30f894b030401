"""
Unit tests for the narrative orchestrator.

Tests cover:
- Happy path persistence and location tracking
- The bounded compliance retry loop
- Consolidation scheduling on the turn-count boundary
- Credential and settings failures before any provider call
"""

import pytest
from pydantic import SecretStr

from continuum.agents.base import ModelResponse
from continuum.config import GeminiConfig, LLMConfiguration, PipelineConfig
from continuum.core.errors import MissingCredentialError, ProviderError, SettingsNotFoundError
from continuum.core.orchestrator import NarrativeOrchestrator, PipelineState, build_provider_bundle
from continuum.models import MemoryLogEntryCreate, MemoryLogType, RuntimeSettings, TurnRole
from continuum.prompts import SAFETY_BLOCK_RESPONSE
from continuum.services import InMemoryStorage

from fakes import BagOfWordsEmbeddingProvider, ScriptedLLMClient, make_bundle


class BundleFactory:
    """Provider factory that records the keys it was asked for."""

    def __init__(self, **overrides):
        self.bundle = make_bundle(**overrides)
        self.keys = []

    def __call__(self, api_key):
        self.keys.append(api_key)
        return self.bundle


def _corrective_notes(contents):
    return [entry for entry in contents if entry.content.startswith("System Note:")]


class TestHappyPath:
    """A single compliant exchange."""

    @pytest.mark.asyncio
    async def test_persists_both_turns(self, storage, config):
        factory = BundleFactory()
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        result = await orchestrator.handle_request("We step onto the docks.")

        turns = await storage.get_all_turns()
        assert [t.role for t in turns] == [TurnRole.USER, TurnRole.ASSISTANT]
        assert turns[0].content == "We step onto the docks."
        assert turns[0].location == "Unknown"
        assert turns[1].content == result.response
        assert turns[1].location == "Harbor Docks"
        assert result.location == "Harbor Docks"
        assert result.attempts == 1
        assert result.compliant is True
        assert factory.keys == ["test-key"]

    @pytest.mark.asyncio
    async def test_state_trail(self, storage, config):
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=BundleFactory())

        result = await orchestrator.handle_request("We step onto the docks.")

        assert result.states == [
            PipelineState.START.value,
            PipelineState.RETRIEVE.value,
            PipelineState.DISTILL.value,
            PipelineState.GENERATE.value,
            PipelineState.REVIEW.value,
            PipelineState.ACCEPT.value,
            PipelineState.LOCATE_AND_PERSIST.value,
            PipelineState.DONE.value,
        ]
        assert orchestrator.state == PipelineState.DONE

    @pytest.mark.asyncio
    async def test_user_turn_inherits_last_location(self, storage, config):
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=BundleFactory())

        await orchestrator.handle_request("We step onto the docks.")
        second = await orchestrator.handle_request("I look for the captain.")

        assert second.user_turn.location == "Harbor Docks"

    @pytest.mark.asyncio
    async def test_current_message_sent_once(self, storage, config):
        factory = BundleFactory()
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        await orchestrator.handle_request("We step onto the docks.")
        await orchestrator.handle_request("I look for the captain.")

        contents = factory.bundle.writer.calls[-1]
        assert [entry.content for entry in contents].count("I look for the captain.") == 1
        assert contents[-1].content == "I look for the captain."
        assert contents[0].content.endswith("We step onto the docks.")

    @pytest.mark.asyncio
    async def test_distilled_canon_reaches_writer(self, storage, config):
        factory = BundleFactory(distiller=ScriptedLLMClient(default="The captain is named Vey."))
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        await orchestrator.handle_request("Where is the captain?")

        assert "[Memory 1]: The captain is named Vey." in factory.bundle.writer.calls[0][0].content

    @pytest.mark.asyncio
    async def test_events_recorded(self, storage, config):
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=BundleFactory())

        result = await orchestrator.handle_request("We step onto the docks.")

        agents = {event.agent_name for event in result.events}
        assert {"SmartRag", "Generation", "Proofreader"} <= agents
        assert all(event.run_id == result.run_id for event in result.events)

    @pytest.mark.asyncio
    async def test_writer_uses_configured_temperature(self, storage):
        factory = BundleFactory()
        orchestrator = NarrativeOrchestrator(storage, LLMConfiguration(temperature=1.1), provider_factory=factory)

        await orchestrator.handle_request("We step onto the docks.")

        assert factory.bundle.writer.temperatures == [1.1]


class TestProviderBundle:
    """Clients built from configuration."""

    def test_every_client_carries_the_timeout(self):
        bundle = build_provider_bundle(LLMConfiguration(timeout_seconds=60), "runtime-key")

        for role in ("distiller", "writer", "proofreader", "locator", "summarizer", "classifier"):
            client = getattr(bundle, role)
            assert client.timeout == 60.0
            assert client.api_key == "runtime-key"
        assert bundle.embeddings.timeout == 60.0


class TestComplianceLoop:
    """The bounded generate/review loop."""

    @pytest.mark.asyncio
    async def test_retry_adds_one_corrective_note(self, storage, config):
        factory = BundleFactory(
            writer=ScriptedLLMClient(
                "Location: Harbor Docks\nThree days later, the ship sails.",
                "Location: Harbor Docks\nThe ship creaks at anchor.",
            ),
            proofreader=ScriptedLLMClient("NON-COMPLIANT Unrequested time skip.", "COMPLIANT"),
        )
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        result = await orchestrator.handle_request("I wait by the ship.")

        writer_calls = factory.bundle.writer.calls
        assert len(writer_calls) == 2
        assert _corrective_notes(writer_calls[0]) == []
        notes = _corrective_notes(writer_calls[1])
        assert len(notes) == 1
        assert "Unrequested time skip." in notes[0].content
        assert writer_calls[1][-1].content == "I wait by the ship."
        assert any(
            entry.role == "model" and "Three days later" in entry.content for entry in writer_calls[1]
        )
        assert result.attempts == 2
        assert result.compliant is True
        assert result.response == "Location: Harbor Docks\nThe ship creaks at anchor."
        assert result.feedback_history == ["Unrequested time skip."]
        assert PipelineState.RETRY.value in result.states

    @pytest.mark.asyncio
    async def test_at_most_two_attempts(self, storage, config):
        """Both drafts rejected: the second is still persisted."""
        factory = BundleFactory(
            writer=ScriptedLLMClient("Location: Pier\nDraft one.", "Location: Pier\nDraft two."),
            proofreader=ScriptedLLMClient(default="NON-COMPLIANT Moved the scene."),
        )
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        result = await orchestrator.handle_request("I stay here.")

        assert len(factory.bundle.writer.calls) == 2
        assert len(factory.bundle.proofreader.calls) == 2
        assert result.compliant is False
        assert result.response == "Location: Pier\nDraft two."
        turns = await storage.get_all_turns()
        assert turns[-1].content == "Location: Pier\nDraft two."
        assert len(_corrective_notes(factory.bundle.writer.calls[1])) == 1

    @pytest.mark.asyncio
    async def test_configured_attempt_limit(self, storage):
        config = LLMConfiguration(pipeline=PipelineConfig(max_generation_attempts=1))
        factory = BundleFactory(proofreader=ScriptedLLMClient(default="NON-COMPLIANT nope"))
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        result = await orchestrator.handle_request("I stay here.")

        assert len(factory.bundle.writer.calls) == 1
        assert PipelineState.RETRY.value not in result.states

    @pytest.mark.asyncio
    async def test_reviewer_failure_accepts_draft(self, storage, config):
        factory = BundleFactory(proofreader=ScriptedLLMClient(ProviderError("reviewer down")))
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        result = await orchestrator.handle_request("I stay here.")

        assert result.attempts == 1
        assert result.compliant is True

    @pytest.mark.asyncio
    async def test_safety_block_skips_review_and_location(self, storage, config):
        factory = BundleFactory(
            writer=ScriptedLLMClient(ModelResponse(text="", blocked=True)),
            locator=ScriptedLLMClient(default="Somewhere Else Entirely"),
        )
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        result = await orchestrator.handle_request("Something forbidden.")

        assert result.response == SAFETY_BLOCK_RESPONSE
        assert factory.bundle.proofreader.calls == []
        assert factory.bundle.locator.calls == []
        assert result.assistant_turn.location == "Unknown"


class TestLocation:

    @pytest.mark.asyncio
    async def test_inferred_location(self, storage, config):
        factory = BundleFactory(
            writer=ScriptedLLMClient(default="Old Lighthouse | Night\nWind howls around the tower."),
            locator=ScriptedLLMClient(default="Old Lighthouse | Night"),
        )
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        result = await orchestrator.handle_request("We climb the tower.")

        assert result.location == "Old Lighthouse | Night"

    @pytest.mark.asyncio
    async def test_location_failure_keeps_previous(self, storage, config):
        factory = BundleFactory()
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)
        await orchestrator.handle_request("We step onto the docks.")

        factory.bundle.writer.default = "The wind picks up."
        factory.bundle.locator.responses = [ProviderError("locator down")]
        result = await orchestrator.handle_request("We wait.")

        assert result.location == "Harbor Docks"


class TestConsolidation:
    """Memory consolidation on the turn-count boundary."""

    @pytest.mark.asyncio
    async def test_scheduled_every_fourth_turn(self, storage, config):
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=BundleFactory())

        first = await orchestrator.handle_request("We step onto the docks.")
        assert first.memory_log_scheduled is False
        assert await orchestrator.wait_for_consolidation() is None

        second = await orchestrator.handle_request("I look for the captain.")
        assert second.memory_log_scheduled is True
        entry = await orchestrator.wait_for_consolidation()

        assert entry is not None
        assert entry.type == MemoryLogType.EVENT
        assert entry.location == "Harbor Docks"
        assert entry.content.startswith("user: We step onto the docks.")
        assert await storage.get_archived_transcript_by_memory_log_id(entry.id) is not None
        assert len(await storage.get_all_memory_log_entries()) == 1

    @pytest.mark.asyncio
    async def test_inline_consolidation(self, storage):
        config = LLMConfiguration(pipeline=PipelineConfig(background_consolidation=False))
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=BundleFactory())

        await orchestrator.handle_request("We step onto the docks.")
        await orchestrator.handle_request("I look for the captain.")

        assert len(await storage.get_all_memory_log_entries()) == 1

    @pytest.mark.asyncio
    async def test_summary_failure_stores_raw_text(self, storage, config):
        factory = BundleFactory(summarizer=ScriptedLLMClient(default=ProviderError("down")))
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        await orchestrator.handle_request("We step onto the docks.")
        await orchestrator.handle_request("I look for the captain.")
        entry = await orchestrator.wait_for_consolidation()

        assert entry.summary.startswith("We step onto the docks.")
        assert len(factory.bundle.summarizer.calls) == 3

    @pytest.mark.asyncio
    async def test_pending_consolidation_settles_before_next_request(self, storage, config):
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=BundleFactory())

        await orchestrator.handle_request("We step onto the docks.")
        await orchestrator.handle_request("I look for the captain.")
        await orchestrator.handle_request("We board the ship.")

        assert len(await storage.get_all_memory_log_entries()) == 1


class TestRecall:

    @pytest.mark.asyncio
    async def test_recall_uses_archived_transcript(self, storage, config):
        entry = await storage.create_memory_log_entry(MemoryLogEntryCreate(
            content="user: we met Vey", summary="Header: Harbor Docks\nMeeting Vey.", location="Harbor Docks",
        ))
        await storage.create_archived_transcript(entry.id, "user: we met Vey\nassistant: Vey bowed.")
        await storage.create_turn(TurnRole.ASSISTANT, "The docks are quiet.", "Harbor Docks")
        factory = BundleFactory(distiller=ScriptedLLMClient(default="distilled canon"))
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        await orchestrator.handle_request("Do you remember when we met Vey?")

        instruction = factory.bundle.writer.calls[0][0].content
        assert "assistant: Vey bowed." in instruction
        assert "distilled canon" not in instruction


class TestFailures:
    """Errors that reach the caller."""

    @pytest.mark.asyncio
    async def test_missing_settings(self, config):
        factory = BundleFactory()
        orchestrator = NarrativeOrchestrator(InMemoryStorage(), config, provider_factory=factory)

        with pytest.raises(SettingsNotFoundError):
            await orchestrator.handle_request("Hello")

        assert factory.keys == []

    @pytest.mark.asyncio
    async def test_missing_credential_before_any_call(self, config):
        storage = InMemoryStorage(RuntimeSettings())
        factory = BundleFactory()
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        with pytest.raises(MissingCredentialError):
            await orchestrator.handle_request("Hello")

        assert factory.keys == []
        assert await storage.count_turns() == 0

    @pytest.mark.asyncio
    async def test_client_key_used_when_settings_have_none(self, config):
        storage = InMemoryStorage(RuntimeSettings())
        factory = BundleFactory()
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        await orchestrator.handle_request("Hello", client_api_key="client-key")

        assert factory.keys == ["client-key"]

    @pytest.mark.asyncio
    async def test_config_key_as_last_resort(self):
        storage = InMemoryStorage(RuntimeSettings())
        config = LLMConfiguration(gemini=GeminiConfig(api_key=SecretStr("env-key")))
        factory = BundleFactory()
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        await orchestrator.handle_request("Hello")

        assert factory.keys == ["env-key"]

    @pytest.mark.asyncio
    async def test_distillation_error_propagates(self, storage, config):
        factory = BundleFactory(distiller=ScriptedLLMClient(default=ProviderError("distiller down")))
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        with pytest.raises(ProviderError):
            await orchestrator.handle_request("Hello there")

        turns = await storage.get_all_turns()
        assert [t.role for t in turns] == [TurnRole.USER]

    @pytest.mark.asyncio
    async def test_embedding_failure_is_not_fatal(self, storage, config):
        factory = BundleFactory(embeddings=BagOfWordsEmbeddingProvider(fail=True))
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=factory)

        result = await orchestrator.handle_request("We step onto the docks.")

        assert result.compliant is True

    @pytest.mark.asyncio
    async def test_blank_message_rejected(self, storage, config):
        orchestrator = NarrativeOrchestrator(storage, config, provider_factory=BundleFactory())
        with pytest.raises(ValueError):
            await orchestrator.handle_request("   ")
