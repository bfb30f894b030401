"""
Unit tests for the compliance reviewer.
"""

import pytest

from continuum.agents.base import ModelResponse
from continuum.agents.proofreader_agent import DEFAULT_FEEDBACK, ProofreaderAgent, parse_verdict
from continuum.core.errors import ProviderError

from fakes import ScriptedLLMClient


class TestParseVerdict:
    """Tests for verdict parsing."""

    def test_compliant(self):
        verdict = parse_verdict("COMPLIANT")
        assert verdict.is_compliant is True
        assert verdict.feedback is None

    def test_non_compliant_with_reason(self):
        verdict = parse_verdict("NON-COMPLIANT The AI skipped to the next morning.")
        assert verdict.is_compliant is False
        assert verdict.feedback == "The AI skipped to the next morning."

    def test_non_compliant_with_colon(self):
        verdict = parse_verdict("NON-COMPLIANT: moved to the courtyard.")
        assert verdict.feedback == "moved to the courtyard."

    def test_non_compliant_without_reason(self):
        verdict = parse_verdict("NON-COMPLIANT")
        assert verdict.feedback == DEFAULT_FEEDBACK

    def test_bold_marker(self):
        assert parse_verdict("**COMPLIANT**").is_compliant is True

    def test_unmarked_reply_is_rejection(self):
        verdict = parse_verdict("The scene jumps ahead two days.")
        assert verdict.is_compliant is False
        assert verdict.feedback == "The scene jumps ahead two days."


class TestReviewResponse:
    """Tests for ProofreaderAgent.review_response."""

    @pytest.mark.asyncio
    async def test_prompt_includes_both_texts(self):
        client = ScriptedLLMClient("COMPLIANT")
        agent = ProofreaderAgent(client)

        verdict = await agent.review_response("The gulls cry.", "Listen.")

        assert verdict.is_compliant is True
        assert "The gulls cry." in client.calls[0]
        assert "Listen." in client.calls[0]

    @pytest.mark.asyncio
    async def test_provider_failure_is_compliant(self):
        agent = ProofreaderAgent(ScriptedLLMClient(ProviderError("timeout")))

        verdict = await agent.review_response("text", "input")

        assert verdict.is_compliant is True
        assert verdict.feedback is None

    @pytest.mark.asyncio
    async def test_blocked_review_is_compliant(self):
        agent = ProofreaderAgent(ScriptedLLMClient(ModelResponse(text="", blocked=True)))
        assert (await agent.review_response("text", "input")).is_compliant is True

    @pytest.mark.asyncio
    async def test_non_compliant_verdict(self):
        agent = ProofreaderAgent(ScriptedLLMClient("NON-COMPLIANT Time skip."))

        verdict = await agent.review_response("text", "input", attempt=2)

        assert verdict.is_compliant is False
        assert verdict.feedback == "Time skip."
        assert agent.events[0].attempt == 2
