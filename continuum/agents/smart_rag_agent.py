"""
Smart RAG Agent for Continuum
Distills retrieved turns down to the verbatim passages the next scene needs.
"""

import logging
from typing import Optional, Sequence

from ..models import Turn
from ..prompts import DISTILLER_PROMPT_TEMPLATE, MEMORY_CHUNK_TEMPLATE
from .base import BaseAgent, LLMClient, estimate_tokens

logger = logging.getLogger(__name__)


class SmartRagAgent(BaseAgent):
    """
    Context Distiller

    Empty output is a valid answer meaning no extra context is required.
    Provider errors propagate: generation depends on this result.
    """

    def __init__(self, llm_client: LLMClient):
        super().__init__(name="SmartRag", llm_client=llm_client)

    def build_filtering_prompt(
        self,
        user_message: str,
        retrieved_turns: Sequence[Turn],
        recent_history: Sequence[Turn],
    ) -> str:
        memories_text = "\n\n".join(
            MEMORY_CHUNK_TEMPLATE.format(role=turn.role.value, content=turn.content)
            for turn in retrieved_turns
        )
        history_text = "\n".join(f"{turn.role.value}: {turn.content}" for turn in recent_history)
        return DISTILLER_PROMPT_TEMPLATE.format(
            memories_text=memories_text,
            history_text=history_text,
            user_message=user_message,
        )

    async def distill(
        self,
        user_message: str,
        retrieved_turns: Sequence[Turn],
        recent_history: Sequence[Turn],
        run_id: Optional[str] = None,
    ) -> str:
        """Return verbatim excerpts from retrieved_turns, or an empty string."""
        if not retrieved_turns:
            return ""

        prompt = self.build_filtering_prompt(user_message, retrieved_turns, recent_history)
        logger.info(f"[SmartRag] Estimated token usage for distillation: ~{estimate_tokens(prompt)} tokens")

        response = await self.generate_with_logging(
            prompt,
            run_id=run_id or "",
            temperature=0.2,
            action="distill",
        )
        if response.blocked:
            logger.warning("[SmartRag] Distillation was blocked by the provider; continuing without canon")
            return ""

        filtered = response.text.strip()
        logger.info(
            f"[SmartRag] Filtered canon: {len(filtered.split())} words, {len(filtered)} characters"
        )
        return filtered
