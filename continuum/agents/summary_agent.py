"""
Summary Agent for Continuum
Condenses consolidated turns into a memory log summary.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, Sequence

from ..config import PipelineConfig
from ..prompts import SUMMARY_PROMPT_TEMPLATE
from .base import BaseAgent, LLMClient

logger = logging.getLogger(__name__)


class SummaryAgent(BaseAgent):
    """
    Archivist summarizer

    Retries with capped exponential backoff and jitter. When every attempt
    fails the raw source text is returned instead, so consolidation never
    loses a block of turns.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        config: Optional[PipelineConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        super().__init__(name="Summary", llm_client=llm_client)
        self.config = config or PipelineConfig()
        self._sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        base = self.config.backoff_base_seconds * (2 ** (attempt - 1))
        return min(self.config.backoff_cap_seconds, base) + random.uniform(0, self.config.backoff_jitter_seconds)

    async def summarize_for_memory(
        self,
        contents: Sequence[str],
        location: Optional[str],
        run_id: Optional[str] = None,
    ) -> str:
        raw_text = "\n".join(contents)
        scene_location = location or self.config.unknown_location
        prompt = SUMMARY_PROMPT_TEMPLATE.format(location=scene_location, snippet=raw_text)
        max_attempts = self.config.summarization_attempts

        for attempt in range(1, max_attempts + 1):
            try:
                response = await self.generate_with_logging(
                    prompt,
                    run_id=run_id or "",
                    temperature=0.3,
                    action="summarize",
                    attempt=attempt,
                )
            except Exception as e:
                logger.warning(f"[Summary] Attempt {attempt}/{max_attempts} failed: {e}")
            else:
                summary = response.text.strip()
                if summary and not response.blocked:
                    if not summary.startswith("Header:"):
                        summary = f"Header: {scene_location}\n{summary}"
                    return summary
                logger.warning(f"[Summary] Attempt {attempt}/{max_attempts} returned no summary")

            if attempt < max_attempts:
                delay = self.backoff_delay(attempt)
                logger.info(f"[Summary] Retrying in {delay:.2f}s")
                await self._sleep(delay)

        logger.error("[Summary] All attempts failed, keeping the raw transcript")
        return raw_text
