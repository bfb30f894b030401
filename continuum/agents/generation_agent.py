"""
Generation Agent for Continuum
Writes the next story segment from the assembled generation context.
"""

import logging
from typing import List, Optional

from ..core.errors import ContinuumError, SafetyBlockError
from ..models import GenerationContext, HistoryEntry
from ..prompts import (
    CHARACTER_PRESET_SECTION,
    EMPTY_RESPONSE_FALLBACK,
    LORE_SECTION,
    MEMORY_ITEM,
    MEMORY_SECTION,
    OUTPUT_FORMAT_SECTION,
    SAFETY_BLOCK_RESPONSE,
    SYSTEM_INSTRUCTION_SEPARATOR,
    TRANSCRIPT_SECTION,
)
from .base import BaseAgent, LLMClient, translate_provider_error

logger = logging.getLogger(__name__)


class GenerationAgent(BaseAgent):
    """
    Storyteller

    A safety refusal is not an error: it yields a fixed sentinel response
    that the orchestrator persists like any other draft.
    """

    def __init__(self, llm_client: LLMClient, temperature: float = 0.8):
        super().__init__(name="Generation", llm_client=llm_client)
        self.temperature = temperature

    @staticmethod
    def build_system_instruction(context: GenerationContext) -> str:
        sections = [context.behavior_prompt]

        if context.character_preset:
            sections.append(CHARACTER_PRESET_SECTION.format(character_preset=context.character_preset))
        if context.lore:
            sections.append(LORE_SECTION.format(lore=context.lore))
        if context.framework_template:
            sections.append(OUTPUT_FORMAT_SECTION.format(framework_template=context.framework_template))

        # A full transcript supersedes the distilled memories
        if context.high_fidelity_transcript:
            sections.append(TRANSCRIPT_SECTION.format(transcript=context.high_fidelity_transcript))
        elif context.relevant_memories:
            memories = "\n".join(
                MEMORY_ITEM.format(index=index, memory=memory)
                for index, memory in enumerate(context.relevant_memories, start=1)
            )
            sections.append(MEMORY_SECTION.format(memories=memories))

        return "\n\n".join(sections)

    def build_contents(self, user_message: str, context: GenerationContext) -> List[HistoryEntry]:
        """History with the system instruction folded into the first user entry."""
        system_instruction = self.build_system_instruction(context)
        contents = list(context.conversation_history)

        if contents and contents[0].role == "user":
            contents[0] = HistoryEntry(
                role="user",
                content=f"{system_instruction}{SYSTEM_INSTRUCTION_SEPARATOR}{contents[0].content}",
            )
        else:
            contents.insert(0, HistoryEntry(role="user", content=system_instruction))

        contents.append(HistoryEntry(role="user", content=user_message))
        return contents

    async def generate_story_response(
        self,
        user_message: str,
        context: GenerationContext,
        run_id: Optional[str] = None,
        attempt: int = 1,
    ) -> str:
        contents = self.build_contents(user_message, context)

        try:
            response = await self.generate_with_logging(
                contents,
                run_id=run_id or "",
                temperature=self.temperature,
                action="generate_story",
                attempt=attempt,
            )
        except SafetyBlockError as e:
            logger.warning(f"[Generation] Provider refused the request: {e}")
            return SAFETY_BLOCK_RESPONSE
        except ContinuumError:
            raise
        except Exception as e:
            raise translate_provider_error(e, getattr(self.llm_client, "provider", None)) from e

        if response.blocked:
            logger.warning("[Generation] Response was blocked on safety grounds")
            return SAFETY_BLOCK_RESPONSE

        text = response.text.strip()
        if not text:
            logger.warning("[Generation] Provider returned an empty response")
            return EMPTY_RESPONSE_FALLBACK

        return text
