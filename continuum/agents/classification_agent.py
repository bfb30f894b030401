"""
Classification Agent for Continuum
Assigns a memory log type and the entity it is about.
"""

import logging
import re
from typing import Optional

from ..models import MemoryClassification
from ..prompts import CLASSIFICATION_PROMPT_TEMPLATE
from .base import BaseAgent, LLMClient

logger = logging.getLogger(__name__)

JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class ClassificationAgent(BaseAgent):
    """Any failure to classify yields OTHER with no entity."""

    def __init__(self, llm_client: LLMClient):
        super().__init__(name="Classification", llm_client=llm_client)

    async def classify(self, memory_log: str, run_id: Optional[str] = None) -> MemoryClassification:
        prompt = CLASSIFICATION_PROMPT_TEMPLATE.format(memory_log=memory_log)

        try:
            response = await self.generate_with_logging(
                prompt,
                run_id=run_id or "",
                temperature=0.0,
                action="classify",
            )
            match = JSON_OBJECT.search(response.text)
            if not match:
                logger.warning("[Classification] No JSON object in classifier reply")
                return MemoryClassification()
            classification = MemoryClassification.model_validate_json(match.group(0))
        except Exception as e:
            logger.warning(f"[Classification] Failed to classify memory log: {e}")
            return MemoryClassification()

        logger.info(
            f"[Classification] {classification.type.value} ({classification.entity_name or 'no entity'})"
        )
        return classification
