"""
Proofreader Agent for Continuum
Checks a draft for unrequested time skips, scene changes and arc summaries.
"""

import logging
from typing import Optional

from ..models import ComplianceVerdict
from ..prompts import COMPLIANT_MARKER, NON_COMPLIANT_MARKER, PROOFREADER_PROMPT_TEMPLATE
from .base import BaseAgent, LLMClient

logger = logging.getLogger(__name__)

DEFAULT_FEEDBACK = "The response was non-compliant, but no specific feedback was provided."


def parse_verdict(text: str) -> ComplianceVerdict:
    """Interpret the reviewer's reply. Anything not marked compliant is a rejection."""
    normalized = text.strip().lstrip("*").strip()

    if normalized.upper().startswith(NON_COMPLIANT_MARKER):
        feedback = normalized[len(NON_COMPLIANT_MARKER):].lstrip("*").lstrip(" \t\r\n:-").rstrip()
        return ComplianceVerdict(is_compliant=False, feedback=feedback or DEFAULT_FEEDBACK)

    if normalized.upper().startswith(COMPLIANT_MARKER):
        return ComplianceVerdict.compliant()

    return ComplianceVerdict(is_compliant=False, feedback=normalized or DEFAULT_FEEDBACK)


class ProofreaderAgent(BaseAgent):
    """
    Compliance reviewer

    A reviewer that cannot answer never blocks delivery: failures count as compliant.
    """

    def __init__(self, llm_client: LLMClient):
        super().__init__(name="Proofreader", llm_client=llm_client)

    async def review_response(
        self,
        generated_text: str,
        user_message: str,
        run_id: Optional[str] = None,
        attempt: int = 1,
    ) -> ComplianceVerdict:
        prompt = PROOFREADER_PROMPT_TEMPLATE.format(
            user_message=user_message,
            generated_text=generated_text,
            compliant=COMPLIANT_MARKER,
            non_compliant=NON_COMPLIANT_MARKER,
        )

        try:
            response = await self.generate_with_logging(
                prompt,
                run_id=run_id or "",
                temperature=0.2,
                action="review",
                attempt=attempt,
            )
        except Exception as e:
            logger.warning(f"[Proofreader] Review failed, treating response as compliant: {e}")
            return ComplianceVerdict.compliant()

        if response.blocked or not response.text.strip():
            logger.warning("[Proofreader] Reviewer gave no verdict, treating response as compliant")
            return ComplianceVerdict.compliant()

        verdict = parse_verdict(response.text)
        if verdict.is_compliant:
            logger.info("[Proofreader] Response is compliant")
        else:
            logger.info(f"[Proofreader] Response is non-compliant: {verdict.feedback}")
        return verdict
