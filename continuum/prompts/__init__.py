"""
Continuum Prompts Module
Prompt templates for each pipeline agent.
"""

from .archivist import CLASSIFICATION_PROMPT_TEMPLATE, SUMMARY_PROMPT_TEMPLATE
from .distiller import DISTILLER_PROMPT_TEMPLATE, MEMORY_CHUNK_TEMPLATE
from .locator import LOCATOR_PROMPT_TEMPLATE, NO_LOCATION_SENTINEL
from .proofreader import (
    COMPLIANT_MARKER,
    NON_COMPLIANT_MARKER,
    PROOFREADER_PROMPT_TEMPLATE,
)
from .writer import (
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

__all__ = [
    "DISTILLER_PROMPT_TEMPLATE",
    "MEMORY_CHUNK_TEMPLATE",
    "PROOFREADER_PROMPT_TEMPLATE",
    "COMPLIANT_MARKER",
    "NON_COMPLIANT_MARKER",
    "LOCATOR_PROMPT_TEMPLATE",
    "NO_LOCATION_SENTINEL",
    "SUMMARY_PROMPT_TEMPLATE",
    "CLASSIFICATION_PROMPT_TEMPLATE",
    "CHARACTER_PRESET_SECTION",
    "LORE_SECTION",
    "OUTPUT_FORMAT_SECTION",
    "TRANSCRIPT_SECTION",
    "MEMORY_SECTION",
    "MEMORY_ITEM",
    "SYSTEM_INSTRUCTION_SEPARATOR",
    "SAFETY_BLOCK_RESPONSE",
    "EMPTY_RESPONSE_FALLBACK",
]
