"""
Archivist Prompts - Memory Log Consolidation
Summarization and classification of consolidated turns.
"""

SUMMARY_PROMPT_TEMPLATE = """Create a summary of the following scene for long-term story memory. The summary MUST begin with a "Header:" line containing the provided scene location.

Scene Location: {location}

Conversation Snippet:
---
{snippet}
---

Summary:
Header: {location}
"""

CLASSIFICATION_PROMPT_TEMPLATE = """
Analyze the following memory log. Your task is to classify it into ONE of the following types: PLOT, CHARACTER, EVENT, LORE, OTHER, and to name the single entity it is mostly about.

Return your answer ONLY in a valid JSON format with the keys "type" and "entity_name".

- PLOT: A crucial event that drives the main narrative forward.
- CHARACTER: Describes a character's traits, appearance, backstory, or development.
- EVENT: A specific, self-contained occurrence in the story.
- LORE: Background information about the world, its history, rules, or objects.
- OTHER: Anything else.

Example: {{"type": "CHARACTER", "entity_name": "Captain Mira"}}

Memory Log:
---
{memory_log}
---

JSON Response:
"""
