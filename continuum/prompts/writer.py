"""
Writer Prompt Sections - Story Continuation
Labels used when assembling the system instruction for the generation agent.
"""

CHARACTER_PRESET_SECTION = "--- PRESET CHARACTER DETAILS ---\n{character_preset}"

LORE_SECTION = "--- WORLD LORE & BACKGROUND ---\n{lore}"

OUTPUT_FORMAT_SECTION = "Output Format:\n{framework_template}"

TRANSCRIPT_SECTION = (
    "--- Full Transcript of a Relevant Past Event ---\n"
    "You have requested details about a past event. Here is the full transcript "
    "of that scene to help you provide a detailed answer:\n{transcript}"
)

MEMORY_SECTION = "--- Relevant Context from Memory ---\n{memories}"

MEMORY_ITEM = "[Memory {index}]: {memory}"

SYSTEM_INSTRUCTION_SEPARATOR = "\n\n---\n\n"

SAFETY_BLOCK_RESPONSE = "Generation error due to Safety Issue"

EMPTY_RESPONSE_FALLBACK = "I couldn't generate a response. Please try again."
