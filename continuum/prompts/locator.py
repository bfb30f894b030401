"""
Locator Prompt - Scene Header Extraction
"""

NO_LOCATION_SENTINEL = "N/A"

LOCATOR_PROMPT_TEMPLATE = """
From the following header, extract the full location string. The location is typically the first line, often containing a place, time, and day. It might look like "Heizen Academy - Classroom 1-A | Morning | [Day 1] | 09:00".
Respond with *only* the location string, and nothing else. If no clear location is found, respond with "{sentinel}".
Header:
\"\"\"
{header}
\"\"\"
"""
