"""
Recall of archived transcripts.

When the user explicitly asks about a past event, the full transcript of the
latest memory log recorded at the current location replaces the distilled
memories in the generation context.
"""

import logging
import re
from typing import Optional

from ..services.storage import StorageBackend

logger = logging.getLogger(__name__)

RECALL_CUES = re.compile(
    r"\b(remember when|do you remember|recall|what happened|back when|last time)\b",
    re.IGNORECASE,
)


class RecallResolver:

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    @staticmethod
    def is_recall_request(message: str) -> bool:
        return bool(RECALL_CUES.search(message))

    async def resolve(self, message: str, location: Optional[str]) -> Optional[str]:
        """Return the archived transcript to quote in full, if any."""
        if not location or not self.is_recall_request(message):
            return None

        entry = await self.storage.get_latest_memory_log_entry_for_location(location)
        if entry is None:
            return None

        transcript = await self.storage.get_archived_transcript_by_memory_log_id(entry.id)
        logger.info(f"[Recall] Using archived transcript for memory log {entry.id}")
        return transcript.transcript_content if transcript else entry.content
