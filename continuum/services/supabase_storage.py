"""
Supabase Storage Service for Continuum

Persists turns, runtime settings, memory logs and archived transcripts in the
relational schema the narrative app already uses:

- messages (id, role, content, location, created_at)
- settings (gemini_api_key, behavior_prompt, framework_template, character_preset, lore)
- memory_logs (id, content, summary, embedding, location, entity_name, type, importance, ...)
- archived_transcripts (id, memory_log_id, transcript_content, created_at)

Storage faults are raised to the caller rather than logged and dropped.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..core.errors import ContinuumError
from ..models import (
    ArchivedTranscript,
    MemoryLogEntry,
    MemoryLogEntryCreate,
    MemoryLogType,
    RuntimeSettings,
    Turn,
    TurnRole,
)

logger = logging.getLogger(__name__)


class StorageNotConnectedError(ContinuumError):
    """A storage call was made before connect()."""
    pass


class SupabaseStorage:
    """StorageBackend backed by Supabase tables."""

    TABLE_MESSAGES = "messages"
    TABLE_SETTINGS = "settings"
    TABLE_MEMORY_LOGS = "memory_logs"
    TABLE_TRANSCRIPTS = "archived_transcripts"

    def __init__(self, supabase_url: Optional[str] = None, supabase_key: Optional[str] = None):
        """
        Initialize the Supabase storage service.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase service role key (for server-side operations)
        """
        self.supabase_url = supabase_url or os.getenv("SUPABASE_URL")
        self.supabase_key = supabase_key or os.getenv("SUPABASE_SERVICE_KEY")
        self.client = None

    def connect(self) -> None:
        """Create the Supabase client."""
        if not self.supabase_url or not self.supabase_key:
            raise StorageNotConnectedError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required")

        from supabase import create_client
        self.client = create_client(self.supabase_url, self.supabase_key)
        logger.info(f"[SupabaseStorage] Connected to {self.supabase_url}")

    @property
    def is_connected(self) -> bool:
        """Check if connected to Supabase."""
        return self.client is not None

    def _table(self, name: str):
        if not self.is_connected:
            raise StorageNotConnectedError("Supabase client not connected. Call connect() first.")
        return self.client.table(name)

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_timestamp(value: Any) -> datetime:
        if isinstance(value, datetime):
            return value
        if value:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        return datetime.now(timezone.utc)

    def _row_to_turn(self, row: Dict[str, Any]) -> Turn:
        return Turn(
            id=str(row["id"]),
            role=TurnRole(row["role"]),
            content=row["content"],
            location=row.get("location"),
            created_at=self._parse_timestamp(row.get("created_at")),
        )

    def _row_to_memory_log(self, row: Dict[str, Any]) -> MemoryLogEntry:
        embedding = row.get("embedding")
        if isinstance(embedding, str):
            embedding = json.loads(embedding) if embedding else None
        return MemoryLogEntry(
            id=str(row["id"]),
            content=row["content"],
            summary=row.get("summary") or "",
            location=row.get("location"),
            entity_name=row.get("entity_name"),
            type=MemoryLogType.from_label(row.get("type")),
            importance=row.get("importance") or 5,
            embedding=embedding,
            created_at=self._parse_timestamp(row.get("created_at")),
            updated_at=self._parse_timestamp(row.get("updated_at")),
        )

    def _row_to_transcript(self, row: Dict[str, Any]) -> ArchivedTranscript:
        return ArchivedTranscript(
            id=str(row["id"]),
            memory_log_id=str(row["memory_log_id"]),
            transcript_content=row["transcript_content"],
            created_at=self._parse_timestamp(row.get("created_at")),
        )

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def get_all_turns(self) -> List[Turn]:
        result = self._table(self.TABLE_MESSAGES).select("*").order("created_at").execute()
        return [self._row_to_turn(row) for row in result.data or []]

    async def count_turns(self) -> int:
        result = self._table(self.TABLE_MESSAGES).select("id", count="exact").execute()
        return result.count or 0

    async def create_turn(
        self,
        role: TurnRole,
        content: str,
        location: Optional[str] = None,
    ) -> Turn:
        data = {"role": TurnRole(role).value, "content": content, "location": location}
        result = self._table(self.TABLE_MESSAGES).insert(data).execute()
        return self._row_to_turn(result.data[0])

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def get_settings(self) -> Optional[RuntimeSettings]:
        result = self._table(self.TABLE_SETTINGS).select("*").limit(1).execute()
        if not result.data:
            return None
        row = result.data[0]
        defaults = RuntimeSettings()
        return RuntimeSettings(
            behavior_prompt=row.get("behavior_prompt") or defaults.behavior_prompt,
            framework_template=row.get("framework_template") or "",
            character_preset=row.get("character_preset") or "",
            lore=row.get("lore") or "",
            provider_api_key=row.get("gemini_api_key") or None,
        )

    # ------------------------------------------------------------------
    # Memory logs
    # ------------------------------------------------------------------

    async def create_memory_log_entry(self, fields: MemoryLogEntryCreate) -> MemoryLogEntry:
        data = {
            "content": fields.content,
            "summary": fields.summary,
            "location": fields.location,
            "entity_name": fields.entity_name,
            "type": fields.type.value,
            "importance": fields.importance,
            "embedding": json.dumps(fields.embedding) if fields.embedding is not None else None,
        }
        result = self._table(self.TABLE_MEMORY_LOGS).insert(data).execute()
        return self._row_to_memory_log(result.data[0])

    async def get_all_memory_log_entries(self) -> List[MemoryLogEntry]:
        result = self._table(self.TABLE_MEMORY_LOGS).select("*").order("created_at").execute()
        return [self._row_to_memory_log(row) for row in result.data or []]

    async def get_latest_memory_log_entry_for_location(
        self, location: str
    ) -> Optional[MemoryLogEntry]:
        result = (
            self._table(self.TABLE_MEMORY_LOGS)
            .select("*")
            .eq("location", location)
            .order("created_at", desc=True)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return self._row_to_memory_log(result.data[0])

    async def update_memory_log_entry(self, entry_id: str, content: str) -> MemoryLogEntry:
        result = (
            self._table(self.TABLE_MEMORY_LOGS)
            .update({"content": content, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", entry_id)
            .execute()
        )
        if not result.data:
            raise KeyError(f"Memory log {entry_id} not found")
        return self._row_to_memory_log(result.data[0])

    async def delete_memory_log_entry(self, entry_id: str) -> None:
        # archived_transcripts rows go with it through ON DELETE CASCADE
        self._table(self.TABLE_MEMORY_LOGS).delete().eq("id", entry_id).execute()

    # ------------------------------------------------------------------
    # Archived transcripts
    # ------------------------------------------------------------------

    async def create_archived_transcript(
        self, memory_log_id: str, transcript_content: str
    ) -> ArchivedTranscript:
        data = {"memory_log_id": memory_log_id, "transcript_content": transcript_content}
        result = self._table(self.TABLE_TRANSCRIPTS).insert(data).execute()
        return self._row_to_transcript(result.data[0])

    async def get_archived_transcript_by_memory_log_id(
        self, memory_log_id: str
    ) -> Optional[ArchivedTranscript]:
        result = (
            self._table(self.TABLE_TRANSCRIPTS)
            .select("*")
            .eq("memory_log_id", memory_log_id)
            .limit(1)
            .execute()
        )
        if not result.data:
            return None
        return self._row_to_transcript(result.data[0])
