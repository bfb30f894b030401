"""
Storage collaborator contract and an in-process implementation.

The pipeline only talks to storage through StorageBackend. Every call is
assumed atomic and immediately consistent.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, runtime_checkable
from uuid import uuid4

from ..models import (
    ArchivedTranscript,
    MemoryLogEntry,
    MemoryLogEntryCreate,
    RuntimeSettings,
    Turn,
    TurnRole,
)


@runtime_checkable
class StorageBackend(Protocol):
    """Persistence operations consumed by the pipeline."""

    async def get_all_turns(self) -> List[Turn]:
        ...

    async def count_turns(self) -> int:
        ...

    async def create_turn(
        self,
        role: TurnRole,
        content: str,
        location: Optional[str] = None,
    ) -> Turn:
        ...

    async def get_settings(self) -> Optional[RuntimeSettings]:
        ...

    async def create_memory_log_entry(self, fields: MemoryLogEntryCreate) -> MemoryLogEntry:
        ...

    async def get_all_memory_log_entries(self) -> List[MemoryLogEntry]:
        ...

    async def get_latest_memory_log_entry_for_location(
        self, location: str
    ) -> Optional[MemoryLogEntry]:
        ...

    async def update_memory_log_entry(self, entry_id: str, content: str) -> MemoryLogEntry:
        ...

    async def delete_memory_log_entry(self, entry_id: str) -> None:
        ...

    async def create_archived_transcript(
        self, memory_log_id: str, transcript_content: str
    ) -> ArchivedTranscript:
        ...

    async def get_archived_transcript_by_memory_log_id(
        self, memory_log_id: str
    ) -> Optional[ArchivedTranscript]:
        ...


class InMemoryStorage:
    """Lock-guarded in-process storage for tests and local sessions."""

    def __init__(self, settings: Optional[RuntimeSettings] = None):
        self._lock = asyncio.Lock()
        self._settings = settings
        self._turns: List[Turn] = []
        self._memory_logs: Dict[str, MemoryLogEntry] = {}
        self._transcripts: Dict[str, ArchivedTranscript] = {}

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def get_all_turns(self) -> List[Turn]:
        async with self._lock:
            return list(self._turns)

    async def count_turns(self) -> int:
        async with self._lock:
            return len(self._turns)

    async def create_turn(
        self,
        role: TurnRole,
        content: str,
        location: Optional[str] = None,
    ) -> Turn:
        turn = Turn(id=str(uuid4()), role=role, content=content, location=location)
        async with self._lock:
            self._turns.append(turn)
        return turn

    async def update_turn_location(self, turn_id: str, location: Optional[str]) -> Turn:
        async with self._lock:
            for index, turn in enumerate(self._turns):
                if turn.id == turn_id:
                    self._turns[index] = turn.with_location(location)
                    return self._turns[index]
        raise KeyError(f"Turn {turn_id} not found")

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    async def get_settings(self) -> Optional[RuntimeSettings]:
        return self._settings

    async def update_settings(self, **changes) -> RuntimeSettings:
        async with self._lock:
            current = self._settings or RuntimeSettings()
            self._settings = current.model_copy(update=changes)
            return self._settings

    # ------------------------------------------------------------------
    # Memory logs
    # ------------------------------------------------------------------

    async def create_memory_log_entry(self, fields: MemoryLogEntryCreate) -> MemoryLogEntry:
        entry = MemoryLogEntry(id=str(uuid4()), **fields.model_dump())
        async with self._lock:
            self._memory_logs[entry.id] = entry
        return entry

    async def get_all_memory_log_entries(self) -> List[MemoryLogEntry]:
        async with self._lock:
            return sorted(self._memory_logs.values(), key=lambda e: e.created_at)

    async def get_latest_memory_log_entry_for_location(
        self, location: str
    ) -> Optional[MemoryLogEntry]:
        async with self._lock:
            matches = [e for e in self._memory_logs.values() if e.location == location]
        if not matches:
            return None
        return max(reversed(matches), key=lambda e: e.created_at)

    async def update_memory_log_entry(self, entry_id: str, content: str) -> MemoryLogEntry:
        async with self._lock:
            if entry_id not in self._memory_logs:
                raise KeyError(f"Memory log {entry_id} not found")
            updated = self._memory_logs[entry_id].model_copy(
                update={"content": content, "updated_at": datetime.now(timezone.utc)}
            )
            self._memory_logs[entry_id] = updated
            return updated

    async def delete_memory_log_entry(self, entry_id: str) -> None:
        async with self._lock:
            self._memory_logs.pop(entry_id, None)
            orphaned = [
                t.id for t in self._transcripts.values() if t.memory_log_id == entry_id
            ]
            for transcript_id in orphaned:
                del self._transcripts[transcript_id]

    # ------------------------------------------------------------------
    # Archived transcripts
    # ------------------------------------------------------------------

    async def create_archived_transcript(
        self, memory_log_id: str, transcript_content: str
    ) -> ArchivedTranscript:
        async with self._lock:
            if memory_log_id not in self._memory_logs:
                raise KeyError(f"Memory log {memory_log_id} not found")
            transcript = ArchivedTranscript(
                id=str(uuid4()),
                memory_log_id=memory_log_id,
                transcript_content=transcript_content,
            )
            self._transcripts[transcript.id] = transcript
            return transcript

    async def get_archived_transcript_by_memory_log_id(
        self, memory_log_id: str
    ) -> Optional[ArchivedTranscript]:
        async with self._lock:
            for transcript in self._transcripts.values():
                if transcript.memory_log_id == memory_log_id:
                    return transcript
        return None
