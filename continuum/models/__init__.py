"""
Continuum Data Models Module
Pydantic schemas for the narrative pipeline.
"""

from .schemas import (
    CORRECTIVE_NOTE_TEMPLATE,
    DEFAULT_BEHAVIOR_PROMPT,
    # Event Models
    AgentEvent,
    ArchivedTranscript,
    # Pipeline Models
    ComplianceVerdict,
    GenerationContext,
    HistoryEntry,
    MemoryClassification,
    MemoryLogEntry,
    MemoryLogEntryCreate,
    # Enums
    MemoryLogType,
    PipelineResult,
    RuntimeSettings,
    # Persisted Models
    Turn,
    TurnRole,
)

__all__ = [
    "TurnRole",
    "MemoryLogType",
    "Turn",
    "MemoryLogEntryCreate",
    "MemoryLogEntry",
    "ArchivedTranscript",
    "RuntimeSettings",
    "DEFAULT_BEHAVIOR_PROMPT",
    "ComplianceVerdict",
    "HistoryEntry",
    "CORRECTIVE_NOTE_TEMPLATE",
    "GenerationContext",
    "MemoryClassification",
    "AgentEvent",
    "PipelineResult",
]
