"""
Pydantic data models for Continuum.
Turns, memory log entries and the transient values passed between pipeline stages.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TurnRole(str, Enum):
    """Author of a narrative turn."""
    USER = "user"
    ASSISTANT = "assistant"


class MemoryLogType(str, Enum):
    """
    Closed set of memory log categories.
    OTHER is the fallback arm for anything a classifier cannot place.
    """
    PLOT = "PLOT"            # Drives the main narrative forward
    CHARACTER = "CHARACTER"  # Traits, appearance, backstory, development
    EVENT = "EVENT"          # Self-contained occurrence
    LORE = "LORE"            # World history, rules, objects
    OTHER = "OTHER"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "MemoryLogType":
        """Map a free-form label onto the enum, falling back to OTHER."""
        if not label:
            return cls.OTHER
        try:
            return cls(label.strip().upper())
        except ValueError:
            return cls.OTHER


# ============================================================================
# Persisted Models
# ============================================================================

class Turn(BaseModel):
    """One message of the ongoing narrative exchange."""
    model_config = ConfigDict(frozen=True)

    id: str
    role: TurnRole
    content: str = Field(..., min_length=1)
    location: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("content")
    @classmethod
    def _content_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("turn content must not be blank")
        return value

    def with_location(self, location: Optional[str]) -> "Turn":
        """Location is the only field that may change after persistence."""
        return self.model_copy(update={"location": location})


class MemoryLogEntryCreate(BaseModel):
    """Fields supplied when a memory log entry is created."""
    content: str = Field(..., min_length=1)
    summary: str
    location: Optional[str] = None
    entity_name: Optional[str] = None
    type: MemoryLogType = MemoryLogType.OTHER
    importance: int = Field(default=5, ge=1, le=10)
    embedding: Optional[List[float]] = None


class MemoryLogEntry(MemoryLogEntryCreate):
    """A consolidated, embeddable record of several turns."""
    id: str
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ArchivedTranscript(BaseModel):
    """Verbatim transcript kept alongside a memory log entry."""
    id: str
    memory_log_id: str
    transcript_content: str
    created_at: datetime = Field(default_factory=_utcnow)


DEFAULT_BEHAVIOR_PROMPT = (
    "You are a creative and engaging storyteller. Your responses should be "
    "imaginative, vivid, and captivating."
)


class RuntimeSettings(BaseModel):
    """Singleton configuration consumed read-only by every pipeline stage."""
    behavior_prompt: str = DEFAULT_BEHAVIOR_PROMPT
    framework_template: str = ""
    character_preset: str = ""
    lore: str = ""
    provider_api_key: Optional[SecretStr] = None


# ============================================================================
# Transient Pipeline Models
# ============================================================================

class ComplianceVerdict(BaseModel):
    """Outcome of one compliance review. Not persisted."""
    is_compliant: bool
    feedback: Optional[str] = None

    @classmethod
    def compliant(cls) -> "ComplianceVerdict":
        return cls(is_compliant=True, feedback=None)


class HistoryEntry(BaseModel):
    """A conversation message in provider terms."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "model"]
    content: str

    @classmethod
    def from_turn(cls, turn: Turn) -> "HistoryEntry":
        return cls(
            role="user" if turn.role == TurnRole.USER else "model",
            content=turn.content,
        )


CORRECTIVE_NOTE_TEMPLATE = (
    "System Note: The previous response was not compliant. Please fix the "
    "following issues and regenerate the response:\n- {feedback}"
)


class GenerationContext(BaseModel):
    """Everything the generation agent needs besides the user message."""
    model_config = ConfigDict(frozen=True)

    behavior_prompt: str
    framework_template: str = ""
    character_preset: Optional[str] = None
    lore: Optional[str] = None
    relevant_memories: Tuple[str, ...] = ()
    high_fidelity_transcript: Optional[str] = None
    conversation_history: Tuple[HistoryEntry, ...] = ()

    def with_corrective_note(self, rejected_text: str, feedback: str) -> "GenerationContext":
        """
        Return a new snapshot whose history ends with the rejected draft and a
        corrective note quoting the reviewer. The receiver is left untouched.
        """
        history = self.conversation_history + (
            HistoryEntry(role="model", content=rejected_text),
            HistoryEntry(role="user", content=CORRECTIVE_NOTE_TEMPLATE.format(feedback=feedback)),
        )
        return self.model_copy(update={"conversation_history": history})


class MemoryClassification(BaseModel):
    """Classifier reply for a memory log."""
    type: MemoryLogType = MemoryLogType.OTHER
    entity_name: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value):
        if isinstance(value, MemoryLogType):
            return value
        return MemoryLogType.from_label(value if isinstance(value, str) else None)


class AgentEvent(BaseModel):
    """Event emitted by agents for audit logging."""
    run_id: str
    agent_name: str
    action: str
    input_summary: str
    output_summary: str
    duration_ms: int
    attempt: int = 1
    timestamp: datetime = Field(default_factory=_utcnow)


class PipelineResult(BaseModel):
    """What one orchestrated exchange produced."""
    run_id: str
    response: str
    location: str
    attempts: int
    compliant: bool
    feedback_history: List[str] = Field(default_factory=list)
    memory_log_scheduled: bool = False
    user_turn: Turn
    assistant_turn: Turn
    events: List[AgentEvent] = Field(default_factory=list)
    states: List[str] = Field(default_factory=list)
