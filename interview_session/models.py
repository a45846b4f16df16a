"""Session data models: configuration, turns, live state and transcripts."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PositionLevel = Literal["Junior", "Mid", "Senior"]
Role = Literal["candidate", "interviewer"]
EndReason = Literal["requested", "timeout"]

NOMINAL_DURATION_SECONDS = 20 * 60


class Phase(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    ENDING = "ending"
    ENDED = "ended"


class SessionConfig(BaseModel):  # Interview setup, frozen once the session starts
    model_config = ConfigDict(frozen=True)

    candidate_name: str = Field(min_length=1)
    position_level: PositionLevel
    notes: str = ""
    interview_type: str = "frontend_developer"

    @field_validator("candidate_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("candidate_name must not be blank")
        return cleaned


class Turn(BaseModel):  # Single dialogue turn, appended in acceptance order
    role: Role
    content: str
    sequence: int = Field(ge=0)


class SessionState(BaseModel):
    """Live state owned by one SessionRunner."""

    turns: List[Turn] = Field(default_factory=list)
    remaining_seconds: int = NOMINAL_DURATION_SECONDS
    phase: Phase = Phase.IDLE
    voice_capture_active: bool = False
    voice_playback_active: bool = False
    pending_transcript_buffer: str = ""
    interim_transcript: str = ""
    voice_output_enabled: bool = True
    awaiting_reply: bool = False
    end_reason: Optional[EndReason] = None


class TranscriptItem(BaseModel):  # Derived transcript line with an interpolated timestamp
    model_config = ConfigDict(frozen=True)

    timestamp: str
    speaker: Role
    content: str


class TranscriptBundle(BaseModel):  # Hand-off produced when a session ends
    model_config = ConfigDict(frozen=True)

    candidate_name: str
    position_level: PositionLevel
    notes: str = ""
    transcript: List[TranscriptItem] = Field(default_factory=list)


class SessionEvent(BaseModel):  # Observation delivered to runner subscribers
    kind: Literal[
        "started",
        "tick",
        "turn_appended",
        "agent_failed",
        "reply_discarded",
        "capture_changed",
        "transcript_changed",
        "playback_changed",
        "voice_output_changed",
        "ended",
    ]
    session_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)


def format_clock(seconds: int) -> str:
    """Render whole seconds as zero-padded ``mm:ss``."""

    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def build_transcript(turns: List[Turn], duration_seconds: int = NOMINAL_DURATION_SECONDS) -> List[TranscriptItem]:
    """Map turns to transcript items spread linearly over the nominal duration.

    Turns carry no capture time, so the label is ``index / len(turns)`` of the
    session length rather than wall-clock time.
    """

    total = len(turns)
    return [
        TranscriptItem(
            timestamp=format_clock((idx * duration_seconds) // total),
            speaker=turn.role,
            content=turn.content,
        )
        for idx, turn in enumerate(turns)
    ]


__all__ = [
    "NOMINAL_DURATION_SECONDS",
    "EndReason",
    "Phase",
    "PositionLevel",
    "Role",
    "SessionConfig",
    "SessionEvent",
    "SessionState",
    "Turn",
    "TranscriptBundle",
    "TranscriptItem",
    "build_transcript",
    "format_clock",
]
