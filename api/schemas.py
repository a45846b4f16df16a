"""Pydantic schemas for the interview session API."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from interview_session import Phase, SessionRunner, SessionState, TranscriptBundle, Turn, format_clock
from interview_session.models import EndReason, PositionLevel
from services.sessions import ClosedSession


class StartReq(BaseModel):
    candidate_name: str = Field(min_length=1)
    position_level: PositionLevel
    notes: str = ""
    voice_output: Optional[bool] = None


class MessageReq(BaseModel):
    text: str


class VoiceOutputReq(BaseModel):
    enabled: bool


class SessionView(BaseModel):
    session_id: str
    phase: Phase
    candidate_name: str
    position_level: PositionLevel
    remaining_seconds: int
    remaining_label: str
    progress_percent: float
    turns: List[Turn] = Field(default_factory=list)
    awaiting_reply: bool = False
    voice_input_available: bool = False
    voice_output_available: bool = False
    voice_output_enabled: bool = True
    voice_capture_active: bool = False
    voice_playback_active: bool = False
    pending_transcript: str = ""
    interim_transcript: str = ""
    end_reason: Optional[EndReason] = None

    @classmethod
    def from_runner(cls, runner: SessionRunner) -> "SessionView":
        config = runner.config
        return cls._build(
            runner.session_id,
            runner.snapshot(),
            runner.duration_seconds,
            candidate_name=config.candidate_name if config else "",
            position_level=config.position_level if config else "Junior",
            voice_input_available=runner.listener.available,
            voice_output_available=runner.speaker.available,
        )

    @classmethod
    def from_closed(cls, closed: ClosedSession) -> "SessionView":
        return cls._build(
            closed.session_id,
            closed.state,
            closed.duration_seconds,
            candidate_name=closed.record.candidate_name,
            position_level=closed.record.position_level,
        )

    @classmethod
    def _build(
        cls,
        session_id: str,
        state: SessionState,
        duration: int,
        *,
        candidate_name: str,
        position_level: PositionLevel,
        voice_input_available: bool = False,
        voice_output_available: bool = False,
    ) -> "SessionView":
        elapsed = duration - state.remaining_seconds
        return cls(
            session_id=session_id,
            phase=state.phase,
            candidate_name=candidate_name,
            position_level=position_level,
            remaining_seconds=state.remaining_seconds,
            remaining_label=format_clock(state.remaining_seconds),
            progress_percent=round(elapsed / duration * 100, 1),
            turns=state.turns,
            awaiting_reply=state.awaiting_reply,
            voice_input_available=voice_input_available,
            voice_output_available=voice_output_available,
            voice_output_enabled=state.voice_output_enabled,
            voice_capture_active=state.voice_capture_active,
            voice_playback_active=state.voice_playback_active,
            pending_transcript=state.pending_transcript_buffer,
            interim_transcript=state.interim_transcript,
            end_reason=state.end_reason,
        )


class CommandResp(BaseModel):
    accepted: bool
    session: SessionView


class EndResp(BaseModel):
    interview_id: str
    session: SessionView
    bundle: TranscriptBundle
