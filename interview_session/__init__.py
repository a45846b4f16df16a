"""Live interview session: clock, voice adapters and the session runner."""
from .clock import ClockState, CountdownClock
from .models import (
    NOMINAL_DURATION_SECONDS,
    Phase,
    SessionConfig,
    SessionEvent,
    SessionState,
    TranscriptBundle,
    TranscriptItem,
    Turn,
    build_transcript,
    format_clock,
)
from .runner import SessionRunner
from .speech_input import RecognitionBackend, RecognitionResult, SpeechInputAdapter
from .speech_output import SpeechOutputAdapter, SynthesisBackend, VoiceSettings

__all__ = [
    "ClockState",
    "CountdownClock",
    "NOMINAL_DURATION_SECONDS",
    "Phase",
    "SessionConfig",
    "SessionEvent",
    "SessionState",
    "TranscriptBundle",
    "TranscriptItem",
    "Turn",
    "build_transcript",
    "format_clock",
    "SessionRunner",
    "RecognitionBackend",
    "RecognitionResult",
    "SpeechInputAdapter",
    "SpeechOutputAdapter",
    "SynthesisBackend",
    "VoiceSettings",
]
