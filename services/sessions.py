"""Helpers for creating, tracking and closing live interview sessions."""
from __future__ import annotations

import threading
from typing import Callable, Dict, Optional

from pydantic import BaseModel

from agent_gateway import AgentGateway
from config import RECOGNITION_KEY, SYNTHESIS_KEY, resolve_optional, resolve_route
from config.settings import settings
from interview_session import (
    SessionConfig,
    SessionEvent,
    SessionRunner,
    SessionState,
    SpeechInputAdapter,
    SpeechOutputAdapter,
    VoiceSettings,
)
from observability import log_event

from .interviews import InterviewBook, InterviewRecord

RunnerFactory = Callable[..., SessionRunner]


def default_gateway() -> AgentGateway:
    """Gateway bound to the configured agent route."""

    return AgentGateway(resolve_route(settings))


def default_runner_factory(*, voice_output: bool) -> SessionRunner:
    """Build a runner wired to the configured agent and any bound speech backends."""

    voice = VoiceSettings(
        rate=settings.SPEECH_RATE,
        pitch=settings.SPEECH_PITCH,
        volume=settings.SPEECH_VOLUME,
        language=settings.SPEECH_LANGUAGE,
    )
    return SessionRunner(
        default_gateway(),
        listener=SpeechInputAdapter(resolve_optional(RECOGNITION_KEY)),
        speaker=SpeechOutputAdapter(resolve_optional(SYNTHESIS_KEY), voice=voice),
        duration_seconds=settings.SESSION_DURATION_SECONDS,
        voice_output=voice_output,
    )


class ClosedSession(BaseModel):  # What remains of a session once its runner is released
    session_id: str
    record: InterviewRecord
    state: SessionState
    duration_seconds: int


class SessionRegistry:
    """Live runners by session id; finished transcripts are filed into the book.

    A runner is dropped as soon as its transcript is filed; the final state
    stays available through ``closed``. Runner methods are never called with
    the registry lock held, so clock and agent threads filing a transcript
    cannot deadlock against API callers.
    """

    def __init__(self, book: InterviewBook, factory: RunnerFactory = default_runner_factory) -> None:
        self.book = book
        self._factory = factory
        self._lock = threading.RLock()
        self._runners: Dict[str, SessionRunner] = {}
        self._closed: Dict[str, ClosedSession] = {}

    def start(self, config: SessionConfig, *, voice_output: Optional[bool] = None) -> SessionRunner:
        enabled = settings.VOICE_OUTPUT_DEFAULT if voice_output is None else voice_output
        runner = self._factory(voice_output=enabled)
        runner.subscribe(self._filer(runner))
        with self._lock:
            self._runners[runner.session_id] = runner
        runner.start(config)
        return runner

    def get(self, session_id: str) -> SessionRunner:
        with self._lock:
            if session_id not in self._runners:
                raise KeyError(f"Unknown session: {session_id}")
            return self._runners[session_id]

    def closed(self, session_id: str) -> ClosedSession:
        with self._lock:
            if session_id not in self._closed:
                raise KeyError(f"Session has not ended: {session_id}")
            return self._closed[session_id]

    def end(self, session_id: str) -> InterviewRecord:
        try:
            runner = self.get(session_id)
        except KeyError:
            return self.record_for(session_id)
        runner.end()
        return self.record_for(session_id)

    def record_for(self, session_id: str) -> InterviewRecord:
        return self.closed(session_id).record

    def active_count(self) -> int:
        with self._lock:
            return len(self._runners)

    def _filer(self, runner: SessionRunner) -> Callable[[SessionEvent], None]:
        def _on_event(event: SessionEvent) -> None:
            if event.kind != "ended" or runner.bundle is None:
                return
            # Runs on the runner's thread with its lock held; snapshot() re-enters it.
            state = runner.snapshot()
            with self._lock:
                if runner.session_id in self._closed:
                    return
                record = self.book.add_completed(runner.bundle, session_id=runner.session_id)
                self._closed[runner.session_id] = ClosedSession(
                    session_id=runner.session_id,
                    record=record,
                    state=state,
                    duration_seconds=runner.duration_seconds,
                )
                self._runners.pop(runner.session_id, None)
            log_event("session_released", runner.session_id, status=record.status)

        return _on_event


book = InterviewBook()
registry = SessionRegistry(book)


__all__ = [
    "ClosedSession",
    "RunnerFactory",
    "SessionRegistry",
    "book",
    "default_gateway",
    "default_runner_factory",
    "registry",
]
