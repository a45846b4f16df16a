"""Session runner: the state machine behind a live timed interview."""
from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, List, Optional, Union

from agent_gateway import AgentContext, AgentFailure, AgentGateway, AgentReply
from observability import log_event

from .clock import CountdownClock
from .models import (
    NOMINAL_DURATION_SECONDS,
    EndReason,
    Phase,
    Role,
    SessionConfig,
    SessionEvent,
    SessionState,
    TranscriptBundle,
    Turn,
    build_transcript,
)
from .speech_input import SpeechInputAdapter
from .speech_output import SpeechOutputAdapter

logger = logging.getLogger(__name__)

Dispatch = Callable[[Callable[[], None]], None]
ClockFactory = Callable[[Callable[[int], None], Callable[[], None]], CountdownClock]
Subscriber = Callable[[SessionEvent], None]


def _spawn(job: Callable[[], None]) -> None:
    threading.Thread(target=job, name="agent-call", daemon=True).start()


class SessionRunner:
    """Own one interview session from start to transcript hand-off.

    Clock ticks, recogniser and synthesiser callbacks and agent replies may
    arrive on any thread; each is folded into the state under a single
    re-entrant lock, one at a time. At most one agent call is outstanding, so
    turns are always in the order their submissions were accepted. Replies
    that resolve after the session ended are discarded.
    """

    def __init__(
        self,
        gateway: AgentGateway,
        *,
        listener: Optional[SpeechInputAdapter] = None,
        speaker: Optional[SpeechOutputAdapter] = None,
        clock_factory: Optional[ClockFactory] = None,
        dispatch: Optional[Dispatch] = None,
        duration_seconds: int = NOMINAL_DURATION_SECONDS,
        voice_output: bool = True,
        session_id: Optional[str] = None,
    ) -> None:
        self.session_id = session_id or str(uuid.uuid4())
        self._gateway = gateway
        self._duration = duration_seconds
        self._dispatch = dispatch or _spawn
        self._lock = threading.RLock()
        self._subscribers: List[Subscriber] = []
        self._config: Optional[SessionConfig] = None
        self._bundle: Optional[TranscriptBundle] = None
        self._pending_call: Optional[int] = None
        self._call_seq = 0
        self._state = SessionState(remaining_seconds=duration_seconds, voice_output_enabled=voice_output)

        self._listener = listener or SpeechInputAdapter()
        self._listener.on_state = self._on_capture_state
        self._listener.on_transcript = self._on_transcript
        self._speaker = speaker or SpeechOutputAdapter()
        self._speaker.on_state = self._on_playback_state
        self._speaker.set_enabled(voice_output)
        self._clock = (clock_factory or CountdownClock)(self._on_clock_tick, self._on_clock_expired)

    # -- read side -----------------------------------------------------

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def duration_seconds(self) -> int:
        return self._duration

    @property
    def config(self) -> Optional[SessionConfig]:
        return self._config

    @property
    def bundle(self) -> Optional[TranscriptBundle]:
        return self._bundle

    @property
    def listener(self) -> SpeechInputAdapter:
        return self._listener

    @property
    def speaker(self) -> SpeechOutputAdapter:
        return self._speaker

    def snapshot(self) -> SessionState:
        with self._lock:
            return self._state.model_copy(deep=True)

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(subscriber)

        def _unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return _unsubscribe

    # -- commands ------------------------------------------------------

    def start(self, config: SessionConfig) -> None:
        with self._lock:
            if self._state.phase is not Phase.IDLE:
                raise RuntimeError(f"session {self.session_id} already started")
            self._config = config
            self._state.turns = []
            self._state.remaining_seconds = self._duration
            self._state.phase = Phase.RUNNING
            self._clock.start(self._duration)
            log_event(
                "session_started",
                self.session_id,
                phase=self._state.phase.value,
                remaining=self._duration,
                position_level=config.position_level,
            )
            self._emit("started", remaining=self._duration)

    def submit_text(self, text: str) -> bool:
        cleaned = (text or "").strip()
        with self._lock:
            if not self._can_submit() or not cleaned:
                logger.debug("Submission rejected session=%s phase=%s", self.session_id, self._state.phase.value)
                return False
            return self._accept(cleaned)

    def submit_voice_buffer(self) -> bool:
        with self._lock:
            if not self._can_submit() or not self._listener.buffer.strip():
                return False
            self._listener.stop_listening()
            text = self._listener.take_buffer()
            return self._accept(text)

    def start_listening(self) -> bool:
        with self._lock:
            if self._state.phase is not Phase.RUNNING:
                return False
            return self._listener.start_listening()

    def stop_listening(self) -> bool:
        with self._lock:
            if self._state.phase is not Phase.RUNNING:
                return False
            return self._listener.stop_listening()

    def set_voice_output(self, enabled: bool) -> None:
        with self._lock:
            if self._state.phase in (Phase.ENDING, Phase.ENDED):
                return
            if self._state.voice_output_enabled == enabled:
                return
            self._state.voice_output_enabled = enabled
            self._speaker.set_enabled(enabled)
            self._emit("voice_output_changed", enabled=enabled)

    def tick(self) -> None:
        with self._lock:
            if self._state.phase is not Phase.RUNNING:
                return
            self._state.remaining_seconds = max(0, self._state.remaining_seconds - 1)
            self._emit("tick", remaining=self._state.remaining_seconds)
            if self._state.remaining_seconds == 0:
                self._finish("timeout")

    def end(self, reason: EndReason = "requested") -> Optional[TranscriptBundle]:
        """End the session and return its transcript; repeat calls return the same bundle."""

        return self._finish(reason)

    # -- internals -----------------------------------------------------

    def _can_submit(self) -> bool:
        return self._state.phase is Phase.RUNNING and self._pending_call is None

    def _require_config(self) -> SessionConfig:
        if self._config is None:
            raise RuntimeError(f"session {self.session_id} has no configuration")
        return self._config

    def _accept(self, text: str) -> bool:
        config = self._require_config()
        self._append_turn("candidate", text)
        self._listener.clear_buffer()
        self._call_seq += 1
        token = self._call_seq
        self._pending_call = token
        self._state.awaiting_reply = True
        context = AgentContext(
            candidate_name=config.candidate_name,
            position_level=config.position_level,
            interview_type=config.interview_type,
        )
        try:
            self._dispatch(lambda: self._run_agent_call(token, text, context))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Could not dispatch agent call for session %s", self.session_id)
            self._on_agent_result(token, AgentFailure(reason="transport", detail=str(exc)))
        return True

    def _run_agent_call(self, token: int, text: str, context: AgentContext) -> None:
        try:
            result: Union[AgentReply, AgentFailure] = self._gateway.send_message(text, context)
        except Exception as exc:  # noqa: BLE001
            logger.exception("Agent gateway raised for session %s", self.session_id)
            result = AgentFailure(reason="transport", detail=str(exc))
        self._on_agent_result(token, result)

    def _on_agent_result(self, token: int, result: Union[AgentReply, AgentFailure]) -> None:
        with self._lock:
            if token != self._pending_call or self._state.phase is not Phase.RUNNING:
                log_event("reply_discarded", self.session_id, phase=self._state.phase.value)
                self._emit("reply_discarded", phase=self._state.phase.value)
                return
            self._pending_call = None
            self._state.awaiting_reply = False
            if isinstance(result, AgentFailure):
                log_event(
                    "agent_failed",
                    self.session_id,
                    level=logging.WARNING,
                    reason=result.reason,
                    status=result.status_code,
                )
                self._emit("agent_failed", reason=result.reason, detail=result.detail)
                return
            self._append_turn("interviewer", result.content)
            if self._state.voice_output_enabled:
                self._speaker.speak(result.content)

    def _append_turn(self, role: Role, content: str) -> Turn:
        turn = Turn(role=role, content=content, sequence=len(self._state.turns))
        self._state.turns.append(turn)
        log_event("turn_appended", self.session_id, role=role, sequence=turn.sequence)
        self._emit("turn_appended", turn=turn.model_dump())
        return turn

    def _finish(self, reason: EndReason) -> Optional[TranscriptBundle]:
        with self._lock:
            if self._state.phase is Phase.IDLE:
                return None
            if self._state.phase is not Phase.RUNNING:
                return self._bundle
            self._state.phase = Phase.ENDING
            self._state.end_reason = reason
            self._pending_call = None
            self._state.awaiting_reply = False
            self._clock.cancel()
            self._listener.stop_listening()
            self._speaker.cancel()
            self._state.voice_capture_active = False
            self._state.voice_playback_active = False
            config = self._require_config()
            self._bundle = TranscriptBundle(
                candidate_name=config.candidate_name,
                position_level=config.position_level,
                notes=config.notes,
                transcript=build_transcript(self._state.turns, self._duration),
            )
            self._state.phase = Phase.ENDED
            log_event(
                "session_ended",
                self.session_id,
                phase=self._state.phase.value,
                reason=reason,
                remaining=self._state.remaining_seconds,
            )
            self._emit("ended", reason=reason, turns=len(self._state.turns))
            return self._bundle

    def _on_clock_tick(self, _remaining: int) -> None:
        self.tick()

    def _on_clock_expired(self) -> None:
        self._finish("timeout")

    # Adapter observers may run late on a platform thread, so the pushed
    # values are only a wake-up; state is re-read from the adapter here.

    def _on_capture_state(self, _listening: bool) -> None:
        with self._lock:
            listening = self._listener.listening
            if self._state.voice_capture_active == listening:
                return
            self._state.voice_capture_active = listening
            self._emit("capture_changed", listening=listening)

    def _on_transcript(self, _buffer: str, _interim: str) -> None:
        with self._lock:
            buffer, interim = self._listener.buffer, self._listener.interim
            if (self._state.pending_transcript_buffer, self._state.interim_transcript) == (buffer, interim):
                return
            self._state.pending_transcript_buffer = buffer
            self._state.interim_transcript = interim
            self._emit("transcript_changed", buffer=buffer, interim=interim)

    def _on_playback_state(self, _speaking: bool) -> None:
        with self._lock:
            speaking = self._speaker.speaking
            if self._state.voice_playback_active == speaking:
                return
            self._state.voice_playback_active = speaking
            self._emit("playback_changed", speaking=speaking)

    def _emit(self, kind: str, **payload: Any) -> None:
        event = SessionEvent(kind=kind, session_id=self.session_id, payload=payload)  # type: ignore[arg-type]
        for subscriber in list(self._subscribers):
            try:
                subscriber(event)
            except Exception:  # noqa: BLE001
                logger.exception("Session subscriber failed on %s", kind)


__all__ = ["Dispatch", "SessionRunner"]
