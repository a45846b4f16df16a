"""Continuous speech recognition wrapped as a buffered capture adapter."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecognitionResult:  # Partial recogniser output
    text: str
    is_final: bool


class RecognitionBackend(Protocol):  # Streaming recogniser provided by the platform
    def start(
        self,
        on_result: Callable[[List[RecognitionResult]], None],
        on_error: Callable[[str], None],
        on_end: Callable[[], None],
    ) -> None: ...

    def stop(self) -> None: ...


StateObserver = Callable[[bool], None]
TranscriptObserver = Callable[[str, str], None]


class SpeechInputAdapter:
    """Accumulate finalised speech fragments into a submit buffer.

    Interim fragments are display-only and never reach the buffer; a later
    final result supersedes them. Stopping keeps the buffer, only
    ``take_buffer``/``clear_buffer`` or a restart clear it.
    """

    def __init__(
        self,
        backend: Optional[RecognitionBackend] = None,
        *,
        on_state: Optional[StateObserver] = None,
        on_transcript: Optional[TranscriptObserver] = None,
    ) -> None:
        self._backend = backend
        self._lock = threading.RLock()
        self._listening = False
        self._buffer = ""
        self._interim = ""
        # Bumped on every start so callbacks from an older run are ignored.
        self._generation = 0
        self.on_state = on_state
        self.on_transcript = on_transcript

    @property
    def available(self) -> bool:
        return self._backend is not None

    @property
    def listening(self) -> bool:
        return self._listening

    @property
    def buffer(self) -> str:
        return self._buffer

    @property
    def interim(self) -> str:
        return self._interim

    def start_listening(self) -> bool:
        if self._backend is None:
            return False
        with self._lock:
            if self._listening:
                return False
            self._generation += 1
            generation = self._generation
            self._listening = True
            self._buffer = ""
            self._interim = ""
        self._notify_transcript("", "")
        self._notify_state(True)
        try:
            self._backend.start(
                lambda results: self._handle_results(generation, results),
                lambda error: self._handle_error(generation, error),
                lambda: self._handle_end(generation),
            )
        except Exception as exc:  # noqa: BLE001
            self._handle_error(generation, str(exc))
            return False
        return True

    def stop_listening(self) -> bool:
        if self._backend is None:
            return False
        with self._lock:
            if not self._listening:
                return False
            self._listening = False
            interim_dropped = bool(self._interim)
            self._interim = ""
            buffer = self._buffer
        if interim_dropped:
            self._notify_transcript(buffer, "")
        self._notify_state(False)
        try:
            self._backend.stop()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Speech recognition stop failed: %s", exc)
        return True

    def take_buffer(self) -> str:
        with self._lock:
            text = self._buffer.strip()
            self._buffer = ""
            self._interim = ""
        self._notify_transcript("", "")
        return text

    def clear_buffer(self) -> None:
        with self._lock:
            changed = bool(self._buffer or self._interim)
            self._buffer = ""
            self._interim = ""
        if changed:
            self._notify_transcript("", "")

    def _handle_results(self, generation: int, results: List[RecognitionResult]) -> None:
        with self._lock:
            if generation != self._generation or not self._listening:
                return
            interim = ""
            for result in results:
                if result.is_final:
                    self._buffer += result.text + " "
                else:
                    interim += result.text
            self._interim = interim
            snapshot: Tuple[str, str] = (self._buffer, self._interim)
        self._notify_transcript(*snapshot)

    def _handle_error(self, generation: int, error: str) -> None:
        logger.warning("Speech recognition error: %s", error)
        self._go_idle(generation)

    def _handle_end(self, generation: int) -> None:
        self._go_idle(generation)

    def _go_idle(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or not self._listening:
                return
            self._listening = False
            self._interim = ""
            buffer = self._buffer
        self._notify_transcript(buffer, "")
        self._notify_state(False)

    def _notify_state(self, listening: bool) -> None:
        if self.on_state is not None:
            self.on_state(listening)

    def _notify_transcript(self, buffer: str, interim: str) -> None:
        if self.on_transcript is not None:
            self.on_transcript(buffer, interim)


__all__ = ["RecognitionBackend", "RecognitionResult", "SpeechInputAdapter"]
