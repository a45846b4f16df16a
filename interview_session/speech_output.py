"""Speech synthesis wrapped as a single-utterance playback adapter."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoiceSettings:  # Utterance parameters passed to the synthesiser
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    language: str = "en-US"


class SynthesisBackend(Protocol):  # Text-to-speech engine provided by the platform
    def speak(
        self,
        text: str,
        voice: VoiceSettings,
        on_start: Callable[[], None],
        on_end: Callable[[], None],
        on_error: Callable[[str], None],
    ) -> None: ...

    def cancel(self) -> None: ...


class SpeechOutputAdapter:
    """Play interviewer text, one audible utterance at a time."""

    def __init__(
        self,
        backend: Optional[SynthesisBackend] = None,
        *,
        enabled: bool = True,
        voice: Optional[VoiceSettings] = None,
        on_state: Optional[Callable[[bool], None]] = None,
    ) -> None:
        self._backend = backend
        self._enabled = enabled
        self._voice = voice or VoiceSettings()
        self._lock = threading.RLock()
        self._speaking = False
        self._utterance = 0
        self.on_state = on_state

    @property
    def available(self) -> bool:
        return self._backend is not None

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def speaking(self) -> bool:
        return self._speaking

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
        if not enabled:
            self.cancel()

    def speak(self, text: str) -> bool:
        if not self._enabled or self._backend is None or not text.strip():
            return False
        self.cancel()
        with self._lock:
            self._utterance += 1
            utterance = self._utterance
        try:
            self._backend.speak(
                text,
                self._voice,
                lambda: self._set_speaking(utterance, True),
                lambda: self._set_speaking(utterance, False),
                lambda error: self._handle_error(utterance, error),
            )
        except Exception as exc:  # noqa: BLE001
            self._handle_error(utterance, str(exc))
            return False
        return True

    def cancel(self) -> None:
        if self._backend is None:
            return
        with self._lock:
            # Invalidate callbacks from the cancelled utterance.
            self._utterance += 1
            was_speaking = self._speaking
            self._speaking = False
        self._cancel_backend()
        if was_speaking:
            self._notify(False)

    def _cancel_backend(self) -> None:
        try:
            self._backend.cancel()  # type: ignore[union-attr]
        except Exception as exc:  # noqa: BLE001
            logger.warning("Speech synthesis cancel failed: %s", exc)

    def _handle_error(self, utterance: int, error: str) -> None:
        logger.warning("Speech synthesis error: %s", error)
        self._set_speaking(utterance, False)

    def _set_speaking(self, utterance: int, speaking: bool) -> None:
        with self._lock:
            if utterance != self._utterance or self._speaking == speaking:
                return
            self._speaking = speaking
        self._notify(speaking)

    def _notify(self, speaking: bool) -> None:
        if self.on_state is not None:
            self.on_state(speaking)


__all__ = ["SpeechOutputAdapter", "SynthesisBackend", "VoiceSettings"]
