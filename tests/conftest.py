import sys
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from agent_gateway import AgentFailure, AgentReply
from config.registry import RECOGNITION_KEY, SYNTHESIS_KEY, unbind_model
from interview_session import (
    CountdownClock,
    SessionConfig,
    SessionRunner,
    SpeechInputAdapter,
    SpeechOutputAdapter,
)


class ManualTime:
    """Monotonic time source advanced by hand."""

    def __init__(self, start: float = 100.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


class QueuedDispatch:
    """Hold agent calls until the test releases them, in any order."""

    def __init__(self) -> None:
        self.jobs: List[Callable[[], None]] = []

    def __call__(self, job: Callable[[], None]) -> None:
        self.jobs.append(job)

    def run(self, index: int = 0) -> None:
        self.jobs.pop(index)()

    def run_all(self) -> None:
        while self.jobs:
            self.run()


class FakeGateway:
    """Scripted stand-in for AgentGateway."""

    def __init__(self, replies: Optional[List[Any]] = None, evaluation: Any = None) -> None:
        self.replies = list(replies or [])
        self.evaluation = evaluation
        self.messages: List[str] = []
        self.contexts: List[Any] = []
        self.evaluation_requests: List[Any] = []

    def send_message(self, utterance, context):
        self.messages.append(utterance)
        self.contexts.append(context)
        reply = self.replies.pop(0) if self.replies else f"echo: {utterance}"
        if isinstance(reply, (AgentFailure, AgentReply)):
            return reply
        if isinstance(reply, Exception):
            raise reply
        return AgentReply(content=reply, raw=reply)

    def request_evaluation(self, message, context, schema):
        self.evaluation_requests.append((message, context))
        if isinstance(self.evaluation, AgentFailure):
            return self.evaluation
        return schema.model_validate(self.evaluation)


class FakeRecognizer:
    def __init__(self, fail_on_start: bool = False) -> None:
        self.fail_on_start = fail_on_start
        self.starts = 0
        self.stops = 0
        self.on_result = None
        self.on_error = None
        self.on_end = None

    def start(self, on_result, on_error, on_end) -> None:
        self.starts += 1
        if self.fail_on_start:
            raise OSError("microphone unavailable")
        self.on_result, self.on_error, self.on_end = on_result, on_error, on_end

    def stop(self) -> None:
        self.stops += 1


class FakeSynthesizer:
    def __init__(self) -> None:
        self.spoken: List[str] = []
        self.cancels = 0
        self.callbacks: List[Any] = []

    def speak(self, text, voice, on_start, on_end, on_error) -> None:
        self.spoken.append(text)
        self.callbacks.append((on_start, on_end, on_error))

    def cancel(self) -> None:
        self.cancels += 1


EVALUATION_PAYLOAD = {
    "overall_score": {"weighted_average": 7.4},
    "scores": {"react": {"score": 8}, "css": {"score": 6.5}},
    "strengths": [{"area": "React", "description": "Solid grasp of hooks"}],
    "weaknesses": [{"area": "CSS", "description": "Unsure about grid layouts"}],
    "recommendation": {"decision": "Hire", "summary": "Strong mid-level candidate"},
}


@pytest.fixture(autouse=True)
def clean_speech_registry():
    yield
    unbind_model(RECOGNITION_KEY)
    unbind_model(SYNTHESIS_KEY)


@pytest.fixture
def manual_time():
    return ManualTime()


@pytest.fixture
def queued_dispatch():
    return QueuedDispatch()


@pytest.fixture
def recognizer():
    return FakeRecognizer()


@pytest.fixture
def synthesizer():
    return FakeSynthesizer()


@pytest.fixture
def evaluation_payload():
    return {**EVALUATION_PAYLOAD}


@pytest.fixture
def fake_gateway():
    """Factory for scripted gateways."""

    return FakeGateway


@pytest.fixture
def session_config():
    return SessionConfig(candidate_name="Ada Lovelace", position_level="Mid", notes="Referred by Grace")


@pytest.fixture
def make_runner(manual_time):
    """Build a runner with fakes; returns (runner, gateway, recognizer, synthesizer)."""

    def _make(
        replies=None,
        *,
        dispatch=None,
        voice_output=True,
        duration_seconds=1200,
        with_backends=True,
    ):
        gateway = FakeGateway(replies)
        recognizer = FakeRecognizer() if with_backends else None
        synthesizer = FakeSynthesizer() if with_backends else None
        runner = SessionRunner(
            gateway,
            listener=SpeechInputAdapter(recognizer),
            speaker=SpeechOutputAdapter(synthesizer),
            clock_factory=lambda on_tick, on_expire: CountdownClock(
                on_tick, on_expire, now=manual_time, run_in_thread=False
            ),
            dispatch=dispatch or (lambda job: job()),
            duration_seconds=duration_seconds,
            voice_output=voice_output,
        )
        return runner, gateway, recognizer, synthesizer

    return _make
