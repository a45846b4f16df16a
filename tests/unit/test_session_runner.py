import re
import threading

import pytest

from agent_gateway import AgentFailure
from interview_session import Phase, RecognitionResult


def _roles(runner):
    return [turn.role for turn in runner.snapshot().turns]


def test_start_enters_running(make_runner, session_config):
    runner, *_ = make_runner()
    events = []
    runner.subscribe(events.append)
    runner.start(session_config)

    state = runner.snapshot()
    assert state.phase is Phase.RUNNING
    assert state.remaining_seconds == 1200
    assert state.turns == []
    assert events[0].kind == "started"


def test_start_twice_raises(make_runner, session_config):
    runner, *_ = make_runner()
    runner.start(session_config)
    with pytest.raises(RuntimeError):
        runner.start(session_config)


def test_running_without_configuration_raises(make_runner):
    runner, gateway, *_ = make_runner()
    runner._state.phase = Phase.RUNNING
    with pytest.raises(RuntimeError, match="no configuration"):
        runner.submit_text("Hello")
    assert runner.snapshot().turns == []
    assert gateway.messages == []


def test_hello_round_trip_speaks_reply(make_runner, session_config):
    runner, gateway, _, synthesizer = make_runner(["Hi there"])
    runner.start(session_config)

    assert runner.submit_text("Hello") is True
    turns = runner.snapshot().turns
    assert [(t.role, t.content, t.sequence) for t in turns] == [
        ("candidate", "Hello", 0),
        ("interviewer", "Hi there", 1),
    ]
    assert synthesizer.spoken == ["Hi there"]
    assert gateway.contexts[0].candidate_name == "Ada Lovelace"
    assert gateway.contexts[0].interview_type == "frontend_developer"


def test_reply_not_spoken_when_voice_output_disabled(make_runner, session_config):
    runner, _, _, synthesizer = make_runner(["Hi there"], voice_output=False)
    runner.start(session_config)
    runner.submit_text("Hello")
    assert _roles(runner) == ["candidate", "interviewer"]
    assert synthesizer.spoken == []


def test_toggling_voice_output_mid_session(make_runner, session_config):
    runner, _, _, synthesizer = make_runner(["first", "second"])
    runner.start(session_config)
    runner.submit_text("one")
    runner.set_voice_output(False)
    runner.submit_text("two")
    assert synthesizer.spoken == ["first"]
    assert runner.snapshot().voice_output_enabled is False


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_blank_submission_changes_nothing(make_runner, session_config, text):
    runner, gateway, *_ = make_runner()
    runner.start(session_config)
    before = runner.snapshot()
    assert runner.submit_text(text) is False
    assert runner.snapshot() == before
    assert gateway.messages == []


def test_submission_text_is_trimmed(make_runner, session_config):
    runner, gateway, *_ = make_runner()
    runner.start(session_config)
    runner.submit_text("  useMemo caches values  ")
    assert gateway.messages == ["useMemo caches values"]
    assert runner.snapshot().turns[0].content == "useMemo caches values"


def test_second_submit_rejected_while_reply_outstanding(make_runner, session_config, queued_dispatch):
    runner, gateway, *_ = make_runner(["reply"], dispatch=queued_dispatch)
    runner.start(session_config)

    assert runner.submit_text("first") is True
    assert runner.snapshot().awaiting_reply is True
    assert runner.submit_text("second") is False
    assert _roles(runner) == ["candidate"]

    queued_dispatch.run_all()
    assert _roles(runner) == ["candidate", "interviewer"]
    assert runner.submit_text("second") is True


def test_turns_follow_acceptance_order(make_runner, session_config, queued_dispatch):
    runner, *_ = make_runner(["r1", "r2", "r3"], dispatch=queued_dispatch)
    runner.start(session_config)
    for text in ("q1", "q2", "q3"):
        assert runner.submit_text(text) is True
        queued_dispatch.run_all()

    turns = runner.snapshot().turns
    assert [t.content for t in turns] == ["q1", "r1", "q2", "r2", "q3", "r3"]
    assert [t.sequence for t in turns] == list(range(6))


def test_unsuccessful_reply_keeps_only_candidate_turn(make_runner, session_config):
    failure = AgentFailure(reason="unsuccessful", detail="agent busy")
    runner, *_ = make_runner([failure, "recovered"])
    events = []
    runner.subscribe(events.append)
    runner.start(session_config)

    assert runner.submit_text("Hello") is True
    assert _roles(runner) == ["candidate"]
    assert runner.phase is Phase.RUNNING
    assert any(e.kind == "agent_failed" and e.payload["reason"] == "unsuccessful" for e in events)

    assert runner.submit_text("Hello again") is True
    assert _roles(runner) == ["candidate", "candidate", "interviewer"]


def test_gateway_exception_is_treated_as_failure(make_runner, session_config):
    runner, *_ = make_runner([RuntimeError("socket closed")])
    runner.start(session_config)
    assert runner.submit_text("Hello") is True
    assert _roles(runner) == ["candidate"]
    assert runner.snapshot().awaiting_reply is False


def test_dispatch_failure_is_treated_as_failure(make_runner, session_config):
    def broken(job):
        raise RuntimeError("no threads left")

    runner, *_ = make_runner(dispatch=broken)
    runner.start(session_config)
    assert runner.submit_text("Hello") is True
    assert runner.snapshot().awaiting_reply is False


def test_submit_before_start_is_rejected(make_runner):
    runner, gateway, *_ = make_runner()
    assert runner.submit_text("Hello") is False
    assert runner.submit_voice_buffer() is False
    assert runner.start_listening() is False
    assert gateway.messages == []


def test_end_before_start_returns_none(make_runner):
    runner, *_ = make_runner()
    assert runner.end() is None
    assert runner.phase is Phase.IDLE


def test_end_is_idempotent(make_runner, session_config):
    runner, *_ = make_runner(["Hi there"])
    events = []
    runner.subscribe(events.append)
    runner.start(session_config)
    runner.submit_text("Hello")

    first = runner.end()
    second = runner.end()
    assert first is second
    assert first.candidate_name == "Ada Lovelace"
    assert first.position_level == "Mid"
    assert first.notes == "Referred by Grace"
    assert [item.speaker for item in first.transcript] == ["candidate", "interviewer"]
    assert [e.kind for e in events].count("ended") == 1
    assert runner.snapshot().end_reason == "requested"


def test_nothing_accepted_after_end(make_runner, session_config):
    runner, *_ = make_runner()
    runner.start(session_config)
    runner.end()
    assert runner.submit_text("late") is False
    assert runner.start_listening() is False
    runner.tick()
    assert runner.snapshot().remaining_seconds == 1200
    assert runner.snapshot().turns == []


def test_full_countdown_ends_exactly_once(make_runner, session_config):
    runner, *_ = make_runner()
    events = []
    runner.subscribe(events.append)
    runner.start(session_config)

    for _ in range(1199):
        runner.tick()
    assert runner.phase is Phase.RUNNING
    runner.tick()
    assert runner.phase is Phase.ENDED
    assert runner.snapshot().remaining_seconds == 0
    assert runner.snapshot().end_reason == "timeout"

    runner.tick()
    runner.end()
    assert [e.kind for e in events].count("ended") == 1


def test_clock_drives_timeout(make_runner, session_config, manual_time):
    runner, *_ = make_runner(duration_seconds=5)
    runner.start(session_config)
    manual_time.advance(2)
    runner._clock.poll()
    assert runner.snapshot().remaining_seconds == 3
    manual_time.advance(10)
    runner._clock.poll()
    assert runner.phase is Phase.ENDED
    assert runner.snapshot().end_reason == "timeout"


def test_late_reply_after_timeout_is_discarded(make_runner, session_config, queued_dispatch):
    runner, *_ = make_runner(["too late"], dispatch=queued_dispatch)
    events = []
    runner.subscribe(events.append)
    runner.start(session_config)
    runner.submit_text("final answer")

    for _ in range(1200):
        runner.tick()
    bundle = runner.bundle
    queued_dispatch.run_all()

    assert _roles(runner) == ["candidate"]
    assert runner.bundle is bundle
    assert len(bundle.transcript) == 1
    assert any(e.kind == "reply_discarded" for e in events)


def test_late_reply_after_requested_end_is_discarded(make_runner, session_config, queued_dispatch):
    runner, _, _, synthesizer = make_runner(["too late"], dispatch=queued_dispatch)
    events = []
    runner.subscribe(events.append)
    runner.start(session_config)
    runner.submit_text("final answer")

    bundle = runner.end()
    queued_dispatch.run_all()

    assert _roles(runner) == ["candidate"]
    assert runner.end() is bundle
    assert [item.content for item in bundle.transcript] == ["final answer"]
    assert synthesizer.spoken == []
    assert any(e.kind == "reply_discarded" for e in events)


def test_reply_from_worker_thread_is_folded(make_runner, session_config):
    runner, *_ = make_runner(["From a worker"], dispatch=lambda job: threading.Thread(target=job).start())
    done = threading.Event()
    runner.subscribe(lambda e: e.kind == "turn_appended" and e.payload["turn"]["role"] == "interviewer" and done.set())
    runner.start(session_config)
    runner.submit_text("Hello")
    assert done.wait(5)
    assert _roles(runner) == ["candidate", "interviewer"]
    assert runner.snapshot().awaiting_reply is False


class _PlatformThread:
    """Run a backend callback on its own thread, pausing it just before it reaches the runner."""

    def __init__(self, adapter, observer):
        self.entered = threading.Event()
        self.release = threading.Event()
        self._adapter = adapter
        self._observer = observer
        self._fold = getattr(adapter, observer)
        self._thread = None
        setattr(adapter, observer, self._delayed)

    def _delayed(self, *args):
        if threading.current_thread() is self._thread:
            self.entered.set()
            self.release.wait(5)
        self._fold(*args)

    def run(self, callback, *args):
        self._thread = threading.Thread(target=callback, args=args)
        self._thread.start()
        assert self.entered.wait(5)

    def finish(self):
        self.release.set()
        self._thread.join(5)
        setattr(self._adapter, self._observer, self._fold)


def test_delayed_transcript_callback_cannot_restore_submitted_text(make_runner, session_config):
    runner, gateway, recognizer, _ = make_runner(["Noted"])
    runner.start(session_config)
    runner.start_listening()

    platform = _PlatformThread(runner.listener, "on_transcript")
    platform.run(recognizer.on_result, [RecognitionResult("hello", True)])
    assert runner.submit_voice_buffer() is True
    platform.finish()

    state = runner.snapshot()
    assert gateway.messages == ["hello"]
    assert runner.listener.buffer == ""
    assert state.pending_transcript_buffer == ""
    assert state.interim_transcript == ""


def test_delayed_end_callback_cannot_undo_restart(make_runner, session_config):
    runner, _, recognizer, _ = make_runner()
    runner.start(session_config)
    runner.start_listening()

    platform = _PlatformThread(runner.listener, "on_state")
    platform.run(recognizer.on_end)
    assert runner.start_listening() is True
    platform.finish()

    assert runner.listener.listening is True
    assert runner.snapshot().voice_capture_active is True


def test_delayed_playback_callback_cannot_outlive_cancel(make_runner, session_config):
    runner, _, _, synthesizer = make_runner(["Next question"])
    runner.start(session_config)
    runner.submit_text("answer")
    on_start, _, _ = synthesizer.callbacks[-1]

    platform = _PlatformThread(runner.speaker, "on_state")
    platform.run(on_start)
    runner.set_voice_output(False)
    platform.finish()

    assert runner.speaker.speaking is False
    assert runner.snapshot().voice_playback_active is False


def test_timestamps_are_non_decreasing_within_session(make_runner, session_config, queued_dispatch):
    runner, *_ = make_runner([AgentFailure(reason="status", detail="x")] * 3, dispatch=queued_dispatch)
    runner.start(session_config)
    for text in ("a", "b", "c"):
        runner.submit_text(text)
        queued_dispatch.run_all()

    bundle = runner.end()
    stamps = [item.timestamp for item in bundle.transcript]
    assert stamps == ["00:00", "06:40", "13:20"]
    assert all(re.fullmatch(r"\d{2}:\d{2}", s) for s in stamps)
    assert stamps == sorted(stamps)
    assert all("00:00" <= s <= "20:00" for s in stamps)


def test_voice_buffer_submission(make_runner, session_config):
    runner, gateway, recognizer, _ = make_runner(["Nice"])
    runner.start(session_config)
    assert runner.start_listening() is True
    assert runner.snapshot().voice_capture_active is True

    recognizer.on_result([RecognitionResult("Flexbox aligns", True), RecognitionResult("items", False)])
    state = runner.snapshot()
    assert state.pending_transcript_buffer == "Flexbox aligns "
    assert state.interim_transcript == "items"

    assert runner.submit_voice_buffer() is True
    assert gateway.messages == ["Flexbox aligns"]
    assert recognizer.stops == 1
    state = runner.snapshot()
    assert state.voice_capture_active is False
    assert state.pending_transcript_buffer == ""
    assert _roles(runner) == ["candidate", "interviewer"]


def test_empty_voice_buffer_changes_nothing(make_runner, session_config):
    runner, gateway, recognizer, _ = make_runner()
    runner.start(session_config)
    runner.start_listening()
    recognizer.on_result([RecognitionResult("thinking", False)])
    before = runner.snapshot()

    assert runner.submit_voice_buffer() is False
    assert runner.snapshot() == before
    assert runner.snapshot().voice_capture_active is True
    assert gateway.messages == []


def test_voice_buffer_kept_while_reply_outstanding(make_runner, session_config, queued_dispatch):
    runner, gateway, recognizer, _ = make_runner(dispatch=queued_dispatch)
    runner.start(session_config)
    runner.submit_text("typed")
    runner.start_listening()
    recognizer.on_result([RecognitionResult("spoken", True)])

    assert runner.submit_voice_buffer() is False
    assert runner.snapshot().pending_transcript_buffer == "spoken "
    assert runner.snapshot().voice_capture_active is True


def test_typed_submission_clears_voice_buffer(make_runner, session_config):
    runner, gateway, recognizer, _ = make_runner()
    runner.start(session_config)
    runner.start_listening()
    recognizer.on_result([RecognitionResult("half said", True)])
    runner.submit_text("typed instead")
    assert runner.snapshot().pending_transcript_buffer == ""
    assert gateway.messages == ["typed instead"]


def test_end_stops_capture_and_playback(make_runner, session_config):
    runner, _, recognizer, synthesizer = make_runner(["Question two"])
    runner.start(session_config)
    runner.submit_text("answer")
    on_start, _, _ = synthesizer.callbacks[-1]
    on_start()
    runner.start_listening()
    assert runner.snapshot().voice_playback_active is True

    runner.end()
    state = runner.snapshot()
    assert state.voice_capture_active is False
    assert state.voice_playback_active is False
    assert recognizer.stops == 1
    assert synthesizer.cancels >= 1


def test_missing_speech_backends_degrade(make_runner, session_config):
    runner, *_ = make_runner(["Hi"], with_backends=False)
    runner.start(session_config)
    assert runner.listener.available is False
    assert runner.start_listening() is False
    assert runner.submit_text("Hello") is True
    assert _roles(runner) == ["candidate", "interviewer"]
    assert runner.snapshot().voice_playback_active is False


def test_subscriber_errors_are_swallowed(make_runner, session_config):
    runner, *_ = make_runner(["Hi"])

    def broken(event):
        raise ValueError("listener bug")

    runner.subscribe(broken)
    runner.start(session_config)
    assert runner.submit_text("Hello") is True


def test_unsubscribe_stops_events(make_runner, session_config):
    runner, *_ = make_runner()
    events = []
    unsubscribe = runner.subscribe(events.append)
    unsubscribe()
    runner.start(session_config)
    assert events == []


def test_snapshot_is_a_copy(make_runner, session_config):
    runner, *_ = make_runner(["Hi"])
    runner.start(session_config)
    runner.submit_text("Hello")
    snap = runner.snapshot()
    snap.turns.clear()
    assert len(runner.snapshot().turns) == 2
