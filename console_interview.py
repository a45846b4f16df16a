"""Run a text-mode interview session from the terminal."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from agent_gateway import AgentFailure
from config.settings import settings
from interview_evaluation import evaluate_transcript
from interview_session import Phase, SessionConfig, SessionEvent, format_clock
from observability import configure_logging
from services.interviews import InterviewBook
from services.sessions import SessionRegistry, default_gateway, default_runner_factory

COMMANDS = "/end to finish, /time for the clock, /voice on|off to toggle spoken replies"


def _printer(event: SessionEvent) -> None:
    if event.kind == "turn_appended" and event.payload["turn"]["role"] == "interviewer":
        print(f"\nInterviewer: {event.payload['turn']['content']}\n> ", end="", flush=True)
    elif event.kind == "agent_failed":
        print(f"\n[agent unavailable: {event.payload.get('detail')}] try again\n> ", end="", flush=True)
    elif event.kind == "ended" and event.payload.get("reason") == "timeout":
        print("\nTime is up. Press Enter to see the transcript.", flush=True)


def run(args: argparse.Namespace) -> int:
    book = InterviewBook()
    registry = SessionRegistry(book, factory=default_runner_factory)
    config = SessionConfig(
        candidate_name=args.name,
        position_level=args.level,
        notes=args.notes,
        interview_type=settings.INTERVIEW_TYPE,
    )
    runner = registry.start(config, voice_output=not args.no_voice)
    runner.subscribe(_printer)
    print(f"Interview started for {config.candidate_name} ({config.position_level}). {COMMANDS}")

    while runner.phase is Phase.RUNNING:
        try:
            line = input("> ")
        except (EOFError, KeyboardInterrupt):
            break
        command = line.strip()
        if command == "/end":
            break
        if command == "/time":
            print(format_clock(runner.snapshot().remaining_seconds))
        elif command.startswith("/voice"):
            runner.set_voice_output(command.endswith("on"))
        elif command and not runner.submit_text(command):
            print("[still waiting for the interviewer, message not sent]")

    record = registry.end(runner.session_id)
    print("\nTranscript")
    for item in record.transcript:
        print(f"[{item.timestamp}] {item.speaker}: {item.content}")

    if args.evaluate:
        result = evaluate_transcript(record.bundle(), default_gateway())
        if isinstance(result, AgentFailure):
            print(f"Evaluation failed ({result.reason}): {result.detail}", file=sys.stderr)
        else:
            record = book.apply_evaluation(record.interview_id, result)
            print(
                f"\nScore {result.weighted_average:.1f}/10, "
                f"recommendation: {result.recommendation.decision}. {result.recommendation.summary}"
            )

    if args.report:
        from session_reports import generate_interview_report_pdf

        Path(args.report).write_bytes(generate_interview_report_pdf(record))
        print(f"Report written to {args.report}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Text-mode technical interview")
    parser.add_argument("--name", required=True, help="Candidate name")
    parser.add_argument("--level", choices=["Junior", "Mid", "Senior"], default="Mid")
    parser.add_argument("--notes", default="", help="Interviewer notes attached to the transcript")
    parser.add_argument("--no-voice", action="store_true", help="Do not speak interviewer replies")
    parser.add_argument("--evaluate", action="store_true", help="Request an evaluation after the interview")
    parser.add_argument("--report", help="Write a PDF report to this path")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args()

    configure_logging(args.log_level.upper())
    sys.exit(run(args))


if __name__ == "__main__":
    main()
