"""FastAPI routes for live interview sessions and finished interviews."""
from __future__ import annotations

from typing import Callable, List

from fastapi import APIRouter, Depends, HTTPException, Response

from agent_gateway import AgentFailure, AgentGateway
from api.schemas import CommandResp, EndResp, MessageReq, SessionView, StartReq, VoiceOutputReq
from config.settings import settings
from interview_session import SessionConfig, SessionRunner
from services import sessions
from services.interviews import InterviewRecord, InterviewSummary, evaluate_interview
from services.sessions import SessionRegistry, default_gateway
from session_reports import generate_interview_report_pdf


router = APIRouter(prefix="/api/interview-sessions")
interviews_router = APIRouter(prefix="/api/interviews")


def get_registry() -> SessionRegistry:
    return sessions.registry


def get_gateway() -> AgentGateway:
    return default_gateway()


def _view(registry: SessionRegistry, session_id: str) -> SessionView:
    try:
        runner = registry.get(session_id)
    except KeyError:
        return _closed_view(registry, session_id)
    return SessionView.from_runner(runner)


def _closed_view(registry: SessionRegistry, session_id: str) -> SessionView:
    try:
        return SessionView.from_closed(registry.closed(session_id))
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc


def _record(registry: SessionRegistry, interview_id: str) -> InterviewRecord:
    try:
        return registry.book.get(interview_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Interview not found") from exc


def _run_command(registry: SessionRegistry, session_id: str, action: Callable[[SessionRunner], bool]) -> CommandResp:
    """Apply ``action`` to a live runner; commands against a released session are refused."""

    try:
        runner = registry.get(session_id)
    except KeyError:
        return CommandResp(accepted=False, session=_view(registry, session_id))
    accepted = action(runner)
    return CommandResp(accepted=accepted, session=_view(registry, session_id))


def _toggle_voice_output(enabled: bool) -> Callable[[SessionRunner], bool]:
    def _action(runner: SessionRunner) -> bool:
        runner.set_voice_output(enabled)
        return runner.snapshot().voice_output_enabled == enabled

    return _action


@router.post("/start", response_model=SessionView)
def start(req: StartReq, registry: SessionRegistry = Depends(get_registry)) -> SessionView:
    try:
        config = SessionConfig(
            candidate_name=req.candidate_name,
            position_level=req.position_level,
            notes=req.notes,
            interview_type=settings.INTERVIEW_TYPE,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    runner = registry.start(config, voice_output=req.voice_output)
    return _view(registry, runner.session_id)


@router.get("/{session_id}", response_model=SessionView)
def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> SessionView:
    return _view(registry, session_id)


@router.post("/{session_id}/messages", response_model=CommandResp)
def submit_message(session_id: str, req: MessageReq, registry: SessionRegistry = Depends(get_registry)) -> CommandResp:
    return _run_command(registry, session_id, lambda runner: runner.submit_text(req.text))


@router.post("/{session_id}/voice/start", response_model=CommandResp)
def voice_start(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> CommandResp:
    return _run_command(registry, session_id, SessionRunner.start_listening)


@router.post("/{session_id}/voice/stop", response_model=CommandResp)
def voice_stop(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> CommandResp:
    return _run_command(registry, session_id, SessionRunner.stop_listening)


@router.post("/{session_id}/voice/submit", response_model=CommandResp)
def voice_submit(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> CommandResp:
    return _run_command(registry, session_id, SessionRunner.submit_voice_buffer)


@router.post("/{session_id}/voice-output", response_model=CommandResp)
def voice_output(session_id: str, req: VoiceOutputReq, registry: SessionRegistry = Depends(get_registry)) -> CommandResp:
    return _run_command(registry, session_id, _toggle_voice_output(req.enabled))


@router.post("/{session_id}/end", response_model=EndResp)
def end(session_id: str, registry: SessionRegistry = Depends(get_registry)) -> EndResp:
    try:
        record = registry.end(session_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc
    return EndResp(
        interview_id=record.interview_id,
        session=_view(registry, session_id),
        bundle=record.bundle(),
    )


@interviews_router.get("", response_model=List[InterviewRecord])
def list_interviews(registry: SessionRegistry = Depends(get_registry)) -> List[InterviewRecord]:
    return registry.book.list()


@interviews_router.get("/summary", response_model=InterviewSummary)
def interview_summary(registry: SessionRegistry = Depends(get_registry)) -> InterviewSummary:
    return registry.book.summary()


@interviews_router.get("/{interview_id}", response_model=InterviewRecord)
def get_interview(interview_id: str, registry: SessionRegistry = Depends(get_registry)) -> InterviewRecord:
    return _record(registry, interview_id)


@interviews_router.post("/{interview_id}/evaluate", response_model=InterviewRecord)
def evaluate(
    interview_id: str,
    registry: SessionRegistry = Depends(get_registry),
    gateway: AgentGateway = Depends(get_gateway),
) -> InterviewRecord:
    _record(registry, interview_id)
    result = evaluate_interview(registry.book, interview_id, gateway)
    if isinstance(result, AgentFailure):
        raise HTTPException(status_code=502, detail=f"Evaluation failed: {result.detail}")
    return result


@interviews_router.get("/{interview_id}/report.pdf")
def interview_report(interview_id: str, registry: SessionRegistry = Depends(get_registry)) -> Response:
    record = _record(registry, interview_id)
    return Response(
        content=generate_interview_report_pdf(record),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="interview-{interview_id}.pdf"'},
    )
