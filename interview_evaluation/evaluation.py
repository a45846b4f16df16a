from __future__ import annotations

from typing import Union

from agent_gateway import AgentFailure, AgentGateway, EvaluationContext, transcript_payload
from interview_session import TranscriptBundle

from .models import EvaluationResult


def build_evaluation_message(bundle: TranscriptBundle) -> str:  # Compose the evaluation prompt
    lines = "\n".join(f"{item.speaker}: {item.content}" for item in bundle.transcript)
    return (
        "Please evaluate this interview transcript:\n\n"
        f"Candidate: {bundle.candidate_name}\n"
        f"Level: {bundle.position_level}\n\n"
        f"Transcript:\n{lines}"
    )


def evaluate_transcript(bundle: TranscriptBundle, gateway: AgentGateway) -> Union[EvaluationResult, AgentFailure]:  # Ask the evaluation agent
    context = EvaluationContext(
        transcript=transcript_payload(bundle.transcript),
        candidate_name=bundle.candidate_name,
        position_level=bundle.position_level,
    )
    return gateway.request_evaluation(build_evaluation_message(bundle), context, EvaluationResult)
