"""In-memory book of finished interviews and their evaluations."""
from __future__ import annotations

import threading
import uuid
from datetime import date
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from agent_gateway import AgentFailure, AgentGateway
from interview_evaluation import EvaluationResult, evaluate_transcript
from interview_session import TranscriptBundle, TranscriptItem
from interview_session.models import PositionLevel
from observability import log_event

InterviewStatus = Literal["pending", "completed", "evaluated"]


class InterviewRecord(BaseModel):
    interview_id: str
    candidate_name: str
    position_level: PositionLevel
    date: str
    status: InterviewStatus = "completed"
    score: Optional[float] = None
    transcript: List[TranscriptItem] = Field(default_factory=list)
    evaluation: Optional[EvaluationResult] = None
    notes: str = ""
    session_id: Optional[str] = None

    def bundle(self) -> TranscriptBundle:
        return TranscriptBundle(
            candidate_name=self.candidate_name,
            position_level=self.position_level,
            notes=self.notes,
            transcript=list(self.transcript),
        )


class InterviewSummary(BaseModel):
    total: int
    evaluated: int
    pending_evaluations: int
    average_score: Optional[float] = None


class InterviewBook:
    """Completed interviews keyed by id, newest first when listed."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, InterviewRecord] = {}

    def add_completed(
        self,
        bundle: TranscriptBundle,
        *,
        session_id: Optional[str] = None,
        on: Optional[date] = None,
    ) -> InterviewRecord:
        record = InterviewRecord(
            interview_id=uuid.uuid4().hex[:12],
            candidate_name=bundle.candidate_name,
            position_level=bundle.position_level,
            date=(on or date.today()).isoformat(),
            transcript=list(bundle.transcript),
            notes=bundle.notes,
            session_id=session_id,
        )
        with self._lock:
            self._records[record.interview_id] = record
        log_event("interview_filed", session_id or "-", status=record.status)
        return record

    def get(self, interview_id: str) -> InterviewRecord:
        with self._lock:
            if interview_id not in self._records:
                raise KeyError(f"Unknown interview: {interview_id}")
            return self._records[interview_id]

    def list(self) -> List[InterviewRecord]:
        with self._lock:
            return list(reversed(self._records.values()))

    def apply_evaluation(self, interview_id: str, result: EvaluationResult) -> InterviewRecord:
        """Attach ``result``, replacing any earlier evaluation in full."""

        with self._lock:
            if interview_id not in self._records:
                raise KeyError(f"Unknown interview: {interview_id}")
            updated = self._records[interview_id].model_copy(
                update={
                    "status": "evaluated",
                    "evaluation": result,
                    "score": result.weighted_average,
                }
            )
            self._records[interview_id] = updated
        return updated

    def summary(self) -> InterviewSummary:
        records = self.list()
        scores = [record.score for record in records if record.score is not None]
        return InterviewSummary(
            total=len(records),
            evaluated=sum(1 for record in records if record.status == "evaluated"),
            pending_evaluations=sum(1 for record in records if record.status == "completed"),
            average_score=round(sum(scores) / len(scores), 1) if scores else None,
        )


def evaluate_interview(
    book: InterviewBook,
    interview_id: str,
    gateway: AgentGateway,
) -> Union[InterviewRecord, AgentFailure]:
    """Run the evaluation agent over a filed transcript and store the result."""

    record = book.get(interview_id)
    result = evaluate_transcript(record.bundle(), gateway)
    if isinstance(result, AgentFailure):
        log_event("evaluation_failed", record.session_id or "-", reason=result.reason, status=result.status_code)
        return result
    updated = book.apply_evaluation(interview_id, result)
    log_event("evaluation_stored", record.session_id or "-", status=updated.status)
    return updated


__all__ = ["InterviewBook", "InterviewRecord", "InterviewStatus", "InterviewSummary", "evaluate_interview"]
