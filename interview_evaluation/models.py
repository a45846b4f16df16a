from __future__ import annotations  # Structured evaluation returned by the evaluation agent

from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field

Decision = Literal["Hire", "Consider", "Pass"]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class OverallScore(_Frozen):  # Weighted roll-up across competencies
    weighted_average: float = Field(ge=0.0, le=10.0)


class CompetencyScore(_Frozen):  # Per-competency score on a 0-10 scale
    score: float = Field(ge=0.0, le=10.0)


class Finding(_Frozen):  # Strength or weakness called out by the evaluator
    area: str
    description: str


class Recommendation(_Frozen):  # Hiring decision with a short rationale
    decision: Decision
    summary: str = ""


class EvaluationResult(_Frozen):  # Immutable; a re-evaluation produces a new instance
    overall_score: OverallScore
    scores: Dict[str, CompetencyScore] = Field(default_factory=dict)
    strengths: List[Finding] = Field(default_factory=list)
    weaknesses: List[Finding] = Field(default_factory=list)
    recommendation: Recommendation

    @property
    def weighted_average(self) -> float:
        return self.overall_score.weighted_average
