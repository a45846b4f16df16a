from .evaluation import build_evaluation_message, evaluate_transcript
from .models import CompetencyScore, Decision, EvaluationResult, Finding, OverallScore, Recommendation

__all__ = [
    "CompetencyScore",
    "Decision",
    "EvaluationResult",
    "Finding",
    "OverallScore",
    "Recommendation",
    "build_evaluation_message",
    "evaluate_transcript",
]
