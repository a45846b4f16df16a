from __future__ import annotations  # Re-export agent_gateway public API

from .agent_gateway import (
    AgentContext,
    AgentFailure,
    AgentGateway,
    AgentGatewayError,
    AgentReply,
    EvaluationContext,
    HttpClient,
    HttpResponse,
    normalize_reply,
    transcript_payload,
)

__all__ = [
    "AgentContext",
    "AgentFailure",
    "AgentGateway",
    "AgentGatewayError",
    "AgentReply",
    "EvaluationContext",
    "HttpClient",
    "HttpResponse",
    "normalize_reply",
    "transcript_payload",
]
