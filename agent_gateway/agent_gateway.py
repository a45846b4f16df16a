from __future__ import annotations  # Request/response gateway to the external interview agent

import json
import logging
import os
import time
from typing import Any, Callable, Dict, Literal, Mapping, Optional, Protocol, Sequence, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from config import EVALUATION_AGENT, INTERVIEW_AGENT, AgentRoute


logger = logging.getLogger(__name__)  # Module logger setup


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class AgentGatewayError(RuntimeError):  # Raised inside the gateway, converted at its boundary
    def __init__(self, reason: str, detail: str, status_code: Optional[int] = None) -> None:
        super().__init__(detail)
        self.reason = reason
        self.detail = detail
        self.status_code = status_code


class AgentContext(BaseModel):  # Session context sent alongside each utterance
    candidate_name: str
    position_level: str
    interview_type: str


class EvaluationContext(BaseModel):  # Context sent with an evaluation request
    transcript: list[Dict[str, str]]
    candidate_name: str
    position_level: str


class AgentReply(BaseModel):  # Normalised interviewer reply
    content: str
    raw: Any = None


class AgentFailure(BaseModel):  # Recoverable failure reported instead of raising
    reason: Literal["transport", "status", "payload", "unsuccessful"]
    detail: str
    status_code: Optional[int] = None


T = TypeVar("T", bound=BaseModel)


class AgentGateway:
    """Single-shot calls to the conversational and evaluation agents.

    Failures never escape ``send_message`` or ``request_evaluation``; they
    come back as :class:`AgentFailure` values. Retry policy belongs to the
    caller.
    """

    def __init__(self, route: AgentRoute, *, client: Optional[HttpClient] = None) -> None:
        self.route = route
        self._client = client

    def call_agent(self, message: str, agent_id: str, context: Mapping[str, Any]) -> Any:  # Raw call returning `response`
        payload = {"message": message, "agent_id": agent_id, "context": dict(context)}
        headers = {"Content-Type": "application/json"}
        if self.route.api_key_env:
            api_key = os.getenv(self.route.api_key_env)
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
        headers.update(self.route.extra_headers)
        url = f"{self.route.base_url}{self.route.endpoint}"
        logger.info(
            "Agent request send route=%s agent=%s preview=%s",
            self.route.name,
            agent_id,
            _preview(message),
        )
        started = time.monotonic()
        close_cb: Optional[Callable[[], None]] = None
        try:
            try:
                response, close_cb = _post(url, payload, headers, self.route.timeout_s, self._client)
            except Exception as exc:  # noqa: BLE001
                logger.error("Agent transport failure: %s", exc)
                raise AgentGatewayError("transport", f"Agent transport failed: {exc}") from exc
            if response.status_code >= 400:
                logger.error("Agent error status: %s", response.status_code)
                raise AgentGatewayError(
                    "status",
                    f"Agent returned status {response.status_code}",
                    status_code=response.status_code,
                )
            try:
                data = response.json()
            except Exception as exc:  # noqa: BLE001
                logger.error("Invalid JSON payload from agent: %s", exc)
                raise AgentGatewayError("payload", "Agent payload was not JSON") from exc
        finally:
            _close_safely(close_cb)
        if not isinstance(data, dict):
            raise AgentGatewayError("payload", "Agent payload was not a JSON object")
        if not data.get("success") or not data.get("response"):
            logger.warning("Agent reported failure agent=%s", agent_id)
            raise AgentGatewayError("unsuccessful", _failure_detail(data))
        logger.info(
            "Agent request done route=%s agent=%s ms=%d",
            self.route.name,
            agent_id,
            int((time.monotonic() - started) * 1000),
        )
        return data["response"]

    def send_message(self, utterance: str, context: AgentContext) -> Union[AgentReply, AgentFailure]:
        try:
            raw = self.call_agent(
                utterance,
                self.route.agent_id(INTERVIEW_AGENT),
                context.model_dump(),
            )
        except AgentGatewayError as exc:
            return AgentFailure(reason=exc.reason, detail=exc.detail, status_code=exc.status_code)  # type: ignore[arg-type]
        return AgentReply(content=normalize_reply(raw), raw=raw)

    def request_evaluation(
        self,
        message: str,
        context: EvaluationContext,
        schema: Type[T],
    ) -> Union[T, AgentFailure]:
        try:
            raw = self.call_agent(
                message,
                self.route.agent_id(EVALUATION_AGENT),
                context.model_dump(),
            )
            return _validate(schema, raw)
        except AgentGatewayError as exc:
            return AgentFailure(reason=exc.reason, detail=exc.detail, status_code=exc.status_code)  # type: ignore[arg-type]


def normalize_reply(payload: Any) -> str:  # Accept str, {content}, or fall back to a JSON dump
    if isinstance(payload, str):
        return payload
    content = payload.get("content") if isinstance(payload, Mapping) else getattr(payload, "content", None)
    if content:
        return content if isinstance(content, str) else str(content)
    try:
        return json.dumps(payload)
    except (TypeError, ValueError):
        return str(payload)


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        return client.post(url, json=payload, headers=headers, timeout=timeout), None
    import httpx

    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _preview(message: str) -> str:  # First line of the message, clipped for logs
    text = message.strip()
    first = text.splitlines()[0] if text else ""
    if len(first) > 120:
        first = first[:117] + "..."
    return first


def _failure_detail(data: Mapping[str, Any]) -> str:
    for key in ("error", "message", "detail"):
        value = data.get(key)
        if value:
            return str(value)
    return "Agent reported an unsuccessful response"


def _validate(schema: Type[T], raw: Any) -> T:  # Parse string-encoded JSON or object payloads
    try:
        if isinstance(raw, str):
            return schema.model_validate_json(_strip_code_fences(raw))
        return schema.model_validate(raw)
    except (json.JSONDecodeError, ValidationError) as exc:
        logger.warning("Agent evaluation payload failed validation: %s", exc)
        raise AgentGatewayError("payload", f"Evaluation payload invalid: {_first_line(str(exc))}") from exc


def _strip_code_fences(content: str) -> str:  # Remove common markdown fences from agent output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        while lines and lines[0].strip() == "":
            lines = lines[1:]
        while lines and lines[-1].strip() == "":
            lines = lines[:-1]
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines).strip()
    return text


def _first_line(text: str) -> str:
    line = text.splitlines()[0].strip() if text else ""
    return line if len(line) <= 200 else line[:197] + "..."


def transcript_payload(items: Sequence[Any]) -> list[Dict[str, str]]:  # Serialise transcript items for the wire
    payload: list[Dict[str, str]] = []
    for item in items:
        if isinstance(item, BaseModel):
            payload.append({key: str(value) for key, value in item.model_dump().items()})
        else:
            payload.append({key: str(value) for key, value in dict(item).items()})
    return payload
