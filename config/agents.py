"""Agent endpoint configuration and JSON config loading."""
from __future__ import annotations

from pathlib import Path
from typing import Dict

from pydantic import BaseModel, Field

from .settings import Settings

INTERVIEW_AGENT = "interview"
EVALUATION_AGENT = "evaluation"


class AgentRoute(BaseModel):
    """Agent endpoint configuration."""

    name: str
    base_url: str
    endpoint: str
    agent_ids: Dict[str, str]
    timeout_s: float = Field(ge=0.1)
    api_key_env: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)

    def agent_id(self, purpose: str) -> str:
        if purpose not in self.agent_ids:
            raise KeyError(f"No agent id configured for '{purpose}'")
        return self.agent_ids[purpose]


class AgentConfig(BaseModel):
    """Configuration root for agent routes."""

    routes: Dict[str, AgentRoute]
    default_route: str

    def route(self, name: str | None = None) -> AgentRoute:
        key = name or self.default_route
        if key not in self.routes:
            raise KeyError(f"Route '{key}' missing from agent config")
        return self.routes[key]


def load_config(path: Path) -> AgentConfig:
    """Load agent configuration from disk."""

    data = path.read_text(encoding="utf-8")
    return AgentConfig.model_validate_json(data)


def route_from_settings(cfg: Settings) -> AgentRoute:
    """Build the default agent route from environment settings."""

    return AgentRoute(
        name="default",
        base_url=cfg.AGENT_BASE_URL.rstrip("/"),
        endpoint=cfg.AGENT_ENDPOINT,
        agent_ids={
            INTERVIEW_AGENT: cfg.INTERVIEW_AGENT_ID,
            EVALUATION_AGENT: cfg.EVALUATION_AGENT_ID,
        },
        timeout_s=cfg.AGENT_TIMEOUT_S,
        api_key_env=cfg.AGENT_API_KEY_ENV,
    )


def resolve_route(cfg: Settings) -> AgentRoute:
    """Route named by ``AGENT_ROUTE`` in ``AGENT_CONFIG_PATH``, else the one built from settings."""

    if cfg.AGENT_CONFIG_PATH:
        return load_config(Path(cfg.AGENT_CONFIG_PATH)).route(cfg.AGENT_ROUTE)
    return route_from_settings(cfg)
