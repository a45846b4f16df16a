"""Configuration package for the interview session service."""
from .agents import (
    EVALUATION_AGENT,
    INTERVIEW_AGENT,
    AgentConfig,
    AgentRoute,
    load_config,
    resolve_route,
    route_from_settings,
)
from .registry import RECOGNITION_KEY, SYNTHESIS_KEY, bind_model, get_model, resolve_optional, unbind_model
from .settings import Settings, settings

__all__ = [
    "EVALUATION_AGENT",
    "INTERVIEW_AGENT",
    "AgentConfig",
    "AgentRoute",
    "load_config",
    "resolve_route",
    "route_from_settings",
    "RECOGNITION_KEY",
    "SYNTHESIS_KEY",
    "bind_model",
    "get_model",
    "resolve_optional",
    "unbind_model",
    "Settings",
    "settings",
]
