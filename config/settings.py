"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    AGENT_BASE_URL: str = Field(default="http://localhost:3000")
    AGENT_ENDPOINT: str = "/api/agent"
    AGENT_TIMEOUT_S: float = Field(default=30.0, ge=0.1)
    AGENT_API_KEY_ENV: str | None = "AGENT_API_KEY"
    # JSON route file (see config.agents.AgentConfig); overrides the AGENT_* fields above.
    AGENT_CONFIG_PATH: str | None = None
    AGENT_ROUTE: str | None = None
    INTERVIEW_AGENT_ID: str = "69328108e6ce9b78c3893b6e"
    EVALUATION_AGENT_ID: str = "693281521f3e985c1e35b91c"
    INTERVIEW_TYPE: str = "frontend_developer"

    SESSION_DURATION_SECONDS: int = Field(default=20 * 60, ge=1)
    VOICE_OUTPUT_DEFAULT: bool = True

    SPEECH_LANGUAGE: str = "en-US"
    SPEECH_RATE: float = 1.0
    SPEECH_PITCH: float = 1.0
    SPEECH_VOLUME: float = Field(default=1.0, ge=0.0, le=1.0)

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
