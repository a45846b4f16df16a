from __future__ import annotations  # FastAPI server exposing live interview sessions

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import interviews_router, router
from config.settings import settings
from observability import configure_logging


logger = logging.getLogger(__name__)


def create_app() -> FastAPI:  # Build the application with both routers mounted
    configure_logging()
    application = FastAPI(title="Interview Session API")
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(router)
    application.include_router(interviews_router)

    @application.get("/health")
    def health() -> dict:
        return {
            "status": "ok",
            "agent_base_url": settings.AGENT_BASE_URL,
            "session_duration_seconds": settings.SESSION_DURATION_SECONDS,
        }

    logger.info("Interview API ready agent=%s%s", settings.AGENT_BASE_URL, settings.AGENT_ENDPOINT)
    return application


app = create_app()
