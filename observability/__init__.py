"""Observability utilities for the interview session stack."""
from .logger import configure_logging, log_event

__all__ = ["configure_logging", "log_event"]
