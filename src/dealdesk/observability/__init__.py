"""Observability helpers: structured logging configuration."""

from src.dealdesk.observability.logging import configure_structlog

__all__ = ["configure_structlog"]
