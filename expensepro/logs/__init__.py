"""Structured logging package."""

from expensepro.logs.logger import configure_logging, create_correlation_id, get_logger

__all__ = ["configure_logging", "create_correlation_id", "get_logger"]
