"""Utility modules for render-relay."""

from .logging import bind_webhook, get_logger, setup_logging

__all__ = ["bind_webhook", "get_logger", "setup_logging"]
