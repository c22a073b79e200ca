"""
Utility helpers for easypack.
"""

from .logging import configure_logging, get_logger, log_context

__all__ = ["configure_logging", "get_logger", "log_context"]
