"""Utility modules."""
from .logging import LogContext, OperationLogger, get_logger, setup_logging
from .exceptions import QuillsmithError

__all__ = [
    "get_logger",
    "setup_logging",
    "LogContext",
    "OperationLogger",
    "QuillsmithError",
]
