"""Utility modules for the migration engine.

Includes:
- Logging configuration
- Structured pipeline logging
- Progress observers
"""

from .logging_config import setup_logging
from .pipeline_logger import PipelineLogger, timed_operation
from .progress import (
    CallbackProgressObserver,
    LoggingProgressObserver,
    ProgressObserver,
    as_observer,
)

__all__ = [
    "setup_logging",
    "PipelineLogger",
    "timed_operation",
    "CallbackProgressObserver",
    "LoggingProgressObserver",
    "ProgressObserver",
    "as_observer",
]
