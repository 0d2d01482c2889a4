"""Progress observers for migration runs."""

import logging
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)


class ProgressObserver(Protocol):
    """Receives progress messages synchronously, in emission order."""

    def on_progress(self, message: str) -> None:
        ...


class LoggingProgressObserver:
    """Writes progress messages to the log."""

    def __init__(self, log: Optional[logging.Logger] = None, level: int = logging.INFO):
        self.log = log or logger
        self.level = level

    def on_progress(self, message: str) -> None:
        self.log.log(self.level, message)


class CallbackProgressObserver:
    """Adapts a plain ``callback(message)`` function to an observer."""

    def __init__(self, callback: Callable[[str], None]):
        self.callback = callback

    def on_progress(self, message: str) -> None:
        self.callback(message)


def as_observer(observer) -> ProgressObserver:
    """Return an observer for ``None``, a callable or an observer."""
    if observer is None:
        return LoggingProgressObserver()
    if hasattr(observer, "on_progress"):
        return observer
    if callable(observer):
        return CallbackProgressObserver(observer)
    raise TypeError(f"Not a progress observer: {observer!r}")
