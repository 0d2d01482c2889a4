"""Structured logging utilities for migration runs.

Each record type migrated in a run gets consistent log fields:
- record_type
- run_id
- step
- row_count
- duration_ms
"""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class PipelineLogContext:
    """Context for one structured log line."""

    record_type: str
    run_id: str
    step: str = ""
    row_count: int = 0
    duration_ms: Optional[float] = None
    status: str = "started"
    error: Optional[str] = None
    extra: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for logging."""
        data = asdict(self)
        data["timestamp"] = datetime.now(timezone.utc).isoformat()
        return {k: v for k, v in data.items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str, ensure_ascii=False)


class PipelineLogger:
    """Structured logger for one record type within a migration run."""

    def __init__(self, record_type: str, run_id: str):
        self.record_type = record_type
        self.run_id = run_id
        self.logger = logging.getLogger(f"battlelog_migration.pipeline.{record_type}")
        self._start_time: Optional[float] = None
        self._batch_count = 0

    def _log(self, level: int, step: str, **kwargs) -> None:
        ctx = PipelineLogContext(
            record_type=self.record_type,
            run_id=self.run_id,
            step=step,
            **kwargs
        )
        # "extra" is reserved by logging, so pass the flattened context
        fields = ctx.to_dict()
        fields["context"] = fields.pop("extra")
        self.logger.log(level, ctx.to_json(), extra=fields)

    def _elapsed_ms(self) -> Optional[float]:
        if self._start_time is None:
            return None
        return round((time.time() - self._start_time) * 1000, 2)

    def start(self, step: str, row_count: int = 0) -> None:
        """Log step start."""
        self._start_time = time.time()
        self._log(logging.INFO, step, status="started", row_count=row_count)

    def batch(self, processed: int, total: int) -> None:
        """Log batch completion."""
        self._batch_count += 1
        self._log(
            logging.DEBUG,
            "batch",
            status="progress",
            row_count=processed,
            extra={"total": total, "batch_number": self._batch_count},
        )

    def success(self, step: str, **kwargs) -> None:
        """Log step success."""
        self._log(
            logging.INFO,
            step,
            status="success",
            duration_ms=self._elapsed_ms(),
            **kwargs
        )

    def error(self, step: str, error: Exception, **kwargs) -> None:
        """Log step error."""
        self._log(
            logging.ERROR,
            step,
            status="error",
            error=str(error),
            duration_ms=self._elapsed_ms(),
            **kwargs
        )

    def get_metrics(self) -> dict:
        return {
            "record_type": self.record_type,
            "run_id": self.run_id,
            "batches": self._batch_count,
            "duration_ms": self._elapsed_ms(),
        }


class OperationTimer:
    """Wall-clock timing for one run, in whole milliseconds."""

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self.started = clock()
        self.duration_ms: Optional[int] = None

    def stop(self) -> int:
        self.duration_ms = int((self._clock() - self.started) * 1000)
        return self.duration_ms


@contextmanager
def timed_operation(
    name: str,
    logger: Optional[logging.Logger] = None,
    clock=time.monotonic,
    **context,
):
    """Time a migration run or one of its steps.

    The duration is set when the block exits, including on error, so a
    report can carry ``totalTimeMs`` either way. With a logger, one debug
    line records the operation, its outcome and any ``context`` fields
    (run id, dry-run flag, ...).

    Usage:
        with timed_operation("migration", logger, run_id=run_id) as timer:
            migrate_all()
        report.total_time_ms = timer.duration_ms

    Yields:
        OperationTimer whose ``duration_ms`` is set on exit
    """
    timer = OperationTimer(clock)
    outcome = "success"

    try:
        yield timer
    except Exception:
        outcome = "error"
        raise
    finally:
        timer.stop()
        if logger:
            logger.debug(
                f"{name} finished in {timer.duration_ms}ms",
                extra={
                    "operation": name,
                    "outcome": outcome,
                    "duration_ms": timer.duration_ms,
                    **context,
                },
            )
