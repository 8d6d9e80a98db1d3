"""Structured logging for the extraction pipeline.

Provides consistent run-level output with:
- Timestamps
- Log levels (DEBUG, INFO, WARNING, ERROR)
- Phase start / result lines with elapsed time
- Structured key=value data
- Optional per-document log files

Handlers attach to the "taxextract" logger, so records from module loggers
(``logging.getLogger(__name__)`` under taxextract.*) land in the same console
and file output. Each document run gets its own RunLog; a run's log file only
receives records emitted from that run's task.
"""

import logging
import sys
import time
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

LOGGER_NAME = "taxextract"


@dataclass
class RunLog:
    """Log state of one document run, returned by ``start_pipeline``."""

    source_name: str
    started: float
    log_file: Path | None = None
    file_handler: logging.FileHandler | None = None
    phase_start: float = 0
    token: Token | None = field(default=None, repr=False)


_active_run: ContextVar[RunLog | None] = ContextVar("taxextract_active_run", default=None)


def current_run_log() -> RunLog | None:
    """RunLog of the run executing in the current task, if any."""
    return _active_run.get()


class _RunFilter(logging.Filter):
    """Passes only records emitted while ``run_log`` is the active run."""

    def __init__(self, run_log: RunLog):
        super().__init__()
        self.run_log = run_log

    def filter(self, record: logging.LogRecord) -> bool:
        return _active_run.get() is self.run_log


class PipelineLogger:
    """Structured logger for the extraction pipeline."""

    def __init__(self, name: str = LOGGER_NAME, verbose: bool = False, log_dir: str | Path | None = None):
        """Initialize the pipeline logger.

        Args:
            name: Logger name.
            verbose: If True, show DEBUG level logs.
            log_dir: Directory for log files. If None, no file logging.
        """
        self.logger = logging.getLogger(name)
        self.verbose = verbose
        # Phase timer for calls made outside any run
        self._phase_start: float = 0
        self._log_dir = Path(log_dir) if log_dir else None

        if not self.logger.handlers:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(ConsoleFormatter())
            console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
            self.logger.addHandler(console_handler)

        self.logger.setLevel(logging.DEBUG)

    def set_verbose(self, verbose: bool):
        """Update verbose setting."""
        self.verbose = verbose
        for handler in self.logger.handlers:
            if isinstance(handler, logging.StreamHandler) and handler.stream == sys.stdout:
                handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    def _ts(self) -> str:
        return datetime.now().strftime("%H:%M:%S")

    def _elapsed(self) -> str:
        run_log = _active_run.get()
        phase_start = run_log.phase_start if run_log else self._phase_start
        if phase_start:
            return f"{time.time() - phase_start:.1f}s"
        return ""

    @staticmethod
    def _total_elapsed(run_log: RunLog) -> str:
        elapsed = time.time() - run_log.started
        mins = int(elapsed // 60)
        secs = elapsed % 60
        if mins > 0:
            return f"{mins}m {secs:.0f}s"
        return f"{secs:.1f}s"

    def start_pipeline(self, source_name: str) -> RunLog:
        """Mark pipeline start, bind a RunLog to the current task and set up file logging.

        Pass the returned RunLog to ``end_pipeline`` from the same task.
        """
        run_log = RunLog(source_name=source_name, started=time.time())
        run_log.token = _active_run.set(run_log)

        if self._log_dir:
            self._log_dir.mkdir(parents=True, exist_ok=True)
            stem = Path(source_name).stem
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            run_log.log_file = self._log_dir / f"{stem}_{timestamp}.log"

            # File handler captures everything including DEBUG, for this run only
            file_handler = logging.FileHandler(run_log.log_file, encoding="utf-8")
            file_handler.setFormatter(FileFormatter())
            file_handler.setLevel(logging.DEBUG)
            file_handler.addFilter(_RunFilter(run_log))
            self.logger.addHandler(file_handler)
            run_log.file_handler = file_handler

        self.logger.info(f"[{self._ts()}] Starting pipeline: {source_name}")
        return run_log

    def end_pipeline(self, run_log: RunLog, success: bool = True, stats: dict | None = None):
        """Mark pipeline end and release the run's log file."""
        status = "COMPLETE" if success else "FAILED"

        if stats:
            self.summary(stats)

        self.logger.info(f"Pipeline {status}: {run_log.source_name} [{self._total_elapsed(run_log)}]")
        if run_log.log_file:
            self.logger.info(f"Log: {run_log.log_file}")
        if run_log.file_handler:
            self.logger.removeHandler(run_log.file_handler)
            run_log.file_handler.close()
            run_log.file_handler = None
        if run_log.token is not None:
            _active_run.reset(run_log.token)
            run_log.token = None

    def start_phase(self, phase: str, total: int = 0, model: str = ""):
        """Start a new pipeline phase."""
        run_log = _active_run.get()
        if run_log:
            run_log.phase_start = time.time()
        else:
            self._phase_start = time.time()

        parts = [phase.upper()]
        if total > 0:
            parts.append(f"{total} items")
        if model:
            parts.append(model.split("/")[-1])

        header = parts[0]
        if len(parts) > 1:
            header += f" ({', '.join(parts[1:])})"
        self.logger.info(header)

    def debug(self, message: str, **data):
        """Log debug message (only in verbose mode)."""
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.debug(f"[{self._ts()}] {message}")

    def info(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.info(f"  {message}")

    def warning(self, message: str, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.warning(f"[{self._ts()}] WARN: {message}")

    def error(self, message: str, exc: Exception | None = None, **data):
        if data:
            message = f"{message} | {_format_data(data)}"
        if exc:
            message = f"{message} | {type(exc).__name__}: {exc}"
        self.logger.error(f"[{self._ts()}] ERROR: {message}")

    def milestone(self, message: str, **data):
        """Log a high-level milestone (always visible, highlighted)."""
        if data:
            message = f"{message} | {_format_data(data)}"
        self.logger.info(f"  -> {message}")

    def summary(self, stats: dict):
        """Log a summary block for end-of-pipeline stats."""
        lines = ["SUMMARY"]
        for key, value in stats.items():
            if isinstance(value, dict):
                lines.append(f"  {key}:")
                for k, v in value.items():
                    lines.append(f"    {k}: {v}")
            else:
                lines.append(f"  {key}: {value}")
        self.logger.info("\n".join(lines))

    def phase_result(self, phase: str, result: str, **metrics):
        """Log phase completion with key metrics.

        Args:
            phase: Phase name (e.g., "Classify")
            result: Brief result description
            **metrics: Key-value metrics to display
        """
        parts = [result]
        if metrics:
            parts.append(", ".join(f"{k}={v}" for k, v in metrics.items()))
        elapsed = self._elapsed()
        if elapsed:
            parts.append(f"[{elapsed}]")
        self.logger.info(f"  Done: {' | '.join(parts)}")


class ConsoleFormatter(logging.Formatter):
    """Console formatter - message only."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


class FileFormatter(logging.Formatter):
    """File formatter - timestamp, level and source logger for later analysis."""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        level = record.levelname[:4]
        return f"{ts} [{level}] {record.name}: {record.getMessage()}"


def _format_data(data: dict[str, Any]) -> str:
    """Format structured data for logging."""
    parts = []
    for k, v in data.items():
        if isinstance(v, str) and len(v) > 50:
            v = v[:47] + "..."
        elif isinstance(v, list) and len(v) > 5:
            v = f"[{len(v)} items]"
        parts.append(f"{k}={v}")
    return ", ".join(parts)


# Global logger instance
_logger: PipelineLogger | None = None


def get_logger(verbose: bool = False, log_dir: str | Path | None = None) -> PipelineLogger:
    """Get or create the global pipeline logger.

    Args:
        verbose: If True, show DEBUG level logs in console.
        log_dir: Directory for log files. Applied to an existing logger only
                 if it has none yet.
    """
    global _logger
    if _logger is None:
        _logger = PipelineLogger(verbose=verbose, log_dir=log_dir)
    else:
        if verbose and not _logger.verbose:
            _logger.set_verbose(True)
        if log_dir and not _logger._log_dir:
            _logger._log_dir = Path(log_dir)
    return _logger


def reset_logger():
    """Reset the global logger (for testing)."""
    global _logger
    if _logger:
        for handler in _logger.logger.handlers[:]:
            handler.close()
            _logger.logger.removeHandler(handler)
    _logger = None
