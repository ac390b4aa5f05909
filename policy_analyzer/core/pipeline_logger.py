"""Run-oriented logging for the analysis pipeline.

``PipelineLogger`` narrates the orchestrator's state machine rather than
individual calls: a run starting under its run id, each phase entering
RUNNING or STREAMING, streamed records as they land, failures, retries,
resets, and results dropped because their run was superseded.

Console output is terse. When a log directory is given, every line is also
written to a per-run file with timestamp, level and run id.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import Any, TYPE_CHECKING

from policy_analyzer.pydantic_models.phase_results import PHASE_ORDER, AnalysisPhase

if TYPE_CHECKING:
    from policy_analyzer.core.errors import PhaseExecutionError
    from policy_analyzer.pydantic_models.pipeline import PipelineStatus

_FILE_FORMAT = "%(asctime)s [%(levelname)-7s] run=%(run_id)s %(message)s"


class _RunContext(logging.Filter):
    """Stamps records passing a handler with the current run id."""

    def __init__(self) -> None:
        super().__init__()
        self.run_id = 0

    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = self.run_id
        return True


class PipelineLogger:
    """Logger for orchestrator runs."""

    def __init__(self, name: str = "policy_analyzer", verbose: bool = False, log_dir: str | Path | None = None):
        """
        Args:
            name: Underlying stdlib logger name.
            verbose: If True, DEBUG lines reach the console.
            log_dir: Directory for per-run log files. None disables file output.
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.verbose = verbose
        self._log_dir = Path(log_dir) if log_dir else None
        self._log_file: Path | None = None
        self._context = _RunContext()
        self._run_started = 0.0
        self._phase_started = 0.0
        self._records = 0

        if not any(getattr(h, "_pipeline_console", False) for h in self.logger.handlers):
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(logging.Formatter("%(message)s"))
            console._pipeline_console = True
            self.logger.addHandler(console)
        self.set_verbose(verbose)

    @property
    def log_file(self) -> Path | None:
        return self._log_file

    @property
    def log_dir(self) -> Path | None:
        return self._log_dir

    @log_dir.setter
    def log_dir(self, value: str | Path | None) -> None:
        self._log_dir = Path(value) if value else None

    def set_verbose(self, verbose: bool) -> None:
        self.verbose = verbose
        for handler in self.logger.handlers:
            if getattr(handler, "_pipeline_console", False):
                handler.setLevel(logging.DEBUG if verbose else logging.INFO)

    def close(self) -> None:
        """Detach and close the run's file handler, if any."""
        for handler in self.logger.handlers[:]:
            if isinstance(handler, logging.FileHandler):
                handler.close()
                self.logger.removeHandler(handler)
        self._log_file = None

    # -- Run lifecycle --

    def start_run(self, source: str, run_id: int, characters: int = 0) -> None:
        """A fresh run entered the pipeline."""
        self._context.run_id = run_id
        self._run_started = time.monotonic()
        if self._log_dir and self._log_file is None:
            self._open_file(source, run_id)

        detail = f" ({characters:,} characters)" if characters else ""
        self.logger.info(f"Run {run_id}: analyzing {source}{detail}")

    def end_run(self, status: PipelineStatus, stats: dict | None = None) -> None:
        """The run reached SUCCEEDED or FAILED."""
        if stats:
            self.logger.info(_format_block("Run statistics", stats))
        rule = "=" * 50
        self.logger.info(f"{rule}\nRun {self._context.run_id} {status.value.upper()} [{_clock(self._run_started)}]\n{rule}")
        if self._log_file:
            self.logger.info(f"Log: {self._log_file}")

    def run_reset(self, run_id: int) -> None:
        """Everything was discarded; in-flight work now belongs to a stale run."""
        previous = self._context.run_id
        self._context.run_id = run_id
        self.logger.info(f"Reset: run {previous} superseded, pipeline idle")

    def retry_requested(self, phase: AnalysisPhase, attempt: int) -> None:
        self.logger.info(f"Retrying {phase.label} (attempt {attempt})")

    # -- Phase lifecycle --

    def phase_started(self, phase: AnalysisPhase, model: str = "", attempt: int = 1, streaming: bool = False) -> None:
        """A phase entered RUNNING, or STREAMING for a streamed phase."""
        self._phase_started = time.monotonic()
        self._records = 0

        notes = []
        if streaming:
            notes.append("streaming")
        if model:
            notes.append(model.rsplit("/", 1)[-1])
        if attempt > 1:
            notes.append(f"attempt {attempt}")
        suffix = f" ({', '.join(notes)})" if notes else ""
        self.logger.info(f"\n[{phase.position + 1}/{len(PHASE_ORDER)}] {phase.label.upper()}{suffix}")

    def record_received(self, sentence: str) -> None:
        """One streamed record was appended: ``  [3] Article 2 requires... (12.3s)``."""
        self._records += 1
        self.logger.info(f"  [{self._records}] {_shorten(sentence)} ({_clock(self._phase_started)})")

    def phase_completed(self, phase: AnalysisPhase, outcome: str, **metrics) -> None:
        """A phase result was attached."""
        parts = [outcome]
        if metrics:
            parts.append(_format_data(metrics))
        parts.append(f"[{_clock(self._phase_started)}]")
        self.logger.info(f"  Done: {' | '.join(parts)}")

    def phase_failed(self, error: PhaseExecutionError, attempt: int = 1) -> None:
        """A phase failed and the run moves to FAILED."""
        message = f"{error.phase.label} failed ({error.kind.value}, attempt {attempt}): {error.user_message}"
        if error.cause is not None:
            message += f" | {type(error.cause).__name__}: {error.cause}"
        self.logger.error(f"  {message}")

    def stale_dropped(self, phase: AnalysisPhase, what: str) -> None:
        """Output from a superseded run arrived and was discarded."""
        self.logger.debug(f"  [{phase.label}] Dropping {what} from a superseded run")

    # -- Free-form messages --

    def debug(self, message: str, **data) -> None:
        self.logger.debug(_with_data(message, data))

    def info(self, message: str, **data) -> None:
        self.logger.info(f"  {_with_data(message, data)}")

    def warning(self, message: str, **data) -> None:
        self.logger.warning(f"  WARN: {_with_data(message, data)}")

    def error(self, message: str, exc: BaseException | None = None, **data) -> None:
        message = _with_data(message, data)
        if exc is not None:
            message = f"{message} | {type(exc).__name__}: {exc}"
        self.logger.error(f"  ERROR: {message}")

    def _open_file(self, source: str, run_id: int) -> None:
        self._log_dir.mkdir(parents=True, exist_ok=True)
        stem = Path(source).stem or "analysis"
        self._log_file = self._log_dir / f"{stem}_run{run_id}_{time.strftime('%Y%m%d_%H%M%S')}.log"

        handler = logging.FileHandler(self._log_file, encoding="utf-8")
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        handler.addFilter(self._context)
        self.logger.addHandler(handler)


def _clock(since: float) -> str:
    if not since:
        return "0.0s"
    elapsed = time.monotonic() - since
    if elapsed >= 60:
        return f"{int(elapsed // 60)}m {elapsed % 60:.0f}s"
    return f"{elapsed:.1f}s"


def _shorten(text: str, limit: int = 60) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[:limit - 3] + "..."


def _format_data(data: dict[str, Any]) -> str:
    parts = []
    for key, value in data.items():
        if isinstance(value, str):
            value = _shorten(value, 50)
        elif isinstance(value, (list, tuple)) and len(value) > 5:
            value = f"[{len(value)} items]"
        parts.append(f"{key}={value}")
    return ", ".join(parts)


def _with_data(message: str, data: dict[str, Any]) -> str:
    return f"{message} | {_format_data(data)}" if data else message


def _format_block(title: str, stats: dict) -> str:
    lines = [title]
    for key, value in stats.items():
        if isinstance(value, dict):
            lines.append(f"  {key}:")
            lines.extend(f"    {k}: {v}" for k, v in value.items())
        else:
            lines.append(f"  {key}: {value}")
    return "\n".join(lines)


_logger: PipelineLogger | None = None


def get_logger(verbose: bool = False, log_dir: str | Path | None = None) -> PipelineLogger:
    """Return the process-wide pipeline logger, creating it on first use.

    Later calls may raise verbosity or supply a log directory, never lower or
    replace them.
    """
    global _logger
    if _logger is None:
        _logger = PipelineLogger(verbose=verbose, log_dir=log_dir)
        return _logger
    if verbose and not _logger.verbose:
        _logger.set_verbose(True)
    if log_dir and _logger.log_dir is None:
        _logger.log_dir = log_dir
    return _logger


def reset_logger() -> None:
    """Drop the process-wide logger and close its log file (for tests)."""
    global _logger
    if _logger is not None:
        _logger.close()
    _logger = None
