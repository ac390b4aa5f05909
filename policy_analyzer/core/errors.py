"""Structured error types for the analysis pipeline.

Two layers:
- Exceptions that drive control flow (a phase failed, a phase tag is unknown).
- ``AnalysisError`` records collected in ``PipelineErrors`` so a run can report
  what went wrong, including non-fatal problems such as malformed stream lines.

Only transport, decoding and timeout failures end a run. Malformed stream
lines are absorbed as warnings. Invalid phases and double attachment are
programmer errors and are raised straight to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from policy_analyzer.pydantic_models.phase_results import AnalysisPhase


class ErrorSeverity(Enum):
    """Severity levels for pipeline errors."""
    WARNING = "warning"   # Non-fatal, processing continued
    ERROR = "error"       # Phase failed, run halted and can be retried


class ErrorCategory(Enum):
    """Categories of pipeline errors."""
    TRANSPORT = "transport"                # Network/auth failure reaching the model
    DECODING = "decoding"                  # Response did not match the phase shape
    TIMEOUT = "timeout"                    # Phase exceeded its time budget
    MALFORMED_RECORD = "malformed_record"  # One streamed line failed to decode


# Exceptions

class AnalysisPipelineError(Exception):
    """Base class for all pipeline exceptions."""


class TransportError(AnalysisPipelineError):
    """The model could not be reached (network, auth, rate limit, provider error)."""


class DecodingError(AnalysisPipelineError):
    """The model answered, but not in the expected structured shape."""

    def __init__(self, message: str, raw_response: str | None = None):
        super().__init__(message)
        self.raw_response = raw_response


class InvalidPhaseError(AnalysisPipelineError):
    """A phase tag with no template, or a phase used on the wrong path."""


class ResultAlreadyAttachedError(AnalysisPipelineError):
    """A second result was attached to a phase that already has one."""


class ParserClosedError(AnalysisPipelineError):
    """A record parser was used after flush()."""


_USER_MESSAGES: dict[ErrorCategory, str] = {
    ErrorCategory.TRANSPORT: "'{label}' analysis failed. Check your API key and network connection.",
    ErrorCategory.DECODING: "The model returned a malformed response for '{label}'. Please retry.",
    ErrorCategory.TIMEOUT: "'{label}' analysis timed out. Please retry.",
}


class PhaseExecutionError(AnalysisPipelineError):
    """A phase could not produce its result.

    Attributes:
        phase: The phase that failed.
        cause: The underlying exception (TransportError, DecodingError, TimeoutError).
        kind: TRANSPORT, DECODING or TIMEOUT.
    """

    def __init__(self, phase: AnalysisPhase, cause: BaseException | None, kind: ErrorCategory):
        self.phase = phase
        self.cause = cause
        self.kind = kind
        super().__init__(self.user_message)

    @property
    def user_message(self) -> str:
        """Message suitable for display, distinct per failure kind."""
        template = _USER_MESSAGES.get(self.kind, "'{label}' analysis failed.")
        return template.format(label=self.phase.label)

    def __repr__(self) -> str:
        return f"PhaseExecutionError(phase={self.phase.value}, kind={self.kind.value}, cause={self.cause!r})"


# Structured error records

@dataclass
class AnalysisError:
    """Structured pipeline error with context."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    phase: str                      # Pipeline phase where error occurred
    original_error: BaseException | None = None
    attempt: int = 1
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}] {self.category.value}: {self.message}"]
        if self.phase:
            parts.append(f"phase={self.phase}")
        if self.attempt > 1:
            parts.append(f"attempt={self.attempt}")
        return " | ".join(parts)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "message": self.message,
            "phase": self.phase,
            "attempt": self.attempt,
            "context": self.context,
        }


@dataclass
class PipelineErrors:
    """Aggregate errors across one pipeline run."""

    errors: list[AnalysisError] = field(default_factory=list)
    warnings: list[AnalysisError] = field(default_factory=list)

    def add(self, error: AnalysisError):
        """Add an error or warning."""
        if error.severity == ErrorSeverity.WARNING:
            self.warnings.append(error)
        else:
            self.errors.append(error)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def summary(self) -> dict:
        """Get summary statistics."""
        by_category = {}
        for error in self.errors + self.warnings:
            cat = error.category.value
            by_category[cat] = by_category.get(cat, 0) + 1

        return {
            "total_errors": self.error_count,
            "total_warnings": self.warning_count,
            "by_category": by_category,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "summary": self.summary(),
        }


# Factory functions for common error records

def transport_error(
    message: str,
    phase: str,
    original: BaseException | None = None,
    attempt: int = 1,
) -> AnalysisError:
    """Create a transport error record."""
    return AnalysisError(
        category=ErrorCategory.TRANSPORT,
        severity=ErrorSeverity.ERROR,
        message=message,
        phase=phase,
        original_error=original,
        attempt=attempt,
    )


def decoding_error(
    message: str,
    phase: str,
    raw_response: str | None = None,
    attempt: int = 1,
) -> AnalysisError:
    """Create a decoding error record."""
    return AnalysisError(
        category=ErrorCategory.DECODING,
        severity=ErrorSeverity.ERROR,
        message=message,
        phase=phase,
        attempt=attempt,
        context={"raw_response": raw_response[:500] if raw_response else None},
    )


def timeout_error(
    phase: str,
    timeout_seconds: float | None = None,
    attempt: int = 1,
) -> AnalysisError:
    """Create a timeout error record."""
    return AnalysisError(
        category=ErrorCategory.TIMEOUT,
        severity=ErrorSeverity.ERROR,
        message=f"Phase timed out after {timeout_seconds}s" if timeout_seconds else "Phase timed out",
        phase=phase,
        attempt=attempt,
    )


def malformed_record_warning(phase: str, raw_line: str, reason: str = "") -> AnalysisError:
    """Create a warning for one streamed line that failed to decode."""
    return AnalysisError(
        category=ErrorCategory.MALFORMED_RECORD,
        severity=ErrorSeverity.WARNING,
        message=reason or "Skipped malformed record line",
        phase=phase,
        context={"raw_line": raw_line[:200]},
    )


def error_record_for(
    exc: PhaseExecutionError,
    attempt: int = 1,
    timeout_seconds: float | None = None,
) -> AnalysisError:
    """Convert a PhaseExecutionError into the matching structured record."""
    phase = exc.phase.value
    if exc.kind == ErrorCategory.DECODING:
        raw = getattr(exc.cause, "raw_response", None)
        return decoding_error(str(exc.cause or exc), phase, raw_response=raw, attempt=attempt)
    if exc.kind == ErrorCategory.TIMEOUT:
        return timeout_error(phase, timeout_seconds=timeout_seconds, attempt=attempt)
    return transport_error(str(exc.cause or exc), phase, original=exc.cause, attempt=attempt)
