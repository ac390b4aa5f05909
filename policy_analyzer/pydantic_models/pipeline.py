"""Immutable pipeline state and cumulative analysis.

Both are frozen dataclasses. Every update produces a new value (see
``policy_analyzer.accumulator``), so an observer holding an old snapshot never
sees it change underneath them.

Slots in ``CumulativeAnalysis`` make the three situations distinguishable:
- phase not yet run: slot is ``None`` and the phase is not the failed one
- phase failed: slot is ``None`` and ``PipelineState.last_error.phase`` names it
- phase empty: slot holds a result whose list is empty
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, TYPE_CHECKING

from policy_analyzer.pydantic_models.phase_results import (
    PHASE_ORDER,
    AnalysisPhase,
    BackgroundResult,
    InterpretationRecord,
    InterpretationResult,
    OutlookResult,
    PhaseResult,
    SynthesisReport,
    VulnerabilityResult,
)

if TYPE_CHECKING:
    from policy_analyzer.core.errors import PhaseExecutionError


_SLOTS: dict[AnalysisPhase, str] = {
    AnalysisPhase.BACKGROUND: "background",
    AnalysisPhase.INTERPRETATION: "interpretation",
    AnalysisPhase.VULNERABILITY: "vulnerabilities",
    AnalysisPhase.OUTLOOK: "outlook",
    AnalysisPhase.SYNTHESIS: "synthesis",
}


@dataclass(frozen=True)
class CumulativeAnalysis:
    """Everything the pipeline has produced so far.

    ``interpretation_records`` grows one record at a time while the streaming
    phase runs. When the stream ends, the records are frozen into
    ``interpretation`` and never change again.
    """

    background: BackgroundResult | None = None
    interpretation_records: tuple[InterpretationRecord, ...] = ()
    interpretation: InterpretationResult | None = None
    vulnerabilities: VulnerabilityResult | None = None
    outlook: OutlookResult | None = None
    synthesis: SynthesisReport | None = None

    @staticmethod
    def slot_name(phase: AnalysisPhase) -> str:
        """Attribute holding the result for ``phase``."""
        return _SLOTS[phase]

    def result_for(self, phase: AnalysisPhase) -> PhaseResult | None:
        return getattr(self, _SLOTS[phase])

    def has_result(self, phase: AnalysisPhase) -> bool:
        return self.result_for(phase) is not None

    @property
    def completed_phases(self) -> list[AnalysisPhase]:
        """Phases with an attached result, in pipeline order."""
        return [phase for phase in PHASE_ORDER if self.has_result(phase)]

    @property
    def is_empty(self) -> bool:
        return not self.completed_phases and not self.interpretation_records

    def to_context(self) -> dict[str, Any]:
        """JSON-ready view of everything attached so far.

        Keys follow the wire format (camelCase record fields). Used as the
        synthesis prompt context and as the serialized output of a run.
        While the streaming phase is still open, the partial records are
        reported under ``interpretation`` as well so nothing visible is lost.
        """
        data: dict[str, Any] = {}
        for phase in PHASE_ORDER:
            result = self.result_for(phase)
            if result is not None:
                data[_SLOTS[phase]] = result.model_dump(mode="json", by_alias=True)
        if self.interpretation is None and self.interpretation_records:
            data["interpretation"] = {
                "sentences": [r.model_dump(mode="json", by_alias=True) for r in self.interpretation_records],
            }
        return data


class PipelineStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STREAMING = "streaming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineState:
    """Position of the run in the phase sequence.

    ``phase_index`` runs from 0 to len(PHASE_ORDER); it equals the phase count
    only once the run has succeeded.
    """

    phase_index: int = 0
    status: PipelineStatus = PipelineStatus.IDLE
    last_error: PhaseExecutionError | None = None
    run_id: int = 0

    @property
    def current_phase(self) -> AnalysisPhase | None:
        if self.phase_index >= len(PHASE_ORDER):
            return None
        return PHASE_ORDER[self.phase_index]

    @property
    def is_active(self) -> bool:
        return self.status in (PipelineStatus.RUNNING, PipelineStatus.STREAMING)

    def to_dict(self) -> dict[str, Any]:
        phase = self.current_phase
        return {
            "phase_index": self.phase_index,
            "current_phase": phase.value if phase else None,
            "status": self.status.value,
            "last_error": {
                "phase": self.last_error.phase.value,
                "kind": self.last_error.kind.value,
                "message": self.last_error.user_message,
            } if self.last_error else None,
        }


@dataclass(frozen=True)
class AnalysisSnapshot:
    """Point-in-time view handed to observers."""

    state: PipelineState
    analysis: CumulativeAnalysis

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.to_dict(),
            "analysis": self.analysis.to_context(),
        }
