"""Pure merge functions over CumulativeAnalysis.

Every function returns a new value built by structural copy-and-set
(``dataclasses.replace``); the input is never touched. An observer holding an
older snapshot keeps seeing exactly what it saw.
"""

from dataclasses import replace

from policy_analyzer.core import InvalidPhaseError, ResultAlreadyAttachedError
from policy_analyzer.pydantic_models import (
    PHASE_RESULT_MODELS,
    AnalysisPhase,
    CumulativeAnalysis,
    InterpretationRecord,
    InterpretationResult,
    PhaseResult,
)


def empty_analysis() -> CumulativeAnalysis:
    return CumulativeAnalysis()


def attach_result(analysis: CumulativeAnalysis, phase: AnalysisPhase, result: PhaseResult) -> CumulativeAnalysis:
    """Attach the result of a phase. Each phase gets exactly one result.

    Raises:
        ResultAlreadyAttachedError: The phase already has a result.
        InvalidPhaseError: The result type does not belong to the phase.
    """
    expected = PHASE_RESULT_MODELS.get(phase)
    if expected is None or not isinstance(result, expected):
        raise InvalidPhaseError(f"{type(result).__name__} is not a result for phase {phase!r}")
    if analysis.has_result(phase):
        raise ResultAlreadyAttachedError(f"Phase {phase.value} already has a result")

    changes = {CumulativeAnalysis.slot_name(phase): result}
    if phase == AnalysisPhase.INTERPRETATION:
        changes["interpretation_records"] = result.sentences
    return replace(analysis, **changes)


def append_record(analysis: CumulativeAnalysis, record: InterpretationRecord) -> CumulativeAnalysis:
    """Append one streamed record to the open interpretation sequence.

    Raises:
        ResultAlreadyAttachedError: The interpretation phase is already frozen.
    """
    if analysis.interpretation is not None:
        raise ResultAlreadyAttachedError("Interpretation is complete; records can no longer be appended")
    return replace(analysis, interpretation_records=analysis.interpretation_records + (record,))


def complete_interpretation(analysis: CumulativeAnalysis) -> CumulativeAnalysis:
    """Freeze the streamed records into the interpretation result."""
    result = InterpretationResult(sentences=analysis.interpretation_records)
    return attach_result(analysis, AnalysisPhase.INTERPRETATION, result)


def restart_interpretation(analysis: CumulativeAnalysis) -> CumulativeAnalysis:
    """Drop the partial records of a failed stream before streaming again."""
    if analysis.interpretation is not None:
        raise ResultAlreadyAttachedError("Interpretation is complete and cannot be restarted")
    return replace(analysis, interpretation_records=())
