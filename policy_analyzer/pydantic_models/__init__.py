"""Pydantic schemas and immutable state for the analysis pipeline.

- phase_results: AnalysisPhase and one result model per phase
- pipeline: CumulativeAnalysis, PipelineState, AnalysisSnapshot
"""

from policy_analyzer.pydantic_models.phase_results import (
    AnalysisPhase,
    PHASE_ORDER,
    PHASE_RESULT_MODELS,
    PhaseResult,
    GlossaryEntry,
    BackgroundResult,
    InterpretationRecord,
    InterpretationResult,
    Vulnerability,
    VulnerabilityResult,
    Prediction,
    OutlookResult,
    ReportSection,
    SynthesisReport,
)
from policy_analyzer.pydantic_models.pipeline import (
    CumulativeAnalysis,
    PipelineStatus,
    PipelineState,
    AnalysisSnapshot,
)

__all__ = [
    # Phases
    "AnalysisPhase",
    "PHASE_ORDER",
    "PHASE_RESULT_MODELS",
    "PhaseResult",
    # Phase results
    "GlossaryEntry",
    "BackgroundResult",
    "InterpretationRecord",
    "InterpretationResult",
    "Vulnerability",
    "VulnerabilityResult",
    "Prediction",
    "OutlookResult",
    "ReportSection",
    "SynthesisReport",
    # Pipeline state
    "CumulativeAnalysis",
    "PipelineStatus",
    "PipelineState",
    "AnalysisSnapshot",
]
