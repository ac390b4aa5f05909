"""Policy Analysis Pipeline.

A sequential, five-phase analysis of a long policy text, each phase building
on the ones before it, with interpretations streamed record by record.

Architecture:
    core/            - config, LLM router/client, logging, errors, cost tracking
    prompts/         - LLM prompt templates, one per phase
    pydantic_models/ - phase results, pipeline state, cumulative analysis
    streaming/       - incremental newline-delimited record parser
    phases/          - phase templates, single-shot executor, stream runner

Usage:
    from policy_analyzer import Orchestrator

    orchestrator = Orchestrator()
    snapshot = await orchestrator.start(policy_text)

CLI:
    uv run policy-analyze policies/budget_2025.txt
"""

from policy_analyzer.orchestrator import Orchestrator
from policy_analyzer.pydantic_models import (
    # Phases
    AnalysisPhase,
    PHASE_ORDER,
    # Phase results
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
    # Pipeline state
    CumulativeAnalysis,
    PipelineStatus,
    PipelineState,
    AnalysisSnapshot,
)
from policy_analyzer.streaming import RecordParser, ParsedRecord, MalformedLine

__all__ = [
    # Main entry point
    "Orchestrator",
    # Phases
    "AnalysisPhase",
    "PHASE_ORDER",
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
    # Streaming
    "RecordParser",
    "ParsedRecord",
    "MalformedLine",
]
