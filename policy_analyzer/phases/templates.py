"""Phase templates and the phase → context mapping.

Which prior output each phase sees:

    Background      ─ none
    Interpretation  ─ none (streamed)
    Vulnerability   ─ Interpretation result
    Outlook         ─ Vulnerability result
    Synthesis       ─ entire cumulative analysis
"""

import json

from policy_analyzer.core import InvalidPhaseError
from policy_analyzer.core.config import PipelineConfig
from policy_analyzer.phases.phase_base import PhaseTemplate
from policy_analyzer.prompts import (
    build_background_prompt,
    build_interpretation_prompt,
    build_outlook_prompt,
    build_synthesis_prompt,
    build_vulnerability_prompt,
)
from policy_analyzer.pydantic_models import (
    AnalysisPhase,
    BackgroundResult,
    CumulativeAnalysis,
    InterpretationResult,
    OutlookResult,
    SynthesisReport,
    VulnerabilityResult,
)


PHASE_TEMPLATES: dict[AnalysisPhase, PhaseTemplate] = {
    AnalysisPhase.BACKGROUND: PhaseTemplate(
        phase=AnalysisPhase.BACKGROUND,
        build_prompt=build_background_prompt,
        response_model=BackgroundResult,
    ),
    AnalysisPhase.INTERPRETATION: PhaseTemplate(
        phase=AnalysisPhase.INTERPRETATION,
        build_prompt=build_interpretation_prompt,
        response_model=InterpretationResult,
        streaming=True,
    ),
    AnalysisPhase.VULNERABILITY: PhaseTemplate(
        phase=AnalysisPhase.VULNERABILITY,
        build_prompt=build_vulnerability_prompt,
        response_model=VulnerabilityResult,
    ),
    AnalysisPhase.OUTLOOK: PhaseTemplate(
        phase=AnalysisPhase.OUTLOOK,
        build_prompt=build_outlook_prompt,
        response_model=OutlookResult,
    ),
    AnalysisPhase.SYNTHESIS: PhaseTemplate(
        phase=AnalysisPhase.SYNTHESIS,
        build_prompt=build_synthesis_prompt,
        response_model=SynthesisReport,
    ),
}


def template_for(phase: AnalysisPhase) -> PhaseTemplate:
    """Look up the template for a phase.

    Raises:
        InvalidPhaseError: For anything that is not a known phase tag.
    """
    try:
        return PHASE_TEMPLATES[AnalysisPhase(phase)]
    except (KeyError, ValueError) as e:
        raise InvalidPhaseError(f"Unknown analysis phase: {phase!r}") from e


def context_for(phase: AnalysisPhase, analysis: CumulativeAnalysis) -> dict | None:
    """Select the prior output a phase depends on.

    Returns None for phases without context. For phases with a dependency the
    returned dict is the JSON-ready dependency (wire field names).
    """
    phase = template_for(phase).phase
    if phase in (AnalysisPhase.BACKGROUND, AnalysisPhase.INTERPRETATION):
        return None
    if phase == AnalysisPhase.SYNTHESIS:
        return analysis.to_context()

    dependency = {
        AnalysisPhase.VULNERABILITY: AnalysisPhase.INTERPRETATION,
        AnalysisPhase.OUTLOOK: AnalysisPhase.VULNERABILITY,
    }[phase]
    result = analysis.result_for(dependency)
    if result is None:
        raise InvalidPhaseError(f"{phase.value} requires the {dependency.value} result, which is not attached")
    return result.model_dump(mode="json", by_alias=True)


def render_context(context: dict | None) -> str | None:
    """Serialize context for embedding in a prompt."""
    if context is None:
        return None
    return json.dumps(context, indent=PipelineConfig.CONTEXT_INDENT, ensure_ascii=False)
