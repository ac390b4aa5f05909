"""Phase execution for the analysis pipeline.

- phase_base: frozen resources/config and the PhaseTemplate type
- templates: one template per phase and the phase → context mapping
- executor: single-shot phases (background, vulnerability, outlook, synthesis)
- interpretation_stream: the streamed interpretation phase
"""

from policy_analyzer.phases.phase_base import (
    AnalysisResources,
    AnalysisConfig,
    PhaseTemplate,
)
from policy_analyzer.phases.templates import (
    PHASE_TEMPLATES,
    template_for,
    context_for,
    render_context,
)
from policy_analyzer.phases.executor import PhaseExecutor, decode_response
from policy_analyzer.phases.interpretation_stream import (
    InterpretationStreamRunner,
    StreamStats,
)

__all__ = [
    "AnalysisResources",
    "AnalysisConfig",
    "PhaseTemplate",
    "PHASE_TEMPLATES",
    "template_for",
    "context_for",
    "render_context",
    "PhaseExecutor",
    "decode_response",
    "InterpretationStreamRunner",
    "StreamStats",
]
