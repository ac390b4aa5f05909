"""Pydantic schemas for the five analysis phases.

Each phase produces exactly one immutable result model. The models double as
the expected response shape sent to the model (via ``model_json_schema``) and
as the strict decoder for its answer.

The interpretation phase is special: the model streams one
``InterpretationRecord`` per line, and the records are only wrapped into an
``InterpretationResult`` once the stream has finished.
"""

from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field


class AnalysisPhase(str, Enum):
    """The five ordered analysis stages."""

    BACKGROUND = "background"
    INTERPRETATION = "interpretation"
    VULNERABILITY = "vulnerability"
    OUTLOOK = "outlook"
    SYNTHESIS = "synthesis"

    @property
    def label(self) -> str:
        """Human-readable phase name."""
        return _PHASE_LABELS[self]

    @property
    def position(self) -> int:
        """Position of the phase in PHASE_ORDER."""
        return PHASE_ORDER.index(self)


_PHASE_LABELS: dict[AnalysisPhase, str] = {
    AnalysisPhase.BACKGROUND: "Background & Terminology",
    AnalysisPhase.INTERPRETATION: "Sentence-by-Sentence Interpretation",
    AnalysisPhase.VULNERABILITY: "Vulnerability Analysis",
    AnalysisPhase.OUTLOOK: "Policy Outlook",
    AnalysisPhase.SYNTHESIS: "Synthesis Report",
}

PHASE_ORDER: tuple[AnalysisPhase, ...] = (
    AnalysisPhase.BACKGROUND,
    AnalysisPhase.INTERPRETATION,
    AnalysisPhase.VULNERABILITY,
    AnalysisPhase.OUTLOOK,
    AnalysisPhase.SYNTHESIS,
)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


# Background

class GlossaryEntry(_Frozen):
    """A key term and its definition in the policy's context."""

    term: str = Field(description="Key term, e.g. 'transmission and distribution tariff'")
    definition: str = Field(description="Clear definition of the term in the policy's context")


class BackgroundResult(_Frozen):
    """Background summary plus glossary of key terms."""

    summary: str = Field(description="Concise summary of the policy's background, context and issuing body")
    glossary: tuple[GlossaryEntry, ...] = Field(description="Key terms and their definitions")


# Interpretation

class InterpretationRecord(_Frozen):
    """Interpretation of one sentence or clause. The unit of the streaming phase.

    Wire names are camelCase (``whatItSays``); Python attributes are snake_case.
    """

    sentence: str = Field(description="The original sentence or clause from the policy text")
    what_it_says: str = Field(
        alias="whatItSays",
        description="Plain-language explanation of the literal meaning",
    )
    why_it_says_it: str = Field(
        alias="whyItSaysIt",
        description="The underlying regulatory intent or goal",
    )


class InterpretationResult(_Frozen):
    """All sentence interpretations, frozen once the stream completes."""

    sentences: tuple[InterpretationRecord, ...] = Field(
        default=(),
        description="Interpretation of each sentence or clause of the policy",
    )


# Vulnerability

class Vulnerability(_Frozen):
    category: str = Field(description="Category, e.g. 'economic arbitrage', 'ambiguous definition'")
    vulnerability: str = Field(description="Detailed description of the loophole or flaw")
    example: str = Field(description="Concrete example of how it could be exploited")


class VulnerabilityResult(_Frozen):
    vulnerabilities: tuple[Vulnerability, ...] = Field(
        description="Potential loopholes, flaws or unintended consequences",
    )


# Outlook

class Prediction(_Frozen):
    vulnerability: str = Field(description="The specific vulnerability being addressed")
    prediction: str = Field(
        description="Predicted policy revision, phrased as 'The next logical evolution is to introduce amendment Y...'",
    )


class OutlookResult(_Frozen):
    predictions: tuple[Prediction, ...] = Field(
        description="Predicted evolution of the policy based on the identified vulnerabilities",
    )


# Synthesis

class ReportSection(_Frozen):
    heading: str = Field(description="Section heading, e.g. 'Key risk: economic arbitrage'")
    content: str = Field(description="In-depth discussion of one or more analysis points")
    example: str | None = Field(default=None, description="Optional concrete case illustrating the point")


class SynthesisReport(_Frozen):
    """Final integrated report combining every earlier phase."""

    title: str = Field(description="Concise, descriptive report title")
    introduction: str = Field(description="Core objective of the policy and the main conclusions")
    sections: tuple[ReportSection, ...] = Field(description="Body of the report")
    conclusion: str = Field(description="Overall impact, recommendations and outlook")


PhaseResult = Union[
    BackgroundResult,
    InterpretationResult,
    VulnerabilityResult,
    OutlookResult,
    SynthesisReport,
]

PHASE_RESULT_MODELS: dict[AnalysisPhase, type[BaseModel]] = {
    AnalysisPhase.BACKGROUND: BackgroundResult,
    AnalysisPhase.INTERPRETATION: InterpretationResult,
    AnalysisPhase.VULNERABILITY: VulnerabilityResult,
    AnalysisPhase.OUTLOOK: OutlookResult,
    AnalysisPhase.SYNTHESIS: SynthesisReport,
}
