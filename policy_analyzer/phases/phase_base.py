"""Base classes for pipeline phases.

The context is split in two so responsibilities are clear:
- **AnalysisResources** (frozen): external dependencies created once:
  model client, logger, cost tracker.
- **AnalysisConfig** (frozen): user-chosen settings that never change
  mid-run: model name, output language, timeout, verbosity.

Mutable run state is not here: it is owned by the Orchestrator and only
ever handed out as immutable snapshots.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from pydantic import BaseModel

from policy_analyzer.core import CostTracker, ModelClient, PipelineLogger
from policy_analyzer.core.config import DEFAULT_MODEL, PipelineConfig
from policy_analyzer.pydantic_models import AnalysisPhase


@dataclass(frozen=True)
class AnalysisResources:
    """Shared resources - created once, never modified."""

    client: ModelClient
    logger: PipelineLogger
    cost_tracker: CostTracker


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration - set at init, never modified."""

    model: str = DEFAULT_MODEL
    language: str = PipelineConfig.OUTPUT_LANGUAGE
    phase_timeout: float | None = PipelineConfig.PHASE_TIMEOUT_SECONDS
    verbose: bool = False


PromptBuilder = Callable[[str, "str | None", str], str]


@dataclass(frozen=True)
class PhaseTemplate:
    """Fixed request template for one phase.

    Attributes:
        phase: The phase this template belongs to.
        build_prompt: ``(policy_text, context_json, language) -> prompt``.
        response_model: Expected answer shape; also the strict decoder.
        streaming: True for the interpretation phase, which never goes
            through the single-shot executor.
    """

    phase: AnalysisPhase
    build_prompt: PromptBuilder
    response_model: type[BaseModel]
    streaming: bool = False

    @property
    def expected_shape(self) -> dict:
        """JSON schema of the response model, sent with the request."""
        return self.response_model.model_json_schema()
