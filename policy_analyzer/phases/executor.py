"""Single-shot phase execution.

``PhaseExecutor.execute`` turns (phase, policy text, prior context) into one
decoded phase result or a ``PhaseExecutionError``. It never retries: a failed
phase is retried by the orchestrator, on user request.

Decoding is strict. The raw answer must validate against the phase's response
model; anything else is a DECODING failure, reported separately from
TRANSPORT failures so a consumer can tell "malformed response" apart from
"network/auth error".
"""

from pydantic import ValidationError

from policy_analyzer.core import (
    DecodingError,
    ErrorCategory,
    InvalidPhaseError,
    ModelClient,
    PhaseExecutionError,
    TransportError,
)
from policy_analyzer.core.config import PipelineConfig
from policy_analyzer.phases.templates import render_context, template_for
from policy_analyzer.pydantic_models import AnalysisPhase, PhaseResult


class PhaseExecutor:
    """Runs one non-streaming phase against a model client."""

    def __init__(self, client: ModelClient, language: str = PipelineConfig.OUTPUT_LANGUAGE):
        self.client = client
        self.language = language

    async def execute(self, phase: AnalysisPhase, input_text: str, context: dict | None = None) -> PhaseResult:
        """Run one phase and decode its answer.

        Args:
            phase: Any phase except INTERPRETATION.
            input_text: The full policy text.
            context: The phase's dependency as produced by ``context_for``.

        Returns:
            The decoded, immutable phase result.

        Raises:
            InvalidPhaseError: Unknown phase, or INTERPRETATION (streamed only).
            PhaseExecutionError: TRANSPORT or DECODING failure.
        """
        template = template_for(phase)
        if template.streaming:
            raise InvalidPhaseError(f"{template.phase.value} is streamed and cannot be executed single-shot")

        prompt = template.build_prompt(input_text, render_context(context), self.language)

        try:
            raw = await self.client.invoke(prompt, template.expected_shape, phase=template.phase.value)
        except TransportError as e:
            raise PhaseExecutionError(template.phase, e, ErrorCategory.TRANSPORT) from e

        try:
            return decode_response(template.response_model, raw)
        except DecodingError as e:
            raise PhaseExecutionError(template.phase, e, ErrorCategory.DECODING) from e


def decode_response(response_model, raw: str | None):
    """Strictly decode a raw answer into ``response_model``.

    Raises:
        DecodingError: Empty answer, invalid JSON, or wrong shape.
    """
    text = (raw or "").strip()
    if not text:
        raise DecodingError("Empty response", raw_response=raw)
    try:
        return response_model.model_validate_json(text)
    except ValidationError as e:
        raise DecodingError(
            f"Response does not match {response_model.__name__}: {e.error_count()} error(s)",
            raw_response=raw,
        ) from e
