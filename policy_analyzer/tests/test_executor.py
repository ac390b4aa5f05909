"""Tests for policy_analyzer.phases.executor and templates.

Tests single-shot phase execution:
- Successful decode into the phase result model
- TRANSPORT vs DECODING failure split
- Interpretation is rejected (streamed only)
- Context selection per phase
"""

import json

import pytest

from policy_analyzer.accumulator import attach_result, empty_analysis
from policy_analyzer.core import (
    DecodingError,
    ErrorCategory,
    InvalidPhaseError,
    PhaseExecutionError,
    TransportError,
)
from policy_analyzer.phases import PhaseExecutor, context_for, decode_response, render_context, template_for
from policy_analyzer.pydantic_models import (
    AnalysisPhase,
    BackgroundResult,
    InterpretationRecord,
    InterpretationResult,
    SynthesisReport,
    VulnerabilityResult,
)

from conftest import (
    BACKGROUND_JSON,
    POLICY_TEXT,
    SYNTHESIS_JSON,
    VULNERABILITY_JSON,
    ScriptedModelClient,
)


# =============================================================================
# decode_response tests
# =============================================================================


class TestDecodeResponse:
    """Strict decoding of raw answers."""

    def test_valid_answer(self):
        result = decode_response(BackgroundResult, BACKGROUND_JSON)
        assert isinstance(result, BackgroundResult)
        assert result.glossary[0].term == "Grid connection"

    def test_surrounding_whitespace_is_ignored(self):
        assert decode_response(BackgroundResult, f"\n  {BACKGROUND_JSON}  \n").summary

    def test_empty_answer(self):
        with pytest.raises(DecodingError, match="Empty response"):
            decode_response(BackgroundResult, "   ")

    def test_none_answer(self):
        with pytest.raises(DecodingError):
            decode_response(BackgroundResult, None)

    def test_invalid_json_keeps_raw_response(self):
        with pytest.raises(DecodingError) as exc_info:
            decode_response(BackgroundResult, "Sure! Here is the analysis:")
        assert exc_info.value.raw_response == "Sure! Here is the analysis:"

    def test_wrong_shape(self):
        with pytest.raises(DecodingError, match="BackgroundResult"):
            decode_response(BackgroundResult, json.dumps({"summary": "no glossary"}))

    def test_unknown_fields_are_ignored(self):
        raw = json.dumps({**json.loads(BACKGROUND_JSON), "confidence": 0.9})
        assert decode_response(BackgroundResult, raw).summary

    def test_decoded_result_is_frozen(self):
        result = decode_response(BackgroundResult, BACKGROUND_JSON)
        with pytest.raises(Exception):
            result.summary = "changed"


# =============================================================================
# PhaseExecutor tests
# =============================================================================


class TestPhaseExecutor:
    """Tests for PhaseExecutor.execute."""

    @pytest.mark.asyncio
    async def test_background_success(self):
        client = ScriptedModelClient(responses={"background": [BACKGROUND_JSON]})
        executor = PhaseExecutor(client, language="English")

        result = await executor.execute(AnalysisPhase.BACKGROUND, POLICY_TEXT)

        assert isinstance(result, BackgroundResult)
        assert client.call_count("background") == 1

    @pytest.mark.asyncio
    async def test_prompt_contains_text_language_and_context(self):
        client = ScriptedModelClient(responses={"vulnerability": [VULNERABILITY_JSON]})
        executor = PhaseExecutor(client, language="English")
        context = {"sentences": [{"sentence": "S.", "whatItSays": "w", "whyItSaysIt": "y"}]}

        await executor.execute(AnalysisPhase.VULNERABILITY, POLICY_TEXT, context)

        [prompt] = client.prompts_for("vulnerability")
        assert POLICY_TEXT in prompt
        assert "English" in prompt
        assert '"whatItSays": "w"' in prompt

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        client = ScriptedModelClient(responses={"background": [TransportError("401 Unauthorized")]})
        executor = PhaseExecutor(client)

        with pytest.raises(PhaseExecutionError) as exc_info:
            await executor.execute(AnalysisPhase.BACKGROUND, POLICY_TEXT)

        error = exc_info.value
        assert error.kind == ErrorCategory.TRANSPORT
        assert error.phase == AnalysisPhase.BACKGROUND
        assert isinstance(error.cause, TransportError)
        assert "API key" in error.user_message

    @pytest.mark.asyncio
    async def test_decoding_failure(self):
        client = ScriptedModelClient(responses={"synthesis": ['{"title": "only a title"}']})
        executor = PhaseExecutor(client)

        with pytest.raises(PhaseExecutionError) as exc_info:
            await executor.execute(AnalysisPhase.SYNTHESIS, POLICY_TEXT, {})

        error = exc_info.value
        assert error.kind == ErrorCategory.DECODING
        assert isinstance(error.cause, DecodingError)
        assert "malformed" in error.user_message

    @pytest.mark.asyncio
    async def test_transport_and_decoding_messages_differ(self):
        transport = PhaseExecutionError(AnalysisPhase.OUTLOOK, None, ErrorCategory.TRANSPORT)
        decoding = PhaseExecutionError(AnalysisPhase.OUTLOOK, None, ErrorCategory.DECODING)
        assert transport.user_message != decoding.user_message

    @pytest.mark.asyncio
    async def test_interpretation_is_rejected(self):
        client = ScriptedModelClient()
        executor = PhaseExecutor(client)

        with pytest.raises(InvalidPhaseError):
            await executor.execute(AnalysisPhase.INTERPRETATION, POLICY_TEXT)
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_unknown_phase_is_rejected(self):
        executor = PhaseExecutor(ScriptedModelClient())
        with pytest.raises(InvalidPhaseError):
            await executor.execute("summary", POLICY_TEXT)

    @pytest.mark.asyncio
    async def test_no_retry_inside_executor(self):
        client = ScriptedModelClient(responses={"background": [TransportError("down"), BACKGROUND_JSON]})
        executor = PhaseExecutor(client)

        with pytest.raises(PhaseExecutionError):
            await executor.execute(AnalysisPhase.BACKGROUND, POLICY_TEXT)
        assert client.call_count("background") == 1


# =============================================================================
# Template and context tests
# =============================================================================


class TestTemplates:
    """Tests for phase templates and context selection."""

    def test_every_phase_has_a_template(self):
        for phase in AnalysisPhase:
            assert template_for(phase).phase == phase

    def test_only_interpretation_streams(self):
        streaming = [phase for phase in AnalysisPhase if template_for(phase).streaming]
        assert streaming == [AnalysisPhase.INTERPRETATION]

    def test_expected_shape_is_json_schema(self):
        shape = template_for(AnalysisPhase.SYNTHESIS).expected_shape
        assert shape["title"] == "SynthesisReport"
        assert "sections" in shape["properties"]

    def test_template_for_accepts_phase_value(self):
        assert template_for("outlook").phase == AnalysisPhase.OUTLOOK

    def test_background_has_no_context(self):
        assert context_for(AnalysisPhase.BACKGROUND, empty_analysis()) is None

    def test_vulnerability_sees_interpretation(self):
        records = (InterpretationRecord(sentence="S.", whatItSays="w", whyItSaysIt="y"),)
        analysis = attach_result(empty_analysis(), AnalysisPhase.INTERPRETATION, InterpretationResult(sentences=records))

        context = context_for(AnalysisPhase.VULNERABILITY, analysis)

        assert context == {"sentences": [{"sentence": "S.", "whatItSays": "w", "whyItSaysIt": "y"}]}

    def test_outlook_sees_vulnerabilities(self):
        result = VulnerabilityResult.model_validate_json(VULNERABILITY_JSON)
        analysis = attach_result(empty_analysis(), AnalysisPhase.VULNERABILITY, result)

        context = context_for(AnalysisPhase.OUTLOOK, analysis)

        assert context["vulnerabilities"][0]["category"] == "Eligibility"

    def test_missing_dependency_raises(self):
        with pytest.raises(InvalidPhaseError):
            context_for(AnalysisPhase.OUTLOOK, empty_analysis())

    def test_synthesis_sees_everything(self):
        analysis = attach_result(
            empty_analysis(), AnalysisPhase.BACKGROUND, BackgroundResult.model_validate_json(BACKGROUND_JSON),
        )
        context = context_for(AnalysisPhase.SYNTHESIS, analysis)
        assert set(context) == {"background"}

    def test_render_context_keeps_unicode(self):
        assert render_context({"term": "电价"}) == '{\n  "term": "电价"\n}'
        assert render_context(None) is None

    def test_synthesis_decodes_optional_example(self):
        report = SynthesisReport.model_validate_json(SYNTHESIS_JSON)
        assert report.sections[0].example
        assert report.sections[1].example is None
