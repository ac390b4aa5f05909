"""Tests for policy_analyzer.accumulator and the pipeline state models.

Tests the pure copy-and-set merge functions:
- Inputs are never mutated; old snapshots stay as they were
- Each phase accepts exactly one result
- Streamed records are appended, frozen, and restarted
"""

import pytest

from policy_analyzer.accumulator import (
    append_record,
    attach_result,
    complete_interpretation,
    empty_analysis,
    restart_interpretation,
)
from policy_analyzer.core import ErrorCategory, InvalidPhaseError, PhaseExecutionError, ResultAlreadyAttachedError
from policy_analyzer.pydantic_models import (
    PHASE_ORDER,
    AnalysisPhase,
    BackgroundResult,
    InterpretationRecord,
    OutlookResult,
    PipelineState,
    PipelineStatus,
)

from conftest import BACKGROUND_JSON


def _record(sentence: str) -> InterpretationRecord:
    return InterpretationRecord(sentence=sentence, whatItSays="w", whyItSaysIt="y")


@pytest.fixture
def background():
    return BackgroundResult.model_validate_json(BACKGROUND_JSON)


# =============================================================================
# attach_result tests
# =============================================================================


class TestAttachResult:
    """Tests for attach_result."""

    def test_attach_returns_new_value(self, background):
        before = empty_analysis()
        after = attach_result(before, AnalysisPhase.BACKGROUND, background)

        assert after.background == background
        assert before.background is None
        assert before.is_empty

    def test_second_attach_raises(self, background):
        analysis = attach_result(empty_analysis(), AnalysisPhase.BACKGROUND, background)
        with pytest.raises(ResultAlreadyAttachedError):
            attach_result(analysis, AnalysisPhase.BACKGROUND, background)

    def test_wrong_result_type_raises(self, background):
        with pytest.raises(InvalidPhaseError):
            attach_result(empty_analysis(), AnalysisPhase.OUTLOOK, background)

    def test_empty_result_is_distinct_from_missing(self):
        analysis = attach_result(empty_analysis(), AnalysisPhase.OUTLOOK, OutlookResult(predictions=()))
        assert analysis.has_result(AnalysisPhase.OUTLOOK)
        assert analysis.outlook.predictions == ()

    def test_completed_phases_follow_pipeline_order(self, background):
        analysis = attach_result(empty_analysis(), AnalysisPhase.OUTLOOK, OutlookResult(predictions=()))
        analysis = attach_result(analysis, AnalysisPhase.BACKGROUND, background)
        assert analysis.completed_phases == [AnalysisPhase.BACKGROUND, AnalysisPhase.OUTLOOK]


# =============================================================================
# Streaming record tests
# =============================================================================


class TestStreamedRecords:
    """Tests for append_record, complete_interpretation and restart_interpretation."""

    def test_append_keeps_order_and_old_values(self):
        empty = empty_analysis()
        one = append_record(empty, _record("A."))
        two = append_record(one, _record("B."))

        assert [r.sentence for r in two.interpretation_records] == ["A.", "B."]
        assert [r.sentence for r in one.interpretation_records] == ["A."]
        assert empty.interpretation_records == ()

    def test_complete_freezes_records(self):
        analysis = append_record(empty_analysis(), _record("A."))
        done = complete_interpretation(analysis)

        assert [r.sentence for r in done.interpretation.sentences] == ["A."]
        assert analysis.interpretation is None

    def test_complete_with_zero_records(self):
        done = complete_interpretation(empty_analysis())
        assert done.interpretation is not None
        assert done.interpretation.sentences == ()

    def test_append_after_complete_raises(self):
        done = complete_interpretation(empty_analysis())
        with pytest.raises(ResultAlreadyAttachedError):
            append_record(done, _record("Late."))

    def test_complete_twice_raises(self):
        done = complete_interpretation(empty_analysis())
        with pytest.raises(ResultAlreadyAttachedError):
            complete_interpretation(done)

    def test_restart_drops_partial_records(self):
        partial = append_record(append_record(empty_analysis(), _record("A.")), _record("B."))
        restarted = restart_interpretation(partial)

        assert restarted.interpretation_records == ()
        assert len(partial.interpretation_records) == 2

    def test_restart_after_complete_raises(self):
        with pytest.raises(ResultAlreadyAttachedError):
            restart_interpretation(complete_interpretation(empty_analysis()))

    def test_analysis_is_frozen(self):
        analysis = empty_analysis()
        with pytest.raises(AttributeError):
            analysis.background = None


# =============================================================================
# Serialization tests
# =============================================================================


class TestToContext:
    """Tests for CumulativeAnalysis.to_context."""

    def test_uses_wire_field_names(self):
        analysis = complete_interpretation(append_record(empty_analysis(), _record("A.")))
        context = analysis.to_context()
        assert context == {"interpretation": {"sentences": [{"sentence": "A.", "whatItSays": "w", "whyItSaysIt": "y"}]}}

    def test_partial_records_are_included(self):
        analysis = append_record(empty_analysis(), _record("A."))
        assert analysis.to_context()["interpretation"]["sentences"][0]["sentence"] == "A."

    def test_empty_analysis(self):
        assert empty_analysis().to_context() == {}


# =============================================================================
# PipelineState tests
# =============================================================================


class TestPipelineState:
    """Tests for PipelineState."""

    def test_default_is_idle(self):
        state = PipelineState()
        assert state.status == PipelineStatus.IDLE
        assert state.current_phase == AnalysisPhase.BACKGROUND
        assert not state.is_active

    def test_current_phase_after_success(self):
        state = PipelineState(phase_index=len(PHASE_ORDER), status=PipelineStatus.SUCCEEDED)
        assert state.current_phase is None

    def test_streaming_is_active(self):
        assert PipelineState(phase_index=1, status=PipelineStatus.STREAMING).is_active

    def test_to_dict_with_error(self):
        error = PhaseExecutionError(AnalysisPhase.VULNERABILITY, None, ErrorCategory.DECODING)
        state = PipelineState(phase_index=2, status=PipelineStatus.FAILED, last_error=error)

        data = state.to_dict()

        assert data["current_phase"] == "vulnerability"
        assert data["last_error"]["kind"] == "decoding"
        assert "Vulnerability Analysis" in data["last_error"]["message"]


class TestAnalysisPhase:
    """Tests for the AnalysisPhase enum."""

    def test_order(self):
        assert [p.value for p in PHASE_ORDER] == [
            "background", "interpretation", "vulnerability", "outlook", "synthesis",
        ]

    def test_position_matches_order(self):
        assert [p.position for p in PHASE_ORDER] == [0, 1, 2, 3, 4]

    def test_every_phase_has_a_label(self):
        assert all(p.label for p in AnalysisPhase)
