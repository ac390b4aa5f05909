"""Pipeline orchestrator: runs the five analysis phases in order.

High-level flow:
  Background → Interpretation (streamed) → Vulnerability → Outlook → Synthesis

The orchestrator is the only owner of the run's PipelineState and
CumulativeAnalysis. Both are immutable values; every change replaces them and
publishes a new AnalysisSnapshot to subscribers, so observers can compare
snapshots by identity and never see one change underneath them.

Scheduling is cooperative (asyncio, single thread). Every model call and every
stream fragment is a suspension point. A ``reset()`` bumps the run identity;
whatever an in-flight call returns after that is dropped at its next
suspension point instead of being applied.
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

from policy_analyzer.accumulator import (
    append_record,
    attach_result,
    complete_interpretation,
    empty_analysis,
    restart_interpretation,
)
from policy_analyzer.core import (
    CostTracker,
    ErrorCategory,
    LLMClient,
    ModelClient,
    PhaseExecutionError,
    PipelineErrors,
    PipelineLogger,
    error_record_for,
    get_logger,
    malformed_record_warning,
)
from policy_analyzer.core.config import DEFAULT_MODEL, FALLBACK_MODEL, PipelineConfig
from policy_analyzer.core.llm_router import build_router
from policy_analyzer.phases import (
    AnalysisConfig,
    AnalysisResources,
    InterpretationStreamRunner,
    PhaseExecutor,
    context_for,
    template_for,
)
from policy_analyzer.pydantic_models import (
    PHASE_ORDER,
    AnalysisPhase,
    AnalysisSnapshot,
    CumulativeAnalysis,
    InterpretationRecord,
    PipelineState,
    PipelineStatus,
)
from policy_analyzer.streaming import MalformedLine

T = TypeVar("T")

SnapshotCallback = Callable[[AnalysisSnapshot], None]


class Orchestrator:
    """Pipeline orchestrator: a state machine over the five phases.

    States::

        IDLE ─start─► RUNNING(background) ─► STREAMING(interpretation)
             ─► RUNNING(vulnerability) ─► RUNNING(outlook) ─► RUNNING(synthesis)
             ─► SUCCEEDED

        any RUNNING/STREAMING ─phase error─► FAILED ─retry─► RUNNING(failed phase)
        any state ─reset─► IDLE

    Usage:
        orchestrator = Orchestrator()
        orchestrator.subscribe(lambda snap: print(snap.state.status))
        snapshot = await orchestrator.start(policy_text)
        if snapshot.state.status is PipelineStatus.FAILED:
            snapshot = await orchestrator.retry()
    """

    def __init__(
        self,
        client: ModelClient | None = None,
        model: str | None = None,
        language: str | None = None,
        phase_timeout: float | None = PipelineConfig.PHASE_TIMEOUT_SECONDS,
        verbose: bool = False,
        log_dir: str | Path | None = None,
        logger: PipelineLogger | None = None,
        cost_tracker: CostTracker | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            client: Model client. Defaults to an LLMClient on the shared router.
            model: Model identifier for the default client. Defaults to DEFAULT_MODEL.
            language: Output language for every phase.
            phase_timeout: Seconds before a phase fails with TIMEOUT. None disables it.
            verbose: If True, print detailed logs.
            log_dir: Directory for log files.
            logger: Logger to use instead of the global pipeline logger.
            cost_tracker: Token usage tracker shared with the default client.
        """
        cost_tracker = cost_tracker or CostTracker()
        resolved_model = model or DEFAULT_MODEL
        if client is None:
            router = None
            if resolved_model not in (DEFAULT_MODEL, FALLBACK_MODEL):
                router = build_router(extra_models=(resolved_model,))
            client = LLMClient(model=resolved_model, cost_tracker=cost_tracker, router=router)

        self.resources = AnalysisResources(
            client=client,
            logger=logger or get_logger(verbose=verbose, log_dir=log_dir),
            cost_tracker=cost_tracker,
        )
        self.config = AnalysisConfig(
            model=resolved_model,
            language=language or PipelineConfig.OUTPUT_LANGUAGE,
            phase_timeout=phase_timeout,
            verbose=verbose,
        )
        self.logger = self.resources.logger

        self.executor = PhaseExecutor(client, language=self.config.language)
        self.streamer = InterpretationStreamRunner(client, language=self.config.language)

        self.errors = PipelineErrors()
        self._state = PipelineState()
        self._analysis: CumulativeAnalysis = empty_analysis()
        self._input_text = ""
        self._run_counter = 0
        self._attempts: dict[AnalysisPhase, int] = {}
        self._subscribers: list[SnapshotCallback] = []

    # -- Observation --

    @property
    def snapshot(self) -> AnalysisSnapshot:
        return AnalysisSnapshot(state=self._state, analysis=self._analysis)

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def analysis(self) -> CumulativeAnalysis:
        return self._analysis

    @property
    def input_text(self) -> str:
        return self._input_text

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Register a snapshot observer. Returns a function that unsubscribes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self) -> None:
        snapshot = self.snapshot
        for callback in list(self._subscribers):
            callback(snapshot)

    def _set_state(self, state: PipelineState) -> None:
        self._state = state
        self._publish()

    def _is_stale(self, run_id: int) -> bool:
        return run_id != self._state.run_id

    # -- Commands --

    async def start(self, text: str, source: str = "policy") -> AnalysisSnapshot:
        """Run the whole pipeline on ``text``.

        Whitespace-only text never starts a run. Starting while a previous run
        exists discards it first, exactly like ``reset()``.

        Args:
            text: The full policy text.
            source: Label for logs (e.g. the input file name).

        Returns:
            The snapshot after the run succeeded, failed, or was superseded.
        """
        if not text or not text.strip():
            self.logger.warning("Ignoring empty policy text; pipeline stays idle")
            return self.snapshot

        if self._state.status != PipelineStatus.IDLE or not self._analysis.is_empty:
            self.reset()

        self._run_counter += 1
        run_id = self._run_counter
        self._input_text = text
        self._attempts = {}
        self.errors = PipelineErrors()
        self._state = PipelineState(run_id=run_id)

        self.logger.start_run(source, run_id, characters=len(text))
        return await self._run_from(0, run_id)

    async def retry(self) -> AnalysisSnapshot:
        """Re-run the failed phase with the same text and upstream context.

        Phases that already succeeded are not re-run. After the failed phase
        succeeds the pipeline continues with the remaining phases. Outside the
        FAILED state this is a no-op.
        """
        state = self._state
        if state.status != PipelineStatus.FAILED or state.last_error is None:
            self.logger.warning(f"Retry ignored: pipeline is {state.status.value}, not failed")
            return self.snapshot

        phase = state.last_error.phase
        self.logger.retry_requested(phase, self._attempts.get(phase, 0) + 1)
        return await self._run_from(phase.position, state.run_id)

    def reset(self) -> AnalysisSnapshot:
        """Return to IDLE and discard everything. Always allowed.

        In-flight calls are not aborted; their results are dropped when they
        arrive because the run identity has changed.
        """
        self._run_counter += 1
        self._analysis = empty_analysis()
        self._input_text = ""
        self._attempts = {}
        self.errors = PipelineErrors()
        self.logger.run_reset(self._run_counter)
        self._set_state(PipelineState(run_id=self._run_counter))
        return self.snapshot

    # -- Phase sequencing --

    async def _run_from(self, index: int, run_id: int) -> AnalysisSnapshot:
        """Run phases ``PHASE_ORDER[index:]`` strictly one after another."""
        for phase in PHASE_ORDER[index:]:
            if not await self._run_phase(phase, run_id):
                return self.snapshot

        if self._is_stale(run_id):
            return self.snapshot

        self._set_state(replace(
            self._state,
            phase_index=len(PHASE_ORDER),
            status=PipelineStatus.SUCCEEDED,
            last_error=None,
        ))
        self.logger.end_run(PipelineStatus.SUCCEEDED, stats=self.stats())
        return self.snapshot

    async def _run_phase(self, phase: AnalysisPhase, run_id: int) -> bool:
        """Run one phase and attach its result. Returns False if the run must stop."""
        if self._is_stale(run_id):
            return False

        template = template_for(phase)
        attempt = self._attempts.get(phase, 0) + 1
        self._attempts[phase] = attempt

        self._set_state(PipelineState(
            phase_index=phase.position,
            status=PipelineStatus.STREAMING if template.streaming else PipelineStatus.RUNNING,
            run_id=run_id,
        ))
        self.logger.phase_started(phase, model=self.config.model, attempt=attempt, streaming=template.streaming)

        # A subscriber may have reset the pipeline on the snapshot just published.
        if self._is_stale(run_id):
            self.logger.stale_dropped(phase, "phase start")
            return False

        try:
            if template.streaming:
                await self._with_timeout(phase, self._stream_interpretation(run_id))
                result = None
            else:
                context = context_for(phase, self._analysis)
                result = await self._with_timeout(
                    phase, self.executor.execute(phase, self._input_text, context),
                )
        except PhaseExecutionError as e:
            if self._is_stale(run_id):
                self.logger.stale_dropped(phase, "failure")
                return False
            self._fail(e, attempt)
            return False

        if self._is_stale(run_id):
            self.logger.stale_dropped(phase, "result")
            return False

        if template.streaming:
            self._analysis = complete_interpretation(self._analysis)
        else:
            self._analysis = attach_result(self._analysis, phase, result)
        self._log_phase_result(phase)
        self._publish()
        return True

    async def _with_timeout(self, phase: AnalysisPhase, awaitable: Awaitable[T]) -> T:
        """Await a phase operation, racing it against the configured timeout."""
        timeout = self.config.phase_timeout
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as e:
            raise PhaseExecutionError(phase, e, ErrorCategory.TIMEOUT) from e

    async def _stream_interpretation(self, run_id: int) -> None:
        """Stream interpretation records into the cumulative analysis."""
        phase = AnalysisPhase.INTERPRETATION

        if self._analysis.interpretation_records:
            # Retry of a broken stream: the new stream starts from scratch.
            self._analysis = restart_interpretation(self._analysis)
            self._publish()

        def on_record(record: InterpretationRecord) -> bool:
            if self._is_stale(run_id):
                return False
            self._analysis = append_record(self._analysis, record)
            self.logger.record_received(record.sentence)
            self._publish()
            return not self._is_stale(run_id)

        def on_malformed(line: MalformedLine) -> None:
            if not self._is_stale(run_id):
                self.errors.add(malformed_record_warning(phase.value, line.raw, line.reason))

        stats = await self.streamer.run(self._input_text, on_record, on_malformed)
        if stats.stopped:
            self.logger.stale_dropped(phase, "remaining stream")
        elif stats.malformed:
            self.logger.warning(f"[{phase.label}] Skipped {stats.malformed} malformed line(s)")

    def _fail(self, error: PhaseExecutionError, attempt: int) -> None:
        self.errors.add(error_record_for(error, attempt=attempt, timeout_seconds=self.config.phase_timeout))
        self.logger.phase_failed(error, attempt)
        self._set_state(replace(self._state, status=PipelineStatus.FAILED, last_error=error))
        self.logger.end_run(PipelineStatus.FAILED, stats=self.stats())

    def _log_phase_result(self, phase: AnalysisPhase) -> None:
        a = self._analysis
        if phase == AnalysisPhase.BACKGROUND:
            self.logger.phase_completed(phase, "background summarized", terms=len(a.background.glossary))
        elif phase == AnalysisPhase.INTERPRETATION:
            self.logger.phase_completed(phase, "stream complete", sentences=len(a.interpretation.sentences))
        elif phase == AnalysisPhase.VULNERABILITY:
            self.logger.phase_completed(phase, "vulnerabilities found", count=len(a.vulnerabilities.vulnerabilities))
        elif phase == AnalysisPhase.OUTLOOK:
            self.logger.phase_completed(phase, "outlook predicted", predictions=len(a.outlook.predictions))
        else:
            self.logger.phase_completed(phase, a.synthesis.title, sections=len(a.synthesis.sections))

    def stats(self) -> dict:
        """Get run statistics."""
        a = self._analysis
        return {
            "status": self._state.status.value,
            "completed_phases": [p.value for p in a.completed_phases],
            "interpretations": len(a.interpretation_records),
            "attempts": {p.value: n for p, n in self._attempts.items()},
            "api_calls": self.resources.cost_tracker.call_count,
            "errors": self.errors.summary(),
        }
