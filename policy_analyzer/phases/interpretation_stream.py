"""Streaming interpretation phase.

The one phase that never goes through ``PhaseExecutor.execute``. It opens a
stream for the full policy text, feeds every fragment to a fresh
``RecordParser`` and hands each decoded record to a callback the moment its
line is complete. The loop suspends on every fragment; between fragments all
work is synchronous, so the parser buffer is only ever touched by this loop.

Malformed lines are logged and reported through ``on_malformed``; they never
fail the phase. An end-of-stream with zero records is a valid, empty result.
"""

import logging
from dataclasses import dataclass
from typing import Callable

from policy_analyzer.core import (
    ErrorCategory,
    ModelClient,
    PhaseExecutionError,
    TransportError,
)
from policy_analyzer.core.config import PipelineConfig
from policy_analyzer.phases.templates import template_for
from policy_analyzer.pydantic_models import AnalysisPhase, InterpretationRecord
from policy_analyzer.streaming import MalformedLine, ParsedRecord, RecordParser

logger = logging.getLogger(__name__)

RecordCallback = Callable[[InterpretationRecord], "bool | None"]
MalformedCallback = Callable[[MalformedLine], None]


@dataclass
class StreamStats:
    """What one streaming attempt produced."""

    records: int = 0
    malformed: int = 0
    fragments: int = 0
    stopped: bool = False  # True when the consumer asked to stop early


class InterpretationStreamRunner:
    """Drives one interpretation stream from request to end-of-stream."""

    phase = AnalysisPhase.INTERPRETATION

    def __init__(self, client: ModelClient, language: str = PipelineConfig.OUTPUT_LANGUAGE):
        self.client = client
        self.language = language

    def build_prompt(self, input_text: str) -> str:
        return template_for(self.phase).build_prompt(input_text, None, self.language)

    async def run(
        self,
        input_text: str,
        on_record: RecordCallback,
        on_malformed: MalformedCallback | None = None,
    ) -> StreamStats:
        """Stream interpretations for ``input_text``.

        Args:
            input_text: The full policy text.
            on_record: Called once per decoded record, in stream order. Return
                ``False`` to stop consuming (the stream is closed).
            on_malformed: Called once per line that failed to decode.

        Returns:
            StreamStats for the attempt.

        Raises:
            PhaseExecutionError: TRANSPORT failure opening or reading the stream.
        """
        stats = StreamStats()
        parser = RecordParser(InterpretationRecord)

        try:
            stream = self.client.open_stream(self.build_prompt(input_text), phase=self.phase.value)
        except TransportError as e:
            raise PhaseExecutionError(self.phase, e, ErrorCategory.TRANSPORT) from e

        try:
            async for fragment in stream:
                stats.fragments += 1
                if not self._dispatch(parser.feed(fragment), stats, on_record, on_malformed):
                    stats.stopped = True
                    return stats
            self._dispatch(parser.flush(), stats, on_record, on_malformed)
        except TransportError as e:
            raise PhaseExecutionError(self.phase, e, ErrorCategory.TRANSPORT) from e
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        logger.debug(
            f"Interpretation stream finished: {stats.records} records, "
            f"{stats.malformed} malformed, {stats.fragments} fragments"
        )
        return stats

    @staticmethod
    def _dispatch(outcomes, stats: StreamStats, on_record: RecordCallback, on_malformed: MalformedCallback | None) -> bool:
        """Deliver outcomes in order. Returns False once the consumer says stop."""
        for outcome in outcomes:
            if isinstance(outcome, ParsedRecord):
                stats.records += 1
                if on_record(outcome.value) is False:
                    return False
            elif isinstance(outcome, MalformedLine):
                stats.malformed += 1
                if on_malformed is not None:
                    on_malformed(outcome)
        return True
