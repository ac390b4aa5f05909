"""Pytest configuration and shared fixtures.

Provides reusable test fixtures for:
- A scripted model client (single-shot answers and streamed fragments)
- Sample phase answers in wire format
- A mock pipeline logger
"""

import asyncio
import json

import pytest
from unittest.mock import MagicMock

from policy_analyzer.core import CostTracker, PipelineLogger, TransportError


# =============================================================================
# Sample phase answers
# =============================================================================


POLICY_TEXT = (
    "Households installing rooftop solar receive a subsidy of 30% of the equipment cost. "
    "The subsidy is paid within 90 days of grid connection. "
    "Projects approved before 1 January are not eligible."
)

BACKGROUND_JSON = json.dumps({
    "summary": "A residential solar subsidy issued by the national energy agency.",
    "glossary": [
        {"term": "Grid connection", "definition": "Approval to feed power into the public grid."},
        {"term": "Equipment cost", "definition": "Invoiced price of panels and inverters."},
    ],
})

VULNERABILITY_JSON = json.dumps({
    "vulnerabilities": [
        {
            "category": "Eligibility",
            "vulnerability": "Equipment cost is self-reported.",
            "example": "An installer inflates invoices to raise the subsidy.",
        },
    ],
})

OUTLOOK_JSON = json.dumps({
    "predictions": [
        {
            "vulnerability": "Equipment cost is self-reported.",
            "prediction": "A reference price list will cap eligible costs.",
        },
    ],
})

SYNTHESIS_JSON = json.dumps({
    "title": "Solar Subsidy Review",
    "introduction": "The subsidy lowers the entry cost of rooftop solar.",
    "sections": [
        {"heading": "Design", "content": "A flat percentage of cost.", "example": "30% of 10,000 is 3,000."},
        {"heading": "Risks", "content": "Invoices can be inflated."},
    ],
    "conclusion": "Expect tighter cost controls.",
})


def record_line(sentence: str, what: str = "says", why: str = "because") -> str:
    """One newline-delimited interpretation record."""
    return json.dumps({"sentence": sentence, "whatItSays": what, "whyItSaysIt": why}) + "\n"


INTERPRETATION_FRAGMENTS = [
    record_line("Households installing rooftop solar receive a subsidy.")[:40],
    record_line("Households installing rooftop solar receive a subsidy.")[40:]
    + record_line("The subsidy is paid within 90 days."),
]


# =============================================================================
# Scripted model client
# =============================================================================


class ScriptedModelClient:
    """ModelClient that replays scripted answers and records every call.

    ``responses`` maps a phase value to a list of answers, consumed in order;
    the last answer repeats once the list is exhausted. An answer that is an
    exception instance is raised instead of returned.

    ``streams`` is a list of fragment lists, one per stream opening, with the
    same repeat rule. A fragment that is an exception instance is raised
    mid-stream.

    ``gates`` maps a phase value to an ``asyncio.Event`` the call waits on
    before answering, so tests can act while a call is in flight.
    """

    def __init__(self, responses: dict | None = None, streams: list | None = None):
        self.responses = {phase: list(answers) for phase, answers in (responses or {}).items()}
        self.streams = [list(fragments) for fragments in (streams or [[]])]
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[tuple[str, str]] = []
        self.closed_streams = 0

    def call_count(self, phase: str) -> int:
        return sum(1 for called, _ in self.calls if called == phase)

    def prompts_for(self, phase: str) -> list[str]:
        return [prompt for called, prompt in self.calls if called == phase]

    @staticmethod
    def _next(script: list):
        return script.pop(0) if len(script) > 1 else script[0]

    async def invoke(self, prompt: str, expected_shape: dict, phase: str = "") -> str:
        self.calls.append((phase, prompt))
        gate = self.gates.get(phase)
        if gate is not None:
            await gate.wait()
        await asyncio.sleep(0)
        answer = self._next(self.responses[phase])
        if isinstance(answer, BaseException):
            raise answer
        return answer

    async def open_stream(self, prompt: str, phase: str = ""):
        self.calls.append((phase, prompt))
        fragments = self._next(self.streams)
        try:
            gate = self.gates.get(phase)
            if gate is not None:
                await gate.wait()
            for fragment in fragments:
                await asyncio.sleep(0)
                if isinstance(fragment, BaseException):
                    raise fragment
                yield fragment
        finally:
            self.closed_streams += 1


def default_responses() -> dict:
    return {
        "background": [BACKGROUND_JSON],
        "vulnerability": [VULNERABILITY_JSON],
        "outlook": [OUTLOOK_JSON],
        "synthesis": [SYNTHESIS_JSON],
    }


@pytest.fixture
def scripted_client():
    """Client whose every phase succeeds."""
    return ScriptedModelClient(responses=default_responses(), streams=[INTERPRETATION_FRAGMENTS])


@pytest.fixture
def failing_background_client():
    """Client whose first background call fails at the transport level."""
    responses = default_responses()
    responses["background"] = [TransportError("connection reset"), BACKGROUND_JSON]
    return ScriptedModelClient(responses=responses, streams=[INTERPRETATION_FRAGMENTS])


# =============================================================================
# Logging and cost tracking
# =============================================================================


@pytest.fixture
def mock_logger():
    """Pipeline logger that records calls without printing."""
    return MagicMock(spec=PipelineLogger)


@pytest.fixture
def cost_tracker():
    return CostTracker()


@pytest.fixture
def make_orchestrator(mock_logger, cost_tracker):
    """Factory for orchestrators wired to a given client."""
    from policy_analyzer.orchestrator import Orchestrator

    def _make(client, phase_timeout=None):
        return Orchestrator(
            client=client,
            language="English",
            phase_timeout=phase_timeout,
            logger=mock_logger,
            cost_tracker=cost_tracker,
        )

    return _make
