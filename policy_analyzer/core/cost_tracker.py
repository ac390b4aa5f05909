"""Token usage and cost accounting per analysis phase.

Every model call the pipeline makes belongs to one ``AnalysisPhase``. Four
phases make single-shot structured calls; the interpretation phase makes one
streamed call whose usage only arrives with the final chunk. The tracker keeps
both kinds apart so a run report can show what the stream cost on its own.

Prices come from litellm's model database, with a small fallback table for
models it does not know.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from litellm import completion_cost

from policy_analyzer.pydantic_models.phase_results import PHASE_ORDER, AnalysisPhase

logger = logging.getLogger(__name__)

# USD per 1M tokens as (prompt, completion).
_FALLBACK_PRICING: dict[str, tuple[float, float]] = {
    "gemini-2.5-flash": (0.30, 2.50),
    "gemini-2.5-pro": (1.25, 10.00),
}

_ROUTING_PREFIXES = ("openrouter/", "gemini/", "google/")

UNATTRIBUTED = "unattributed"

_unpriced_models: set[str] = set()


def pricing_name(model: str) -> str:
    """Model name as litellm's pricing database knows it.

    ``openrouter/google/gemini-2.5-pro`` and ``gemini/gemini-2.5-pro`` both
    price as ``gemini-2.5-pro``.
    """
    name = model
    stripped = True
    while stripped:
        stripped = False
        for prefix in _ROUTING_PREFIXES:
            if name.startswith(prefix):
                name = name[len(prefix):]
                stripped = True
    return name


def _fallback_price(name: str, prompt_tokens: int, completion_tokens: int) -> float | None:
    if name not in _FALLBACK_PRICING:
        return None
    prompt_rate, completion_rate = _FALLBACK_PRICING[name]
    return (prompt_tokens * prompt_rate + completion_tokens * completion_rate) / 1_000_000


def price_tokens(model: str, prompt_tokens: int, completion_tokens: int) -> float:
    """USD cost of one call. Unknown models cost 0 and are warned about once."""
    name = pricing_name(model)
    try:
        return completion_cost(model=name, prompt_tokens=prompt_tokens, completion_tokens=completion_tokens)
    except Exception:
        fallback = _fallback_price(name, prompt_tokens, completion_tokens)

    if fallback is not None:
        return fallback
    if model not in _unpriced_models:
        _unpriced_models.add(model)
        logger.warning(f"No pricing for model '{model}'; its calls are counted at $0")
    return 0.0


def _as_phase(phase: AnalysisPhase | str | None) -> AnalysisPhase | None:
    if not phase:
        return None
    try:
        return AnalysisPhase(phase)
    except ValueError:
        return None


@dataclass(frozen=True)
class PhaseUsage:
    """Token usage of one model call made on behalf of a phase."""

    model: str
    phase: AnalysisPhase | None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    streamed: bool = False

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @property
    def cost(self) -> float:
        return price_tokens(self.model, self.prompt_tokens, self.completion_tokens)


@dataclass
class PhaseTotals:
    calls: int = 0
    streamed_calls: int = 0
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost: float = 0.0

    def add(self, usage: PhaseUsage) -> None:
        self.calls += 1
        self.streamed_calls += int(usage.streamed)
        self.prompt_tokens += usage.prompt_tokens
        self.completion_tokens += usage.completion_tokens
        self.cost += usage.cost

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "calls": self.calls,
            "streamed_calls": self.streamed_calls,
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "cost": round(self.cost, 6),
        }


@dataclass
class CostTracker:
    """Usage of every model call made during a pipeline's lifetime.

    Retries add calls to the phase they retry, so a phase that failed once
    and then succeeded shows two calls.
    """

    calls: list[PhaseUsage] = field(default_factory=list)

    def record(
        self,
        model: str,
        usage: Any,
        phase: AnalysisPhase | str | None = None,
        streamed: bool = False,
    ) -> PhaseUsage | None:
        """Record the ``usage`` object of a litellm response or final stream chunk.

        Responses without usage are not counted. ``phase`` may be the enum or
        its tag; unknown tags are kept as unattributed.
        """
        if usage is None:
            return None
        entry = PhaseUsage(
            model=model,
            phase=_as_phase(phase),
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            streamed=streamed,
        )
        self.calls.append(entry)
        return entry

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def streamed_call_count(self) -> int:
        return sum(1 for c in self.calls if c.streamed)

    def totals(self) -> PhaseTotals:
        overall = PhaseTotals()
        for call in self.calls:
            overall.add(call)
        return overall

    def for_phase(self, phase: AnalysisPhase) -> PhaseTotals:
        totals = PhaseTotals()
        for call in self.calls:
            if call.phase == phase:
                totals.add(call)
        return totals

    def by_phase(self) -> dict[str, dict[str, Any]]:
        """Per-phase totals in pipeline order, keyed by phase tag.

        Phases without calls are left out; calls with no phase come last.
        """
        breakdown: dict[str, dict[str, Any]] = {}
        for phase in PHASE_ORDER:
            totals = self.for_phase(phase)
            if totals.calls:
                breakdown[phase.value] = totals.to_dict()

        stray = PhaseTotals()
        for call in self.calls:
            if call.phase is None:
                stray.add(call)
        if stray.calls:
            breakdown[UNATTRIBUTED] = stray.to_dict()
        return breakdown

    def summary(self) -> str:
        """Human-readable usage report, one line per phase."""
        overall = self.totals()
        lines = [
            "=" * 50,
            "COST SUMMARY",
            "=" * 50,
            f"Model calls: {overall.calls} ({overall.streamed_calls} streamed)",
            f"Tokens: {overall.total_tokens:,} "
            f"(prompt {overall.prompt_tokens:,}, completion {overall.completion_tokens:,})",
            f"Cost: ${overall.cost:.4f}",
            "",
            "By phase:",
        ]
        for tag, stats in self.by_phase().items():
            label = AnalysisPhase(tag).label if tag != UNATTRIBUTED else UNATTRIBUTED
            kind = " streamed" if stats["streamed_calls"] else ""
            lines.append(
                f"  {label}: {stats['calls']}{kind} call(s), "
                f"{stats['prompt_tokens'] + stats['completion_tokens']:,} tokens, ${stats['cost']:.4f}"
            )
        lines.append("=" * 50)
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        overall = self.totals()
        return {
            **overall.to_dict(),
            "total_tokens": overall.total_tokens,
            "by_phase": self.by_phase(),
        }
