"""LLM client for the analysis pipeline.

Implements the two calls the pipeline needs from a model:
- ``invoke``: one structured request, returns the raw response text
- ``open_stream``: one free-text request, yields text fragments as they arrive

Everything that goes wrong while talking to the provider (network, auth,
rate limits, exhausted router retries) surfaces as ``TransportError``. The
client does not parse responses; decoding belongs to the phase executor.

Retry and fallback are handled by the litellm Router (core/llm_router.py).
"""

import logging
from dataclasses import dataclass
from typing import Any, AsyncIterator, Protocol

from policy_analyzer.core.config import DEFAULT_MODEL, LLMConfig
from policy_analyzer.core.cost_tracker import CostTracker
from policy_analyzer.core.errors import TransportError
from policy_analyzer.core.llm_router import router as default_router

logger = logging.getLogger(__name__)

# Suppress LiteLLM debug noise (done once at module load)
logging.getLogger("litellm").setLevel(logging.ERROR)
logging.getLogger("httpx").setLevel(logging.ERROR)


class ModelClient(Protocol):
    """What the pipeline needs from a model provider."""

    async def invoke(self, prompt: str, expected_shape: dict[str, Any], phase: str = "") -> str:
        ...

    def open_stream(self, prompt: str, phase: str = "") -> AsyncIterator[str]:
        ...


@dataclass
class LLMResponse:
    """Raw response from a single-shot call.

    Attributes:
        raw_content: Raw string content from the LLM.
        model: Model identifier used for the call.
    """

    raw_content: str
    model: str


class LLMClient:
    """ModelClient backed by the litellm Router.

    Usage:
        client = LLMClient(cost_tracker=tracker)

        raw = await client.invoke(prompt, BackgroundResult.model_json_schema(), phase="background")

        async for fragment in client.open_stream(prompt, phase="interpretation"):
            parser.feed(fragment)
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        cost_tracker: CostTracker | None = None,
        router: Any = None,
        temperature: float | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            model: LLM model identifier (e.g., "gemini/gemini-2.5-flash").
            cost_tracker: Optional tracker for recording API token usage.
            router: litellm Router to use. Defaults to the module-level router.
            temperature: Sampling temperature. Defaults to LLMConfig.TEMPERATURE.
        """
        self.model = model
        self.cost_tracker = cost_tracker
        self.router = router or default_router
        self.temperature = temperature if temperature is not None else LLMConfig.TEMPERATURE

    async def complete(self, prompt: str, expected_shape: dict[str, Any], phase: str = "") -> LLMResponse:
        """Make a structured completion call.

        Args:
            prompt: Full request text.
            expected_shape: JSON schema the answer must follow.
            phase: Phase name for cost tracking.

        Returns:
            LLMResponse with the raw (undecoded) answer.

        Raises:
            TransportError: If the provider could not be reached or answered
                without any choices.
        """
        try:
            response = await self.router.acompletion(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                response_format=_response_format(expected_shape),
                temperature=self.temperature,
            )
        except Exception as e:
            logger.error(f"LLM call failed for phase '{phase}': {type(e).__name__}: {e}")
            raise TransportError(f"{type(e).__name__}: {e}") from e

        if self.cost_tracker:
            self.cost_tracker.record(self.model, getattr(response, "usage", None), phase=phase)

        if not response.choices:
            logger.error(f"LLM call for phase '{phase}' returned no choices")
            raise TransportError("Provider returned a response with no choices")
        raw_content = response.choices[0].message.content or ""
        return LLMResponse(raw_content=raw_content, model=self.model)

    async def invoke(self, prompt: str, expected_shape: dict[str, Any], phase: str = "") -> str:
        """ModelClient entry point: structured call returning raw text."""
        response = await self.complete(prompt, expected_shape, phase=phase)
        return response.raw_content

    async def open_stream(self, prompt: str, phase: str = "") -> AsyncIterator[str]:
        """Stream a free-text answer fragment by fragment.

        Fragments are yielded exactly as delivered; their boundaries carry no
        meaning. Usage from the final chunk is recorded when the provider
        reports it.

        Raises:
            TransportError: If the stream cannot be opened or breaks mid-way.
        """
        try:
            stream = await self.router.acompletion(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self.temperature,
                stream=True,
                stream_options={"include_usage": True},
            )
        except Exception as e:
            logger.error(f"Opening stream failed for phase '{phase}': {type(e).__name__}: {e}")
            raise TransportError(f"{type(e).__name__}: {e}") from e

        try:
            async for chunk in stream:
                usage = getattr(chunk, "usage", None)
                if usage and self.cost_tracker:
                    self.cost_tracker.record(self.model, usage, phase=phase, streamed=True)
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except Exception as e:
            logger.error(f"Stream broke for phase '{phase}': {type(e).__name__}: {e}")
            raise TransportError(f"{type(e).__name__}: {e}") from e


def _response_format(expected_shape: dict[str, Any]) -> dict[str, Any]:
    """Wrap a JSON schema into an OpenAI-style response_format."""
    return {
        "type": LLMConfig.RESPONSE_FORMAT_TYPE,
        "json_schema": {
            "name": expected_shape.get("title", "response"),
            "schema": expected_shape,
        },
    }
