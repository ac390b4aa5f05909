"""Centralized configuration for the policy analysis pipeline.

All magic numbers, thresholds, and configuration constants are documented here.
Each constant includes:
- What it controls
- Why this value was chosen
- What changing it affects
"""

import os
from typing import Final

from dotenv import load_dotenv

# .env values must be visible to the environment reads below.
load_dotenv()


# =============================================================================
# LLM Provider Configuration
# =============================================================================
#
# To switch providers, set the LLM_PROVIDER environment variable:
#   - "gemini" (default): Google AI Studio, key in GEMINI_API_KEY
#   - "openrouter": OpenRouter API gateway, key in OPENROUTER_API_KEY
#
# =============================================================================

LLM_PROVIDER: Final[str] = os.environ.get("LLM_PROVIDER", "gemini")
"""LLM provider to use. Set via LLM_PROVIDER env var.

Supported values:
- "gemini": Google Gemini API (default)
- "openrouter": OpenRouter API gateway
"""

API_KEY_ENV_VARS: Final[dict[str, str]] = {
    "gemini": "GEMINI_API_KEY",
    "openrouter": "OPENROUTER_API_KEY",
}

API_KEY_ENV_VAR: Final[str] = API_KEY_ENV_VARS.get(LLM_PROVIDER, "GEMINI_API_KEY")
"""Environment variable name for the LLM API key (provider-dependent)."""


def _get_model_name(base_model: str) -> str:
    """Convert a base model name to provider-specific format.

    Args:
        base_model: Base model name (e.g., "gemini-2.5-flash")

    Returns:
        Provider-specific model identifier.
    """
    if LLM_PROVIDER == "openrouter":
        return f"openrouter/google/{base_model}"
    return f"gemini/{base_model}"


DEFAULT_MODEL: Final[str] = _get_model_name(os.environ.get("ANALYSIS_MODEL", "gemini-2.5-flash"))
"""Model used for every phase unless overridden with --model.

A flash-tier model is fast enough for the streaming interpretation phase to
feel live and cheap enough to re-run a failed phase without hesitation.
"""

FALLBACK_MODEL: Final[str] = _get_model_name("gemini-2.5-pro")
"""Model the router falls back to once retries on DEFAULT_MODEL are exhausted."""


# LLM Call Configuration

class LLMConfig:
    """Default parameters for LLM API calls."""

    TEMPERATURE: Final[float] = 0.0
    """Sampling temperature for all analysis calls.

    0.0 keeps phase outputs reproducible, which matters when a failed phase
    is retried against context produced by an earlier attempt.
    """

    RESPONSE_FORMAT_TYPE: Final[str] = "json_schema"
    """Structured output mode for single-shot phases.

    The expected shape of each phase is sent as a JSON schema so the provider
    constrains generation; decoding is still validated on our side.
    """


class RouterConfig:
    """Retry, fallback and cooldown settings for the litellm Router.

    These retries live in the transport layer: a phase call only fails once the
    router has given up. Phase-level retry is a separate, user-driven action
    handled by the orchestrator.
    """

    NUM_RETRIES: Final[int] = 2
    """Transport retries per call before falling back."""

    RETRY_AFTER: Final[int] = 4
    """Minimum seconds to wait before a transport retry."""

    COOLDOWN_TIME: Final[int] = 60
    """Seconds a failing deployment is taken out of rotation."""

    ALLOWED_FAILS: Final[int] = 2
    """Failures per minute before a deployment is cooled down."""


# Streaming Configuration

class StreamConfig:
    """Settings for the newline-delimited record stream.

    The interpretation phase asks the model for one JSON object per line.
    Fragments arrive with arbitrary boundaries, so the parser buffers until
    it sees LINE_DELIMITER.
    """

    LINE_DELIMITER: Final[str] = "\n"
    """Record delimiter in the streamed text."""

    FENCE_MARKER: Final[str] = "```"
    """Markdown code fence models sometimes wrap JSON lines in.

    A leading fence may carry a language tag (```json); both the leading and
    the trailing marker are stripped before decoding.
    """

    MALFORMED_PREVIEW_CHARS: Final[int] = 200
    """Max characters of a malformed line kept in logs and error context."""


# Pipeline Configuration

class PipelineConfig:
    """Settings for the phase orchestrator."""

    OUTPUT_LANGUAGE: Final[str] = os.environ.get("ANALYSIS_LANGUAGE", "Simplified Chinese")
    """Language every phase must answer in.

    The pipeline was built for Chinese government policy documents, so the
    default asks for Simplified Chinese. Override with ANALYSIS_LANGUAGE.
    """

    PHASE_TIMEOUT_SECONDS: Final[float | None] = None
    """Per-phase timeout. None disables it.

    When set, a phase that has not finished in time fails with a TIMEOUT
    error and can be retried like any other failed phase. For the streaming
    phase the limit covers the whole stream, not individual fragments.
    """

    CONTEXT_INDENT: Final[int] = 2
    """JSON indentation for prior-phase context embedded in prompts."""
