"""LiteLLM Router configuration for retry, fallback, and cooldown.

Transport-level retries live here so a phase call only fails once the router
has given up. Retrying a whole phase is the orchestrator's job.

Supports two providers:
- Gemini (default): Uses GEMINI_API_KEY
- OpenRouter: Uses OPENROUTER_API_KEY
"""

from litellm import Router

from policy_analyzer.core.config import (
    API_KEY_ENV_VAR,
    DEFAULT_MODEL,
    FALLBACK_MODEL,
    RouterConfig,
)


def _build_model_list(extra_models: tuple[str, ...] = ()) -> list[dict]:
    """Build the deployment list for the configured provider.

    Every model is registered under its own name so callers can pass any of
    them as ``model``; the API key is resolved lazily by litellm.
    """
    api_key_ref = f"os.environ/{API_KEY_ENV_VAR}"

    models = []
    for model in dict.fromkeys((DEFAULT_MODEL, FALLBACK_MODEL, *extra_models)):
        models.append({
            "model_name": model,
            "litellm_params": {
                "model": model,
                "api_key": api_key_ref,
            },
        })
    return models


def _build_fallbacks() -> list[dict]:
    """Fall back from the default model to the stronger one."""
    if DEFAULT_MODEL == FALLBACK_MODEL:
        return []
    return [{DEFAULT_MODEL: [FALLBACK_MODEL]}]


def build_router(extra_models: tuple[str, ...] = ()) -> Router:
    """Build the LLM Router with retry and fallback configuration.

    The router handles:
    - Automatic retries with backoff
    - Fallback from primary to secondary model on exhausted retries
    - Cooldown tracking for failed deployments

    Provider is determined by LLM_PROVIDER env var. ``extra_models`` registers
    additional model names (e.g. from --model) next to the defaults.
    """
    return Router(
        model_list=_build_model_list(extra_models),
        num_retries=RouterConfig.NUM_RETRIES,
        retry_after=RouterConfig.RETRY_AFTER,
        cooldown_time=RouterConfig.COOLDOWN_TIME,
        allowed_fails=RouterConfig.ALLOWED_FAILS,
        fallbacks=_build_fallbacks(),
    )


router = build_router()
