"""Tests for policy_analyzer.core.config module.

Tests the centralized configuration:
- Provider and model naming
- LLMConfig, RouterConfig, StreamConfig, PipelineConfig values
- .env values are loaded before settings are read
"""

import importlib

import dotenv

from policy_analyzer.core import config
from policy_analyzer.core.config import (
    API_KEY_ENV_VAR,
    API_KEY_ENV_VARS,
    DEFAULT_MODEL,
    FALLBACK_MODEL,
    LLM_PROVIDER,
    LLMConfig,
    PipelineConfig,
    RouterConfig,
    StreamConfig,
)


class TestProviderConfig:
    """Tests for provider and model selection."""

    def test_provider_is_supported(self):
        assert LLM_PROVIDER in API_KEY_ENV_VARS

    def test_api_key_matches_provider(self):
        assert API_KEY_ENV_VAR == API_KEY_ENV_VARS[LLM_PROVIDER]

    def test_models_are_provider_qualified(self):
        prefix = "openrouter/google/" if LLM_PROVIDER == "openrouter" else "gemini/"
        assert DEFAULT_MODEL.startswith(prefix)
        assert FALLBACK_MODEL.startswith(prefix)

    def test_fallback_differs_from_default(self):
        assert FALLBACK_MODEL != DEFAULT_MODEL


class TestLLMConfig:
    """Tests for LLMConfig."""

    def test_temperature_is_deterministic(self):
        assert LLMConfig.TEMPERATURE == 0.0

    def test_structured_response_format(self):
        assert LLMConfig.RESPONSE_FORMAT_TYPE == "json_schema"


class TestRouterConfig:
    """Tests for RouterConfig."""

    def test_retry_values_are_positive(self):
        assert RouterConfig.NUM_RETRIES >= 0
        assert RouterConfig.RETRY_AFTER > 0
        assert RouterConfig.COOLDOWN_TIME > 0
        assert RouterConfig.ALLOWED_FAILS > 0


class TestStreamConfig:
    """Tests for StreamConfig."""

    def test_line_delimiter(self):
        assert StreamConfig.LINE_DELIMITER == "\n"

    def test_fence_marker(self):
        assert StreamConfig.FENCE_MARKER == "```"

    def test_preview_is_bounded(self):
        assert 0 < StreamConfig.MALFORMED_PREVIEW_CHARS <= 1000


class TestPipelineConfig:
    """Tests for PipelineConfig."""

    def test_language_is_set(self):
        assert PipelineConfig.OUTPUT_LANGUAGE

    def test_no_timeout_by_default(self):
        assert PipelineConfig.PHASE_TIMEOUT_SECONDS is None


class TestDotenvLoading:
    """.env is loaded before any environment-driven setting is read."""

    def test_dotenv_values_reach_import_time_settings(self, monkeypatch):
        def fake_load_dotenv(*args, **kwargs):
            monkeypatch.setenv("ANALYSIS_LANGUAGE", "French")
            return True

        monkeypatch.delenv("ANALYSIS_LANGUAGE", raising=False)
        monkeypatch.setattr(dotenv, "load_dotenv", fake_load_dotenv)
        try:
            reloaded = importlib.reload(config)
            assert reloaded.PipelineConfig.OUTPUT_LANGUAGE == "French"
        finally:
            monkeypatch.undo()
            importlib.reload(config)
