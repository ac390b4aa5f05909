"""Core utilities for the analysis pipeline."""

from policy_analyzer.core.config import (
    LLM_PROVIDER,
    API_KEY_ENV_VAR,
    API_KEY_ENV_VARS,
    DEFAULT_MODEL,
    FALLBACK_MODEL,
    LLMConfig,
    RouterConfig,
    StreamConfig,
    PipelineConfig,
)
from policy_analyzer.core.llm_client import (
    LLMClient,
    LLMResponse,
    ModelClient,
)
from policy_analyzer.core.pipeline_logger import PipelineLogger, get_logger, reset_logger
from policy_analyzer.core.errors import (
    ErrorSeverity,
    ErrorCategory,
    AnalysisPipelineError,
    TransportError,
    DecodingError,
    PhaseExecutionError,
    InvalidPhaseError,
    ResultAlreadyAttachedError,
    ParserClosedError,
    AnalysisError,
    PipelineErrors,
    transport_error,
    decoding_error,
    timeout_error,
    malformed_record_warning,
    error_record_for,
)
from policy_analyzer.core.cost_tracker import (
    CostTracker,
    PhaseUsage,
)

__all__ = [
    # Configuration
    "LLM_PROVIDER",
    "API_KEY_ENV_VAR",
    "API_KEY_ENV_VARS",
    "DEFAULT_MODEL",
    "FALLBACK_MODEL",
    "LLMConfig",
    "RouterConfig",
    "StreamConfig",
    "PipelineConfig",
    # LLM Client
    "LLMClient",
    "LLMResponse",
    "ModelClient",
    # Logging
    "PipelineLogger",
    "get_logger",
    "reset_logger",
    # Errors
    "ErrorSeverity",
    "ErrorCategory",
    "AnalysisPipelineError",
    "TransportError",
    "DecodingError",
    "PhaseExecutionError",
    "InvalidPhaseError",
    "ResultAlreadyAttachedError",
    "ParserClosedError",
    "AnalysisError",
    "PipelineErrors",
    "transport_error",
    "decoding_error",
    "timeout_error",
    "malformed_record_warning",
    "error_record_for",
    # Cost tracking
    "CostTracker",
    "PhaseUsage",
]
