"""Prompt templates for the analysis phases.

Each module holds the prompt text and a builder with the common signature
``build_*_prompt(policy_text, context_json, language) -> str``.
"""

from policy_analyzer.prompts.background_prompt import BACKGROUND_PROMPT, build_background_prompt
from policy_analyzer.prompts.interpretation_prompt import (
    INTERPRETATION_STREAM_PROMPT,
    build_interpretation_prompt,
)
from policy_analyzer.prompts.vulnerability_prompt import VULNERABILITY_PROMPT, build_vulnerability_prompt
from policy_analyzer.prompts.outlook_prompt import OUTLOOK_PROMPT, build_outlook_prompt
from policy_analyzer.prompts.synthesis_prompt import SYNTHESIS_PROMPT, build_synthesis_prompt

__all__ = [
    # Background
    "BACKGROUND_PROMPT",
    "build_background_prompt",
    # Interpretation (streaming)
    "INTERPRETATION_STREAM_PROMPT",
    "build_interpretation_prompt",
    # Vulnerability
    "VULNERABILITY_PROMPT",
    "build_vulnerability_prompt",
    # Outlook
    "OUTLOOK_PROMPT",
    "build_outlook_prompt",
    # Synthesis
    "SYNTHESIS_PROMPT",
    "build_synthesis_prompt",
]
