"""Prompt for the background phase.

Identifies key terms, the issuing body and the wider context of the policy.
Answer shape: BackgroundResult.
"""

BACKGROUND_PROMPT = """Analyze the following government policy text. Identify the key terms, \
the issuing body and the underlying background. Provide a concise background summary \
and a glossary of key terms.

All output must be written in {language}.

Policy text:
\"\"\"
{policy_text}
\"\"\"
"""


def build_background_prompt(policy_text: str, context_json: str | None, language: str) -> str:
    """Build the background prompt. Background takes no prior context."""
    return BACKGROUND_PROMPT.format(policy_text=policy_text, language=language)
