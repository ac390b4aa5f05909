"""Prompt for the outlook phase.

Context: the vulnerability result only.
Answer shape: OutlookResult.
"""

OUTLOOK_PROMPT = """For every vulnerability identified in the context below, predict how the policy \
is likely to evolve to address it. Your predictions must be logical and directly target the \
vulnerability.

All output must be written in {language}.

Identified vulnerabilities:
\"\"\"
{context}
\"\"\"

Policy text for reference:
\"\"\"
{policy_text}
\"\"\"
"""


def build_outlook_prompt(policy_text: str, context_json: str | None, language: str) -> str:
    return OUTLOOK_PROMPT.format(
        policy_text=policy_text,
        context=context_json or "{}",
        language=language,
    )
