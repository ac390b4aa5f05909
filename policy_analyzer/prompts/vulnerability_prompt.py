"""Prompt for the vulnerability phase.

Context: the frozen interpretation result (every sentence interpretation).
Answer shape: VulnerabilityResult.
"""

VULNERABILITY_PROMPT = """Critically analyze the following policy for potential loopholes, flaws \
or unintended consequences. Consider economic arbitrage, ambiguous definitions, regulatory gaps \
and implementation challenges. For every vulnerability you identify, give a concrete example of \
how it could be exploited.

All output must be written in {language}.

Policy text:
\"\"\"
{policy_text}
\"\"\"

Context from the previous analysis step (sentence interpretations):
{context}
"""


def build_vulnerability_prompt(policy_text: str, context_json: str | None, language: str) -> str:
    return VULNERABILITY_PROMPT.format(
        policy_text=policy_text,
        context=context_json or "{}",
        language=language,
    )
