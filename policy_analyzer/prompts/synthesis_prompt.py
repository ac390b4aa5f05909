"""Prompt for the synthesis phase.

Context: the entire cumulative analysis (background, interpretations,
vulnerabilities, outlook). Answer shape: SynthesisReport.
"""

SYNTHESIS_PROMPT = """As a senior policy analyst, write a complete, readable synthesis report \
based on the policy text and the multi-step analysis already completed below.

Report requirements:
1. **Integration**: weave background, interpretation, vulnerabilities and outlook into one \
coherent article instead of listing them.
2. **Insight**: distill the most important findings, especially the core intent of the policy \
and its most critical potential loopholes.
3. **Cases**: design or cite concrete cases for the key points (especially vulnerabilities) \
to make them easy to understand.
4. **Structure**: the report must have a title, an introduction, body sections with headings, \
and a conclusion.

All output must be written in {language}.

Policy text:
\"\"\"
{policy_text}
\"\"\"

Existing analysis data:
\"\"\"
{context}
\"\"\"
"""


def build_synthesis_prompt(policy_text: str, context_json: str | None, language: str) -> str:
    return SYNTHESIS_PROMPT.format(
        policy_text=policy_text,
        context=context_json or "{}",
        language=language,
    )
