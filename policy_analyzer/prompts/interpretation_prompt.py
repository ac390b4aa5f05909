"""Prompt for the streaming interpretation phase.

Unlike the other phases this one is not a single JSON document: the model is
asked to emit one JSON object per line, immediately, so results can be shown
while the stream is still running (see streaming/record_parser.py).
"""

INTERPRETATION_STREAM_PROMPT = """Interpret the main body of the following policy text sentence by sentence. \
For every sentence or logically connected clause, produce a separate JSON object and output it immediately.
Each JSON object MUST be on its **own single line**, without any extra formatting or markup.

Follow this JSON structure strictly:
{{"sentence": "The original sentence or clause from the policy text.", \
"whatItSays": "Plain-language explanation of its literal meaning.", \
"whyItSaysIt": "The underlying regulatory intent or goal."}}

**Important**: do NOT wrap the objects in an array ([...]). Every JSON object stands alone on its own line.
All output must be written in {language}.

Policy text:
\"\"\"
{policy_text}
\"\"\"
"""


def build_interpretation_prompt(policy_text: str, context_json: str | None, language: str) -> str:
    """Build the line-per-record streaming prompt. Takes no prior context."""
    return INTERPRETATION_STREAM_PROMPT.format(policy_text=policy_text, language=language)
