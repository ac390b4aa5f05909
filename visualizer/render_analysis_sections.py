"""Render functions for policy analysis reports.

Each function takes the serialized output of one phase (wire field names, as
written by ``CumulativeAnalysis.to_context()``) and returns a Markdown
fragment. A missing phase renders as an empty string.
"""

from typing import Any


def render_synthesis(synthesis: dict | None) -> str:
    """Render the synthesis report: title, introduction, sections, conclusion."""
    if not synthesis:
        return ""

    md = f"## Synthesis Report: {synthesis.get('title', '')}\n\n"
    md += f"### Introduction\n{synthesis.get('introduction', '')}\n\n"
    for section in synthesis.get("sections", []):
        md += f"### {section.get('heading', '')}\n{section.get('content', '')}\n"
        if section.get("example"):
            md += f"**Case in point:** {section['example']}\n"
        md += "\n"
    md += f"### Conclusion\n{synthesis.get('conclusion', '')}\n\n"
    return md


def render_background(background: dict | None) -> str:
    if not background:
        return ""

    md = "### 1. Background & Terminology\n\n"
    md += f"**Summary:** {background.get('summary', '')}\n\n"
    glossary = background.get("glossary", [])
    if glossary:
        md += "**Glossary:**\n"
        for entry in glossary:
            md += f"*   **{entry.get('term', '')}:** {entry.get('definition', '')}\n"
        md += "\n"
    return md


def render_interpretation(interpretation: dict | None) -> str:
    """Render sentence-by-sentence interpretations, in stream order."""
    if not interpretation:
        return ""

    md = "### 2. Sentence-by-Sentence Interpretation\n\n"
    sentences = interpretation.get("sentences", [])
    if not sentences:
        return md + "_No interpretations were produced._\n\n"
    for record in sentences:
        md += f"**Clause: \"{record.get('sentence', '')}\"**\n"
        md += f"*   What it says: {record.get('whatItSays', '')}\n"
        md += f"*   Why it says it: {record.get('whyItSaysIt', '')}\n\n"
    return md


def render_vulnerabilities(vulnerabilities: dict | None) -> str:
    if not vulnerabilities:
        return ""

    md = "### 3. Potential Vulnerabilities\n\n"
    for item in vulnerabilities.get("vulnerabilities", []):
        md += f"**Category: {item.get('category', '')}**\n"
        md += f"*   Vulnerability: {item.get('vulnerability', '')}\n"
        md += f"*   Example: {item.get('example', '')}\n\n"
    return md


def render_outlook(outlook: dict | None) -> str:
    if not outlook:
        return ""

    md = "### 4. Policy Outlook\n\n"
    for item in outlook.get("predictions", []):
        md += f"*   **Vulnerability addressed:** {item.get('vulnerability', '')}\n"
        md += f"*   **Prediction:** {item.get('prediction', '')}\n\n"
    return md


def render_status(state: dict[str, Any] | None) -> str:
    """Render a note for runs that did not finish."""
    if not state or state.get("status") == "succeeded":
        return ""

    error = state.get("last_error")
    if error:
        return f"> **Incomplete analysis:** {error.get('message', '')}\n\n"
    return f"> **Incomplete analysis:** pipeline status is `{state.get('status')}`.\n\n"
