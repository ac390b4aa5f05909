#!/usr/bin/env python3
"""Generate a Markdown report for policy analysis results.

Main entry point for visualization. Accepts either a bare serialized analysis
or a full run snapshot (``{"state": ..., "analysis": ...}``) as written by the
``policy-analyze`` CLI.

Usage:
    visualize outputs/json/budget_2025.json
    visualize outputs/json/budget_2025.json -o report.md
"""

import argparse
import json
import sys
from pathlib import Path

from visualizer.render_analysis_sections import (
    render_background,
    render_interpretation,
    render_outlook,
    render_status,
    render_synthesis,
    render_vulnerabilities,
)

REPORT_TITLE = "Policy Analysis Report"


def load_json(path: str | Path) -> dict:
    """Load JSON data from file."""
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def generate_markdown(data: dict, title: str = REPORT_TITLE) -> str:
    """Generate the full Markdown report.

    The synthesis report comes first. Everything else follows as an appendix
    when a synthesis exists, or as the body of the report when it does not.
    Phases without a result are left out.
    """
    state = data.get("state") if "analysis" in data else None
    analysis = data.get("analysis", data)

    md = f"# {title}\n\n"
    md += render_status(state)

    synthesis = render_synthesis(analysis.get("synthesis"))
    if synthesis:
        md += synthesis
        md += "---\n\n## Appendix: Detailed Analysis\n\n"

    md += render_background(analysis.get("background"))
    md += render_interpretation(analysis.get("interpretation"))
    md += render_vulnerabilities(analysis.get("vulnerabilities"))
    md += render_outlook(analysis.get("outlook"))
    return md


def main():
    """CLI entry point - write the Markdown report next to the JSON file."""
    parser = argparse.ArgumentParser(description="Render a policy analysis as Markdown")
    parser.add_argument("json_file", help="Analysis JSON written by policy-analyze")
    parser.add_argument("-o", "--output", default=None, help="Output file (default: <json stem>.md)")
    args = parser.parse_args()

    json_path = Path(args.json_file)
    if not json_path.exists():
        print(f"Error: {json_path} not found")
        sys.exit(1)

    print(f"Loading {json_path}...")
    data = load_json(json_path)

    output_path = Path(args.output) if args.output else json_path.with_suffix(".md")
    output_path.write_text(generate_markdown(data), encoding="utf-8")
    print(f"[OUTPUT] {output_path}")


if __name__ == "__main__":
    main()
