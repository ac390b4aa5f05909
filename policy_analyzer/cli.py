"""CLI entrypoint for the policy analysis pipeline."""

import argparse
import asyncio
import json
import logging
import os
import sys
import warnings
from pathlib import Path

import litellm

from policy_analyzer.core.config import API_KEY_ENV_VAR, DEFAULT_MODEL, LLM_PROVIDER, PipelineConfig

warnings.filterwarnings("ignore", message="Pydantic serializer warnings")
warnings.filterwarnings("ignore", message="Unclosed client session")
warnings.filterwarnings("ignore", category=ResourceWarning)

# Suppress noisy loggers (HTTP clients, LiteLLM internals)
for logger_name in ["httpx", "httpcore", "litellm", "LiteLLM",
                    "LiteLLM Router", "aiohttp", "asyncio"]:
    logging.getLogger(logger_name).setLevel(logging.ERROR)

litellm.suppress_debug_info = True


def read_policy_text(source: str) -> str:
    """Read policy text from a UTF-8 file, or from stdin when ``source`` is "-"."""
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


async def analyze(
    input_path: str,
    output_dir: str = "outputs",
    model: str | None = None,
    language: str | None = None,
    phase_timeout: float | None = None,
    retries: int = 0,
    verbose: bool = False,
) -> dict | None:
    """Run the analysis pipeline.

    Args:
        input_path: Path to a UTF-8 text file, or "-" for stdin.
        output_dir: Directory for output files.
        model: Model identifier. Defaults to DEFAULT_MODEL.
        language: Output language of the analysis.
        phase_timeout: Seconds before a phase times out.
        retries: How many times to retry a failed phase before giving up.
        verbose: Verbose output.

    Returns:
        Serialized snapshot dict of a successful run, or None on failure.
    """
    # Import here so the logging setup above runs first
    from policy_analyzer.orchestrator import Orchestrator
    from policy_analyzer.pydantic_models import PipelineStatus
    from visualizer.generate_markdown_report import generate_markdown

    if input_path != "-" and not Path(input_path).exists():
        print(f"Error: File not found: {input_path}")
        return None

    if not os.environ.get(API_KEY_ENV_VAR):
        print(f"Error: {API_KEY_ENV_VAR} not set")
        print(f"Set it in .env or export {API_KEY_ENV_VAR}=...")
        return None

    text = read_policy_text(input_path)
    if not text.strip():
        print("Error: Policy text is empty")
        return None

    stem = "stdin" if input_path == "-" else Path(input_path).stem
    output_dir = Path(output_dir)
    json_dir = output_dir / "json"
    logs_dir = output_dir / "logs"
    json_dir.mkdir(parents=True, exist_ok=True)
    logs_dir.mkdir(parents=True, exist_ok=True)

    resolved_model = model or DEFAULT_MODEL
    print(f"\n{'='*50}")
    print(f"Analyzing: {stem}")
    print(f"{'='*50}")
    print(f"  Provider: {LLM_PROVIDER}")
    print(f"  Model: {resolved_model.replace('openrouter/', '').replace('gemini/', '')}")
    print(f"  Language: {language or PipelineConfig.OUTPUT_LANGUAGE}")
    if phase_timeout:
        print(f"  Phase timeout: {phase_timeout:g}s")
    print()

    orchestrator = Orchestrator(
        model=resolved_model,
        language=language,
        phase_timeout=phase_timeout,
        verbose=verbose,
        log_dir=logs_dir,
    )

    try:
        snapshot = await orchestrator.start(text, source=stem)
        attempts_left = retries
        while snapshot.state.status == PipelineStatus.FAILED and attempts_left > 0:
            attempts_left -= 1
            print(f"\n[RETRY] {snapshot.state.last_error.user_message}")
            snapshot = await orchestrator.retry()
    except Exception as e:
        print(f"\n[ERROR] Pipeline failed: {e}")
        if verbose:
            import traceback
            traceback.print_exc()
        return None

    result = snapshot.to_dict()

    output_file = json_dir / f"{stem}.json"
    with open(output_file, "w", encoding="utf-8") as f:
        json.dump(result, f, indent=2, ensure_ascii=False)
    print(f"\n[OUTPUT] {output_file}")

    report_file = output_dir / f"{stem}.md"
    report_file.write_text(generate_markdown(result), encoding="utf-8")
    print(f"[OUTPUT] {report_file}")

    cost_tracker = orchestrator.resources.cost_tracker
    if cost_tracker.call_count > 0:
        print(f"\n{cost_tracker.summary()}")

    if snapshot.state.status != PipelineStatus.SUCCEEDED:
        error = snapshot.state.last_error
        print(f"\n[ERROR] {error.user_message if error else 'Pipeline did not finish'}")
        return None
    return result


def main():
    parser = argparse.ArgumentParser(
        description="Policy Analysis Pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  uv run policy-analyze policies/budget_2025.txt
  uv run policy-analyze --retries 2 --timeout 120 policies/budget_2025.txt
  cat policy.txt | uv run policy-analyze -
        """,
    )
    parser.add_argument("input", help="Path to a UTF-8 policy text file, or - for stdin")
    parser.add_argument(
        "-o", "--output",
        default="outputs",
        help="Output directory (default: outputs)",
    )
    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help=f"Model for every phase. Default: {DEFAULT_MODEL}",
    )
    parser.add_argument(
        "--language",
        type=str,
        default=None,
        help=f"Output language. Default: {PipelineConfig.OUTPUT_LANGUAGE}",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=PipelineConfig.PHASE_TIMEOUT_SECONDS,
        metavar="S",
        help="Per-phase timeout in seconds (default: none)",
    )
    parser.add_argument(
        "--retries",
        type=int,
        default=0,
        metavar="N",
        help="Retry a failed phase up to N times (default: 0)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output with DEBUG level logging",
    )

    args = parser.parse_args()

    result = asyncio.run(analyze(
        input_path=args.input,
        output_dir=args.output,
        model=args.model,
        language=args.language,
        phase_timeout=args.timeout,
        retries=args.retries,
        verbose=args.verbose,
    ))

    sys.exit(0 if result else 1)


if __name__ == "__main__":
    main()
