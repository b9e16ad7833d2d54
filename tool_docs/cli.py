#!/usr/bin/env python3
"""
Documentation generator for the Azure MCP CLI tool catalog.

Reads the JSON dump of CLI commands and writes Markdown pages per tool and
per service family.

Usage:
    tool-docs all --input cli-output.json --output-dir ./generated
    tool-docs parameters --input cli-output.json
    tool-docs families --input cli-output.json --model azure/gpt-4o
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from tool_docs.composer import load_template
from tool_docs.examples import DEFAULT_PROMPT_COUNT
from tool_docs.llm_client import LLMSettings, create_text_generator
from tool_docs.models import InputError, load_cli_output
from tool_docs.naming import load_naming_tables
from tool_docs.pipeline import STAGES, Pipeline, resolve_version
from tool_docs.security import PathValidator

LLM_STAGES = {"examples", "improve", "families"}


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--input",
        default=os.getenv("CLI_OUTPUT_FILE", "cli-output.json"),
        help="CLI JSON dump with a 'results' or 'tools' array (default: cli-output.json)",
    )
    common.add_argument(
        "--output-dir",
        default=os.getenv("OUTPUT_DIR", "./generated"),
        help="Directory for generated files (default: ./generated)",
    )
    common.add_argument("--data-dir", default=None, help="Directory with lookup tables")
    common.add_argument("--version", dest="cli_version", default=None, help="Override the CLI version stamp")
    common.add_argument("--template", default=None, help="Raw tool page template file")
    common.add_argument(
        "--max-workers",
        type=int,
        default=int(os.getenv("MAX_WORKERS", "4")),
        help="Concurrent units per stage (default: 4)",
    )
    common.add_argument(
        "--prompt-count",
        type=int,
        default=DEFAULT_PROMPT_COUNT,
        help=f"Example prompts per tool (default: {DEFAULT_PROMPT_COUNT})",
    )
    common.add_argument("--model", default=None, help="Override LLM model")
    common.add_argument("--base-url", default=None, help="Override LLM base URL")
    common.add_argument("--api-key", default=None, help="Override LLM API key")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    parser = argparse.ArgumentParser(
        description="Generate Markdown documentation for a CLI tool catalog",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s all --input cli-output.json --output-dir ./generated
  %(prog)s parameters --input cli-output.json --version 2.0.0
  %(prog)s families --input cli-output.json --model azure/gpt-4o
        """,
    )
    sub = parser.add_subparsers(dest="stage", required=True, metavar="STAGE")
    for stage in STAGES:
        sub.add_parser(stage, parents=[common], help=f"Run the {stage} stage")
    sub.add_parser("all", parents=[common], help="Run every stage in order")
    return parser


def main(argv=None):
    """Main entry point."""
    load_dotenv()
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Override config if specified via CLI
    if args.model:
        os.environ["LLM_MODEL"] = args.model
    if args.base_url:
        os.environ["LLM_BASE_URL"] = args.base_url
    if args.api_key:
        os.environ["LLM_API_KEY"] = args.api_key

    # SECURITY: Validate output directory
    is_valid, error, output_dir = PathValidator.validate_output_dir(args.output_dir)
    if not is_valid:
        print(f"[Security] Output directory validation failed: {error}")
        sys.exit(1)

    stages = list(STAGES) if args.stage == "all" else [args.stage]

    try:
        tables = load_naming_tables(Path(args.data_dir) if args.data_dir else None)
        tools, json_version = load_cli_output(Path(args.input))
        template = load_template(Path(args.template) if args.template else None)
    except InputError as e:
        print(f"[Error] {e}")
        sys.exit(1)
    except OSError as e:
        print(f"[Error] Could not read template: {e}")
        sys.exit(1)

    version = resolve_version(args.cli_version, json_version, Path(args.input))

    text_generator = None
    if LLM_STAGES.intersection(stages):
        text_generator = create_text_generator(LLMSettings.from_env())

    print("=" * 70)
    print("[ToolDocs] DOCUMENTATION GENERATION")
    print("=" * 70)
    print(f"   Input:   {args.input} ({len(tools)} tools)")
    print(f"   Output:  {output_dir}")
    print(f"   Version: {version}")
    print(f"   Stages:  {', '.join(stages)}")
    print(f"   LLM:     {os.getenv('LLM_MODEL') if text_generator else 'not configured (static fallbacks)'}")

    pipeline = Pipeline(
        tools,
        tables,
        output_dir,
        version=version,
        text_generator=text_generator,
        template=template,
        max_workers=args.max_workers,
        prompt_count=args.prompt_count,
    )
    report = pipeline.run(stages)
    report.print_summary()
    print(f"\n[Info] Output written to {output_dir}")


if __name__ == "__main__":
    main()
