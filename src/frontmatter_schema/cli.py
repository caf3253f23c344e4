"""Command-line entry point.

Usage:
    frontmatter-schema <schemaPath> <outputPath> <inputPattern> [options]
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
import logging
import sys

from frontmatter_schema import __version__
from frontmatter_schema.config import OUTPUT_FORMATS, resolve_config
from frontmatter_schema.exceptions import ConfigurationError, MissingRequiredError
from frontmatter_schema.executor import PipelineStateMachine
from frontmatter_schema.pipeline.states import CompletedState, FailedState, PipelineConfig

# ruff: noqa: T201

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_USAGE = 2

POSITIONALS: tuple[str, ...] = ("schemaPath", "outputPath", "inputPattern")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="frontmatter-schema",
        description=(
            "Aggregate the frontmatter of Markdown documents into one output "
            "file driven by a JSON Schema with x-* directives."
        ),
    )
    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="schemaPath outputPath inputPattern (input is a file, directory or glob)",
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--template", help="Template file overriding x-template")
    parser.add_argument("--format", choices=OUTPUT_FORMATS, help="Output format")
    parser.add_argument(
        "--parallel",
        action="store_true",
        default=None,
        help="Process documents concurrently",
    )
    parser.add_argument("--max-workers", type=int, help="Concurrent document limit")
    parser.add_argument("--timeout-ms", type=int, help="Pipeline wall-clock budget")
    parser.add_argument("--profile", help="Configuration profile from pyproject.toml")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def run(argv: Sequence[str] | None = None) -> int:
    """Parse `argv`, run the pipeline and return the process exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # --help, --version and argparse usage errors
        return e.code if isinstance(e.code, int) else EXIT_USAGE

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if len(args.paths) < len(POSITIONALS):
        error = MissingRequiredError(POSITIONALS[len(args.paths) :])
        print(parser.format_usage(), end="", file=sys.stderr)
        print(f"Error: {error.message}", file=sys.stderr)
        return EXIT_USAGE
    if len(args.paths) > len(POSITIONALS):
        print(parser.format_usage(), end="", file=sys.stderr)
        print(
            f"Error: Unexpected arguments: {' '.join(args.paths[len(POSITIONALS):])}",
            file=sys.stderr,
        )
        return EXIT_USAGE

    schema_path, output_path, input_pattern = args.paths
    overrides = {
        "parallel": args.parallel,
        "max_workers": args.max_workers,
        "max_execution_time_ms": args.timeout_ms,
    }
    try:
        resolved = resolve_config(
            {k: v for k, v in overrides.items() if v is not None},
            profile=args.profile,
        )
        config = PipelineConfig.create(
            schema_path,
            output_path,
            input_pattern,
            template_path=args.template,
            output_format=args.format,
            settings=resolved.to_frozen(),
        )
    except (ConfigurationError, ValueError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.verbose:
        logging.getLogger(__name__).debug("Configuration:\n%s", resolved.audit())

    result = asyncio.run(PipelineStateMachine(config).execute_pipeline())
    final = result.final_state
    if isinstance(final, CompletedState):
        print(f"Output written to {final.output_path}")
        return EXIT_OK
    if isinstance(final, FailedState):
        print(f"Error: {final.error.message}", file=sys.stderr)
    else:
        print(f"Error: pipeline stopped in state '{final.tag}'", file=sys.stderr)
    return EXIT_ERROR


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
