"""
Quillsmith command line interface.

Usage:
    quillsmith discover              Track new documents under the content root
    quillsmith review [PATH ...]     Score documents (default: all pending)
    quillsmith improve [PATH ...]    Improve documents (default: the worst ones)
    quillsmith workflow              Discover, review, then improve the worst
    quillsmith status                Show the content health dashboard
    quillsmith costs [--path PATH]   Show spend per category and document
    quillsmith roi                   Show improvement return on investment

Results are printed to stdout as JSON; logs go to stderr.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Optional

import yaml
from pydantic import ValidationError

from quillsmith import __version__
from quillsmith.config import apply_runtime_overrides, clear_settings_cache, get_settings
from quillsmith.core.pipeline import ContentPipeline
from quillsmith.utils.exceptions import ConfigError, QuillsmithError
from quillsmith.utils.logging import LogContext, get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="quillsmith",
        description="AI-assisted content quality pipeline for Markdown sites",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--root", help="Content root directory (default: from config)")
    parser.add_argument("--config", help="Path to a YAML config file")
    parser.add_argument("--collection", choices=["astro", "nextjs", "gatsby", "custom"])
    parser.add_argument("--backend", choices=["goose", "ollama"])
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("discover", help="Track new documents")

    review = sub.add_parser("review", help="Score documents")
    review.add_argument("paths", nargs="*", help="Documents to review (default: all pending)")
    review.add_argument("--batch-size", type=int)

    improve = sub.add_parser("improve", help="Improve documents")
    improve.add_argument("paths", nargs="*", help="Documents to improve (default: worst scoring)")
    improve.add_argument("--count", type=int, default=1, help="How many worst documents to improve")
    improve.add_argument("--batch-size", type=int)

    workflow = sub.add_parser("workflow", help="Discover, review and improve")
    workflow.add_argument("--improve-count", type=int, default=1)

    sub.add_parser("status", help="Content health dashboard")

    costs = sub.add_parser("costs", help="Cost summary")
    costs.add_argument("--path", help="Limit the summary to one document")

    sub.add_parser("roi", help="Return on improvement spend")
    return parser


def _configure(args: argparse.Namespace) -> None:
    clear_settings_cache()
    if args.config:
        os.environ["QUILLSMITH_CONFIG_PATH"] = args.config

    if args.root:
        apply_runtime_overrides("pipeline", {"root_dir": args.root})
    if args.collection:
        apply_runtime_overrides("pipeline", {"content_collection": args.collection})
    if args.backend:
        apply_runtime_overrides("llm", {"backend": args.backend})
    if args.log_level:
        apply_runtime_overrides("logging", {"level": args.log_level})
    if args.json_logs:
        apply_runtime_overrides("logging", {"json_format": True})

    try:
        log_config = get_settings().logging
    except (OSError, yaml.YAMLError, ValidationError, TypeError) as e:
        raise ConfigError(f"Could not load configuration: {e}", details=args.config)
    setup_logging(
        level=log_config.level,
        format_string=log_config.format,
        log_file=log_config.file,
        use_json=log_config.json_format,
    )


async def _dispatch(pipeline: ContentPipeline, args: argparse.Namespace) -> tuple[object, bool]:
    """Run one command. Returns the JSON payload and whether it fully succeeded."""
    command = args.command

    if command == "discover":
        added = await pipeline.discover_content()
        return {"added": added, "count": len(added)}, True

    if command == "review":
        if args.paths:
            result = await pipeline.review_batch(args.paths, args.batch_size)
        else:
            result = await pipeline.review_all(args.batch_size)
        return result.to_dict(), not result.failed

    if command == "improve":
        if args.paths:
            result = await pipeline.improve_batch(args.paths, args.batch_size)
        else:
            result = await pipeline.improve_worst(args.count, args.batch_size)
        return result.to_dict(), not result.failed

    if command == "workflow":
        result = await pipeline.run_full_workflow(args.improve_count)
        failed = any(
            batch is not None and batch.failed
            for batch in (result.review, result.improvement)
        )
        return result.to_dict(), not failed

    if command == "status":
        return (await pipeline.get_status()).to_dict(), True

    if command == "costs":
        return (await pipeline.get_cost_summary(args.path)).to_dict(), True

    if command == "roi":
        return (await pipeline.get_roi_analysis()).to_dict(), True

    raise ValueError(f"Unknown command: {command}")


async def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        _configure(args)
    except ConfigError as e:
        print(json.dumps(e.to_dict(), indent=2))
        return 2

    pipeline = ContentPipeline(root_dir=args.root)
    try:
        with LogContext(logger, command=args.command):
            payload, ok = await _dispatch(pipeline, args)
    except QuillsmithError as e:
        logger.error(f"{args.command} failed: {e.message}")
        print(json.dumps(e.to_dict(safe=True), indent=2))
        return 1
    finally:
        await pipeline.close()

    print(json.dumps(payload, indent=2, default=str))
    return 0 if ok else 1


def run() -> None:
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nInterrupted by user.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
