#!/usr/bin/env python3
"""Command-line entry point for catalog discovery and enrichment runs."""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import Config  # noqa: E402
from models.outcome import ErrorKind, PipelineResult  # noqa: E402
from pipeline.facade import CatalogPipeline  # noqa: E402


def read_exclusions(path: str | None) -> list[str]:
    """Read exclusion titles from a JSON array file or a one-title-per-line text file."""
    if not path:
        return []
    text = Path(path).read_text(encoding="utf-8")
    if path.endswith(".json"):
        titles = json.loads(text)
        if not isinstance(titles, list):
            raise ValueError(f"{path} must contain a JSON array of titles")
        return [str(t) for t in titles]
    return [line.strip() for line in text.splitlines() if line.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Mandela Catalog Pipeline")
    parser.add_argument("--env-file", help="Path to a .env file")
    sub = parser.add_subparsers(dest="command", required=True)

    disc = sub.add_parser("discover", help="Find new catalog candidates")
    disc.add_argument("--exclude", action="append", default=[], help="Title already in the catalog (repeatable)")
    disc.add_argument("--exclude-file", help="JSON array or newline-separated file of existing titles")

    enrich = sub.add_parser("enrich", help="Generate content for one entry")
    enrich.add_argument("title")
    enrich.add_argument("--question", default="")
    enrich.add_argument("--variant-a", required=True, help="The false memory")
    enrich.add_argument("--variant-b", required=True, help="Reality")
    return parser


async def run(args: argparse.Namespace) -> dict:
    pipeline = CatalogPipeline.from_config(Config(args.env_file))

    # Ctrl+C cancels the run so it still ends with a result
    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, cancel_event.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        # no signal handlers on this event loop; main() handles KeyboardInterrupt
        handler_installed = False

    try:
        if args.command == "discover":
            exclusions = list(args.exclude) + read_exclusions(args.exclude_file)
            result = await pipeline.discover(exclusions, cancel_event=cancel_event)
        else:
            result = await pipeline.generate_enrichment(
                args.title, args.question, args.variant_a, args.variant_b, cancel_event=cancel_event
            )
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)
    return result.to_dict()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        payload = asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        payload = PipelineResult.fail(ErrorKind.CANCELED, "interrupted").to_dict()

    print(json.dumps(payload, ensure_ascii=False, indent=2))
    if payload["error"] == ErrorKind.CANCELED.value:
        return 130
    return 0 if payload["success"] else 1


if __name__ == "__main__":
    sys.exit(main())
