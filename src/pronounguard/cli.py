"""CLI commands for checking text and looking up pronouns.

Provides subcommands for testing detection on a message, resolving a
person's label through the configured sources, and showing the config.
"""

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path

from .config import CorrectionMode, EngineConfig, config_from_env, load_config
from .directory import PronounDirectory, build_sources
from .engine import Analysis, EngineResult, PronounCorrectionEngine
from .logging import JSONLLogger, configure_logger
from .resolver import Corrections
from .scanner import WINDOWS


def _load(config_path: str | None) -> EngineConfig:
    """Load config from disk and apply environment overrides."""
    path = Path(config_path).expanduser() if config_path else None
    return config_from_env(load_config(path))


def _event_logger(log_dir: str | None) -> JSONLLogger | None:
    """Configure the JSONL event log when a log directory is given."""
    if not log_dir:
        return None
    return configure_logger(log_dir=Path(log_dir).expanduser())


async def _check(
    engine: PronounCorrectionEngine,
    text: str,
    person_id: str,
    labels: dict[str, str] | None,
    mode: CorrectionMode | None,
) -> tuple[Analysis, EngineResult | None]:
    analysis = await engine.analyze(text, [person_id], labels=labels)
    result = None
    if mode is not None:
        result = await engine.process(text, "cli", [person_id], mode=mode, labels=labels)
    return analysis, result


def cmd_check(args: argparse.Namespace) -> int:
    """Run detection on a message and print the analysis."""
    try:
        config = _load(args.config)
        overrides = {}
        if args.floor is not None:
            overrides["confidence_floor"] = args.floor
        if args.window:
            overrides["window"] = args.window
        if overrides:
            config = replace(config, **overrides)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    engine = PronounCorrectionEngine.from_config(config, event_logger=_event_logger(args.log_dir))

    text = args.text
    if args.person not in engine.mentioned(text):
        text = f"{text} @{args.person}"

    labels = {args.person: args.label} if args.label else None
    mode = CorrectionMode(args.mode) if args.mode else None
    analysis, result = asyncio.run(_check(engine, text, args.person, labels, mode))

    label = analysis.labels.get(args.person, "unspecified")
    outcome = analysis.outcomes[args.person]

    print(f"\nMessage: {text}")
    print("-" * 40)
    print(f"Pronouns for {args.person}: {label}")

    found = ", ".join(f"{o.original} ({o.confidence}%)" for o in analysis.scan.occurrences)
    print(f"Found pronouns: {found or 'None'}")
    print(f"Correction needed: {'Yes' if isinstance(outcome, Corrections) else 'No'}")
    print(f"Confidence: {outcome.confidence}%")
    print(f"Reasoning: {outcome.reason}")

    if analysis.preview.changed:
        print("\nCorrections:")
        for edit in analysis.preview.edits:
            print(f"  {edit.original} -> {edit.corrected} (at {edit.position})")
        print(f"\nCorrected: {analysis.preview.text}")

    if result is not None:
        print(f"\nMode: {result.mode.value}")
        print(f"Proceed: {'yes' if result.proceed else 'no'}")
        print(f"Output: {result.text}")
        for reminder in result.reminders:
            print(f"Reminder: {reminder}")

    return 0


def cmd_lookup(args: argparse.Namespace) -> int:
    """Resolve a person's pronouns through the configured sources."""
    try:
        config = _load(args.config)
        if args.source:
            config = replace(config, sources=[args.source])
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    sources = build_sources(config)
    if not sources:
        print("Error: No usable pronoun sources configured.")
        return 1

    directory = PronounDirectory(
        sources=sources,
        timeout=config.timeout_seconds,
        event_logger=_event_logger(args.log_dir),
    )
    label = asyncio.run(directory.resolve(args.person))

    print(f"{args.person}: {label}")
    return 0 if label != "unspecified" else 2


def cmd_config(args: argparse.Namespace) -> int:
    """Print the effective configuration."""
    try:
        config = _load(args.config)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    print(json.dumps(config.to_dict(), indent=2))
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="pronounguard",
        description="Detect and correct pronoun mismatches in chat text",
    )
    parser.add_argument("-c", "--config", help="Path to config.json")
    parser.add_argument("--log-dir", help="Write JSONL events to this directory")

    subparsers = parser.add_subparsers(dest="command", help="Sub-command help")

    # check command
    check_parser = subparsers.add_parser("check", help="Test detection on a message")
    check_parser.add_argument("text", help="Message text to check")
    check_parser.add_argument("-p", "--person", required=True, help="Person id to check against")
    check_parser.add_argument("-l", "--label", help="Pronoun label to use instead of a lookup")
    check_parser.add_argument(
        "-m", "--mode",
        choices=[m.value for m in CorrectionMode],
        help="Also run the engine in this mode",
    )
    check_parser.add_argument("--floor", type=int, help="Confidence floor (0-100)")
    check_parser.add_argument(
        "--window",
        choices=sorted(WINDOWS),
        help="Proximity window policy",
    )

    # lookup command
    lookup_parser = subparsers.add_parser("lookup", help="Resolve a person's pronouns")
    lookup_parser.add_argument("person", help="Person id")
    lookup_parser.add_argument(
        "-s", "--source",
        choices=["pronoundb", "custom", "static"],
        help="Only use this source",
    )

    # config command
    subparsers.add_parser("config", help="Show the effective configuration")

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Run the CLI with given arguments.

    Args:
        argv: Command-line arguments. Uses sys.argv[1:] if None.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "check": cmd_check,
        "lookup": cmd_lookup,
        "config": cmd_config,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    return handler(args)


if __name__ == "__main__":
    sys.exit(run_cli())
