"""CLI entry point for elquery."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Returns:
        Process exit status.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    from elquery.exceptions import ElQueryError
    from elquery.observability.logging import get_logger, setup_logging

    try:
        settings = _load_settings(args)
    except (ElQueryError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    setup_logging(settings.observability, stream=sys.stderr)
    log = get_logger("elquery.cli")

    try:
        options = _read_options(args.options)
        result = _dispatch(args, settings, options)
    except ElQueryError as e:
        log.error("command_failed", command=args.command, **e.to_dict())
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    json.dump(result, sys.stdout, indent=2, ensure_ascii=False, default=str)
    sys.stdout.write("\n")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="elquery",
        description="elquery: compile declarative search options and run them against a search backend",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--url",
        type=str,
        default=None,
        help="Backend URL, e.g. http://localhost:9200 (overrides config)",
    )
    parser.add_argument(
        "--type",
        dest="index_type",
        type=str,
        default=None,
        help="Index type to query (overrides config)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"elquery {_get_version()}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    compile_cmd = sub.add_parser("compile", help="Print the compiled query document without sending it")
    compile_cmd.add_argument("options", help="Options JSON file, or '-' for stdin")
    compile_cmd.add_argument("--agg", action="store_true", help="Compile as an aggregation request")

    search_cmd = sub.add_parser("search", help="Run a search and print the normalized result")
    search_cmd.add_argument("options", help="Options JSON file, or '-' for stdin")

    agg_cmd = sub.add_parser("aggregate", help="Run an aggregation and print the normalized result")
    agg_cmd.add_argument("options", help="Options JSON file, or '-' for stdin")

    return parser


def _load_settings(args: argparse.Namespace) -> Any:
    from elquery.config.settings import load_settings

    backend: dict[str, Any] = {}
    if args.url:
        backend["url"] = args.url
    if args.index_type:
        backend["index_type"] = args.index_type

    overrides: dict[str, Any] = {}
    if backend:
        overrides["backend"] = backend
    if args.log_level:
        overrides["observability"] = {"log_level": args.log_level}

    return load_settings(args.config, **overrides)


def _read_options(source: str) -> dict[str, Any]:
    text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    options = json.loads(text) if text.strip() else {}
    if not isinstance(options, dict):
        raise ValueError("options must be a JSON object")
    return options


def _dispatch(args: argparse.Namespace, settings: Any, options: dict[str, Any]) -> Any:
    from elquery.client.client import SearchClient

    client = SearchClient(settings)
    if args.command == "compile":
        return client.compile_agg(options) if args.agg else client.compile_search(options)
    if args.command == "search":
        return client.search(options).model_dump()
    return client.aggregate(options).model_dump()


def _get_version() -> str:
    """Get the package version."""
    try:
        from elquery import __version__

        return __version__
    except ImportError:
        return "unknown"


if __name__ == "__main__":
    sys.exit(main())
