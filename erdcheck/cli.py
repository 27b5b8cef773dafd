"""CLI entrypoint for the erdcheck command."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigurationError, load_config
from .llm.runner import GeneratorError
from .logging import configure_logging
from .orchestrator import MaterialChangeDetected, Orchestrator, raise_for_change


def _add_verbose_flag(parser: argparse.ArgumentParser, *, on_subcommand: bool = False) -> None:
    """Accept ``-v/--verbose`` both before and after the ``check`` subcommand.

    The subcommand copy leaves the attribute unset when absent so it cannot
    reset a flag given before the subcommand name.
    """
    default = argparse.SUPPRESS if on_subcommand else False
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default,
        help="Log debug detail such as skipped files and prompt size.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="erdcheck",
        description="Fail the build when the stored Mermaid ERD no longer matches the schema.",
    )
    _add_verbose_flag(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check",
        help="Generate an ERD from schema sources and compare it with the stored one.",
    )
    _add_verbose_flag(check_parser, on_subcommand=True)
    check_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )
    check_parser.add_argument(
        "--output-path",
        help="ERD file to compare against, relative to the repository root.",
    )
    check_parser.add_argument(
        "--schema-globs",
        help="Comma-separated glob patterns selecting schema sources.",
    )
    check_parser.add_argument("--model", help="Chat-completion model identifier.")
    check_parser.add_argument(
        "--include-models",
        action="store_true",
        default=None,
        help="Also collect ORM model files (app/models, models.py, *.entity.ts, ...).",
    )
    check_parser.add_argument(
        "--base-url",
        help="Base URL of an OpenAI-compatible API (defaults to api.openai.com).",
    )
    check_parser.add_argument(
        "--log-file",
        type=Path,
        help="Also write logs to this file.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for erdcheck commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=getattr(args, "log_file", None))

    if args.command != "check":  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")

    overrides = {
        "output_path": args.output_path,
        "schema_globs": args.schema_globs,
        "model": args.model,
        "include_models": args.include_models,
        "base_url": args.base_url,
    }
    try:
        config = load_config(args.path, overrides)
        outcome = Orchestrator().run_check(config)
        raise_for_change(outcome)
    except MaterialChangeDetected as exc:
        print(exc.summary)
        parser.exit(1, "ERD out of date\n")
    except ConfigurationError as exc:
        parser.exit(1, f"erdcheck: {exc}\n")
    except GeneratorError as exc:
        parser.exit(1, f"erdcheck: {exc}\nRun with --verbose for more details.\n")
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")

    print("ERD up to date")


if __name__ == "__main__":
    main(sys.argv[1:])
