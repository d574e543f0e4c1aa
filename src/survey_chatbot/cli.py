"""Command line entry-point for the survey chatbot."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import Optional

from .api import add_server_arguments, run_api_server
from .chat_cli import run_chat
from .config import AppSettings
from .observability import initialize_logging


def _add_budget_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--max-chars-per-response",
        type=int,
        help=(
            "Maximum characters for a single answer. Overrides "
            "SURVEY_MAX_CHARS_PER_RESPONSE."
        ),
    )
    parser.add_argument(
        "--max-total-chars",
        type=int,
        help=(
            "Maximum characters across the follow-up answers. Overrides "
            "SURVEY_MAX_TOTAL_CHARS."
        ),
    )


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="survey-chatbot",
        description="Walk a visitor through a short conversational survey",
    )
    subparsers = parser.add_subparsers(dest="command")

    chat_parser = subparsers.add_parser(
        "chat",
        help="Run the survey in this terminal (default).",
    )
    _add_budget_arguments(chat_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Serve the survey over HTTP.",
    )
    add_server_arguments(serve_parser)
    _add_budget_arguments(serve_parser)

    arg_list = list(argv) if argv is not None else sys.argv[1:]
    if not arg_list or arg_list[0].startswith("-"):
        if not any(flag in arg_list for flag in ("-h", "--help")):
            arg_list = ["chat", *arg_list]
    return parser.parse_args(arg_list)


def _apply_overrides(
    settings: AppSettings,
    args: argparse.Namespace,
) -> AppSettings:
    per_response = getattr(args, "max_chars_per_response", None)
    if per_response is not None:
        if per_response < 1:
            raise SystemExit("--max-chars-per-response must be >= 1")
        settings = replace(settings, max_chars_per_response=per_response)
    total = getattr(args, "max_total_chars", None)
    if total is not None:
        if total < 1:
            raise SystemExit("--max-total-chars must be >= 1")
        settings = replace(settings, max_total_chars=total)
    return settings


def run_cli(argv: Optional[list[str]] = None) -> None:
    """Entry-point invoked from ``python -m survey_chatbot``."""

    args = _parse_args(argv)
    try:
        settings = AppSettings.load()
    except RuntimeError as exc:
        logging.basicConfig(level=logging.INFO)
        logging.error("Failed to load AppSettings: %s", exc)
        raise SystemExit(1) from exc
    settings = _apply_overrides(settings, args)
    initialize_logging(settings.log_level)

    if args.command == "serve":
        run_api_server(
            settings=settings,
            host=args.host,
            port=args.port,
            allow_origins=args.allow_origin,
            log_level=args.log_level,
        )
        return

    asyncio.run(run_chat(settings))


if __name__ == "__main__":  # pragma: no cover - manual execution hook
    run_cli()
