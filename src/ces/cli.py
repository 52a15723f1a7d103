"""
CES command line interface.

Each invocation performs one lifecycle operation. Sessions started by an
earlier invocation are picked up again from the current-session file.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from rich.console import Console

from . import __version__
from .managers.lifecycle import SessionLifecycle
from .utils.config import CesConfig, load_config
from .utils.display import SessionReporter
from .utils.errors import CesError
from .utils.logging import get_logger, setup_logging


logger = get_logger("ces.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ces",
        description="CES - session lifecycle management for Claude projects"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--project-root", help="Project directory (default: current directory)")
    parser.add_argument("--config", action="append", default=[], help="Additional configuration file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    start = subparsers.add_parser("start-session", help="Start a new session")
    start.add_argument("--force", action="store_true", help="Replace an active session")

    checkpoint = subparsers.add_parser("checkpoint-session", help="Checkpoint the active session")
    checkpoint.add_argument("-m", "--message", help="Checkpoint message")

    close = subparsers.add_parser("close-session", help="Close the active session")
    close.add_argument(
        "--save",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Take a final checkpoint before closing"
    )

    subparsers.add_parser("status", help="Show the active session")

    clean = subparsers.add_parser("clean-history", help="Back up and remove session history")
    clean.add_argument("--force", action="store_true", help="Confirm the cleanup")

    return parser


def load_cli_config(args: argparse.Namespace) -> CesConfig:
    extra = {}
    if args.project_root:
        extra["project_root"] = args.project_root
    if args.debug:
        extra["debug"] = True
        extra["logging"] = {"level": "DEBUG"}
    return load_config(config_paths=args.config, extra_config=extra or None)


async def dispatch(args: argparse.Namespace, lifecycle: SessionLifecycle) -> int:
    """Run the selected command; returns the process exit code."""
    if args.command == "start-session":
        await lifecycle.resume_session()
        await lifecycle.start_session(force=args.force)
    elif args.command == "checkpoint-session":
        await lifecycle.resume_session()
        await lifecycle.create_checkpoint(args.message)
    elif args.command == "close-session":
        await lifecycle.resume_session()
        await lifecycle.close_session(save=args.save)
    elif args.command == "status":
        await lifecycle.resume_session()
        lifecycle.reporter.status(lifecycle.get_session_status(), lifecycle.get_current_session())
    elif args.command == "clean-history":
        await lifecycle.clean_history(force=args.force)
    else:
        lifecycle.reporter.error(f"Unknown command: {args.command}")
        return 1
    return 0


async def main_async(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    reporter = SessionReporter()
    try:
        config = load_cli_config(args)
        setup_logging(
            app_name=config.app_name,
            log_level=config.logging.level,
            log_dir=config.logging.directory,
            enable_json=config.logging.format == "json",
            console_level=config.logging.console_level,
            max_bytes=config.logging.max_size,
            backup_count=config.logging.backup_count
        )
        lifecycle = SessionLifecycle(config, reporter=reporter)
        return await dispatch(args, lifecycle)
    except CesError as e:
        logger.error("command_failed", command=args.command, code=e.code, error=e.message)
        reporter.error(e.message)
        return 1


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    try:
        sys.exit(asyncio.run(main_async(argv)))
    except KeyboardInterrupt:
        Console(stderr=True).print("\nInterrupted")
        sys.exit(130)


__all__ = [
    'build_parser',
    'dispatch',
    'main',
]
