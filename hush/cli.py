"""Command-line interface for the private lending shell."""
from __future__ import annotations

import argparse
import asyncio
import logging
import shlex
import sys

from .commands import CommandShell
from .config import load_config
from .errors import HushError
from .logging_setup import configure_logging
from .services import ActionOrchestrator

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="hush",
        description="Private lending shell: shielded balance, private positions",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Run a single command (after login) instead of the interactive shell",
    )
    return parser


async def _run(args: argparse.Namespace) -> int:
    """Build the shell and run one command or the interactive loop."""
    config = load_config(args.config)
    configure_logging(args.log_level, debug=config.debug)

    try:
        orchestrator = ActionOrchestrator.from_config(config)
    except HushError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    shell = CommandShell(orchestrator, config)
    if args.command:
        line = shlex.join(args.command)
        # One-shot commands other than the session ones need an active session.
        if args.command[0] not in ("login", "import", "forget", "help"):
            await shell.execute("login")
        await shell.execute(line)
        return 0

    await shell.run()
    return 0


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.log_level)
    sys.exit(asyncio.run(_run(args)))
