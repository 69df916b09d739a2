"""Command-line interface for stepwise."""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from stepwise import __version__
from stepwise.errors import StepwiseError
from stepwise.logging import get_logger, setup_logging

log = get_logger("cli")


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="stepwise",
        description="Step-driven coding agent with approval-gated tools",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (can be repeated)",
    )
    parser.add_argument(
        "-C", "--work-dir",
        type=Path,
        default=Path.cwd(),
        help="Working directory (default: current directory)",
    )
    parser.add_argument(
        "-p", "--prompt",
        help="Run a single task and exit",
    )
    parser.add_argument(
        "-m", "--model",
        help="Model id, overriding the configured one",
    )
    parser.add_argument(
        "--yolo",
        action="store_true",
        help="Approve every tool action without asking",
    )
    parser.add_argument(
        "--session",
        help="Resume a specific session id",
    )
    parser.add_argument(
        "--show-reasoning",
        action="store_true",
        help="Print reasoning text streamed by the model",
    )
    return parser


async def _main(parsed: argparse.Namespace, console: Console) -> int:
    from stepwise.approval.console import ConsoleInteraction
    from stepwise.config import load_config
    from stepwise.interactive import ConsoleRenderer, InteractiveRepl, run_task
    from stepwise.runtime import build_runtime

    config = load_config(parsed.work_dir)
    if parsed.verbose:
        config.logging.verbose = parsed.verbose
    if parsed.model:
        config.llm.model = parsed.model
    if parsed.yolo:
        config.approval.yolo = True
    setup_logging(config.logging)

    renderer = ConsoleRenderer(console, show_reasoning=parsed.show_reasoning)
    runtime = build_runtime(
        parsed.work_dir,
        config,
        interaction=ConsoleInteraction(console),
        event_sink=renderer,
        session_id=parsed.session,
    )
    log.info("Session %s in %s", runtime.session.id, runtime.work_dir)

    await runtime.start()
    try:
        if parsed.prompt:
            result = await run_task(runtime, parsed.prompt, console, renderer)
            return 0 if result.success else 1

        history_file = runtime.session_store.session_dir(runtime.session.id) / "prompt_history"
        await InteractiveRepl(runtime, console, renderer, history_file).run()
        return 0
    finally:
        await runtime.close()


def run_cli(args: Sequence[str]) -> int:
    """Run the CLI with the given arguments."""
    parsed = create_parser().parse_args(args)
    console = Console()
    try:
        return asyncio.run(_main(parsed, console))
    except StepwiseError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 2
    except KeyboardInterrupt:
        return 130
