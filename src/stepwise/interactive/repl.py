"""Interactive REPL."""

from __future__ import annotations

import asyncio
import signal
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markup import escape

from stepwise import __version__
from stepwise.interactive.commands import SlashCommandHandler

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    from stepwise.engine.result import ExecutionResult
    from stepwise.interactive.render import ConsoleRenderer
    from stepwise.runtime import Runtime


@contextmanager
def interrupt_on_sigint(runtime: Runtime) -> Iterator[None]:
    """Route Ctrl-C to ``engine.interrupt()`` while a task runs."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, runtime.engine.interrupt)
    except (NotImplementedError, RuntimeError):
        # No signal handlers on this platform; Ctrl-C cancels the task instead
        yield
        return
    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)


async def run_task(
    runtime: Runtime, text: str, console: Console, renderer: ConsoleRenderer | None = None
) -> ExecutionResult:
    """Run one task, printing the outcome."""
    with interrupt_on_sigint(runtime):
        result = await runtime.engine.run(text)
    if renderer is not None:
        renderer.finish_line()

    metrics = runtime.engine.metrics
    if result.interrupted:
        console.print("[yellow]Task interrupted.[/yellow]")
    elif not result.success:
        console.print(f"[red]Error: {escape(result.error or 'unknown error')}[/red]")
    if metrics is not None:
        console.print(f"[dim]{escape(metrics.summary())}[/dim]")
    return result


class InteractiveRepl:
    """Prompt loop: slash commands or tasks for the engine."""

    def __init__(
        self,
        runtime: Runtime,
        console: Console,
        renderer: ConsoleRenderer | None = None,
        history_file: Path | None = None,
    ) -> None:
        self.runtime = runtime
        self.console = console
        self.renderer = renderer
        self.commands = SlashCommandHandler(runtime, console)

        history = FileHistory(str(history_file)) if history_file else None
        self.session: PromptSession[str] = PromptSession(
            history=history,
            auto_suggest=AutoSuggestFromHistory(),
        )

    async def run(self) -> None:
        self.console.print(f"[bold]stepwise[/bold] v{__version__} - {self.runtime.llm.model}")
        self.console.print(f"[dim]{self.runtime.work_dir}  session {self.runtime.session.id}[/dim]")
        self.console.print("Type [bold]/help[/bold] for commands, [bold]/exit[/bold] to quit.\n")

        while True:
            try:
                line = (await self.session.prompt_async("> ")).strip()
            except KeyboardInterrupt:
                continue
            except EOFError:
                break
            if not line:
                continue

            if line.startswith("/"):
                if not await self.commands.handle(line):
                    break
                continue

            await run_task(self.runtime, line, self.console, self.renderer)
