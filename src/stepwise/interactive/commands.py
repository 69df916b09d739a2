"""Slash command handlers for interactive mode."""

from __future__ import annotations

import shlex
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from stepwise.runtime import Runtime


class SlashCommandHandler:
    """Handles built-in slash commands and dispatches custom commands.

    ``handle`` returns False when the REPL should exit.
    """

    def __init__(self, runtime: Runtime, console: Console) -> None:
        self.runtime = runtime
        self.console = console

    async def handle(self, line: str) -> bool:
        try:
            parts = shlex.split(line)
        except ValueError as e:
            self.console.print(f"[red]Cannot parse command: {escape(str(e))}[/red]")
            return True
        if not parts:
            return True

        cmd = parts[0].lower()
        args = parts[1:]
        if cmd in ("/exit", "/quit"):
            return False

        handlers = {
            "/help": self._cmd_help,
            "/clear": self._cmd_clear,
            "/compact": self._cmd_compact,
            "/undo": self._cmd_undo,
            "/sessions": self._cmd_sessions,
            "/yolo": self._cmd_yolo,
        }
        handler = handlers.get(cmd)
        if handler:
            await handler(args)
        elif self.runtime.commands.resolve(cmd[1:]):
            await self._run_custom(cmd[1:], args)
        else:
            self.console.print(f"[red]Unknown command: {escape(cmd)}[/red]")
            self.console.print("Type [bold]/help[/bold] for available commands.")
        return True

    async def _cmd_help(self, args: list[str]) -> None:
        table = Table(title="Available Commands")
        table.add_column("Command", style="bold")
        table.add_column("Description")

        for cmd, desc in (
            ("/help", "Show this help message"),
            ("/clear", "Forget the conversation history"),
            ("/compact", "Summarize older history now"),
            ("/undo", "Roll back the last task"),
            ("/sessions", "List saved sessions"),
            ("/yolo [on|off]", "Toggle auto-approval of tool actions"),
            ("/exit", "Quit"),
        ):
            table.add_row(cmd, desc)

        commands = self.runtime.commands
        for name in commands.names():
            command = commands.resolve(name)
            table.add_row(f"/{command.usage or name}", command.description)

        self.console.print(table)

    async def _cmd_clear(self, args: list[str]) -> None:
        self.runtime.context.clear()
        self.console.print("[dim]History cleared.[/dim]")

    async def _cmd_compact(self, args: list[str]) -> None:
        compactor = self.runtime.engine.compactor
        if compactor is None:
            self.console.print("[yellow]Compaction is not available.[/yellow]")
            return
        outcome = await compactor.compact_store(self.runtime.context)
        if outcome.compacted:
            self.console.print(
                f"[dim]Compacted {outcome.messages_before} messages "
                f"to {outcome.messages_after}.[/dim]"
            )
        elif outcome.error:
            self.console.print(f"[yellow]Compaction failed: {escape(outcome.error)}[/yellow]")
        else:
            self.console.print("[dim]Nothing to compact.[/dim]")

    async def _cmd_undo(self, args: list[str]) -> None:
        if self.runtime.context.restore_checkpoint(0):
            self.console.print("[dim]Rolled back to before the last task.[/dim]")
        else:
            self.console.print("[yellow]Nothing to undo.[/yellow]")

    async def _cmd_sessions(self, args: list[str]) -> None:
        sessions = self.runtime.session_store.list_sessions()
        if not sessions:
            self.console.print("[dim]No saved sessions.[/dim]")
            return
        table = Table(title="Sessions")
        table.add_column("Session ID")
        table.add_column("Working directory")
        table.add_column("Last activity")
        current = self.runtime.session.id
        for session in sessions:
            marker = " *" if session.id == current else ""
            table.add_row(
                session.id + marker,
                str(session.work_dir),
                session.last_activity_at.strftime("%Y-%m-%d %H:%M"),
            )
        self.console.print(table)

    async def _cmd_yolo(self, args: list[str]) -> None:
        gate = self.runtime.approval_gate
        if args and args[0].lower() in ("on", "off"):
            enabled = args[0].lower() == "on"
        else:
            enabled = not gate.is_auto_approve_mode()
        gate.set_auto_approve_mode(enabled)
        self.console.print(f"Auto-approve: [bold]{'on' if enabled else 'off'}[/bold]")

    async def _run_custom(self, name: str, args: list[str]) -> None:
        outcome = await self.runtime.commands.run(name, args)
        if outcome.text:
            self.console.print(outcome.text, markup=False, highlight=False)
        if not outcome.ok:
            self.console.print(f"[red]/{escape(name)} failed[/red]")
