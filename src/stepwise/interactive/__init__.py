"""Interactive terminal front end."""

from stepwise.interactive.commands import SlashCommandHandler
from stepwise.interactive.render import ConsoleRenderer
from stepwise.interactive.repl import InteractiveRepl, run_task

__all__ = [
    "ConsoleRenderer",
    "InteractiveRepl",
    "SlashCommandHandler",
    "run_task",
]
