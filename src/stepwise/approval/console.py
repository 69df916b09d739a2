"""Terminal confirmation prompts."""

from __future__ import annotations

from prompt_toolkit import PromptSession
from rich.console import Console
from rich.markup import escape

from stepwise.approval.interaction import ConfirmationStatus

_ANSWERS = {
    "y": ConfirmationStatus.APPROVED,
    "yes": ConfirmationStatus.APPROVED,
    "a": ConfirmationStatus.APPROVED_FOR_SESSION,
    "always": ConfirmationStatus.APPROVED_FOR_SESSION,
    "n": ConfirmationStatus.REJECTED,
    "no": ConfirmationStatus.REJECTED,
    "m": ConfirmationStatus.NEEDS_MODIFICATION,
}


def parse_answer(text: str) -> ConfirmationStatus:
    """Map a typed answer to a status; anything unrecognized rejects."""
    return _ANSWERS.get(text.strip().lower(), ConfirmationStatus.REJECTED)


class ConsoleInteraction:
    """Asks for confirmation on the terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self._session: PromptSession[str] | None = None

    async def request_confirmation(self, prompt: str) -> ConfirmationStatus:
        if self._session is None:
            self._session = PromptSession()
        self.console.print(f"[bold yellow]{escape(prompt)}[/bold yellow]", highlight=False)
        try:
            answer = await self._session.prompt_async("[y]es / [a]lways this session / [n]o > ")
        except (KeyboardInterrupt, EOFError):
            self.console.print("[red]Rejected[/red]")
            return ConfirmationStatus.REJECTED
        return parse_answer(answer)
