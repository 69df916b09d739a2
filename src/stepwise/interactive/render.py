"""Terminal rendering of engine updates."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape

from stepwise.engine.events import EngineUpdate, UpdateKind

_PREVIEW_CHARS = 400


def _preview(text: str, limit: int = _PREVIEW_CHARS) -> str:
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + f"... ({len(text) - limit} more chars)"


class ConsoleRenderer:
    """Event sink that prints engine updates as they arrive."""

    def __init__(self, console: Console, show_reasoning: bool = False) -> None:
        self.console = console
        self.show_reasoning = show_reasoning
        self._mid_line = False

    def __call__(self, update: EngineUpdate) -> None:
        payload = update.payload
        match update.kind:
            case UpdateKind.TEXT_CHUNK:
                self.console.print(payload["text"], end="", markup=False, highlight=False)
                self._mid_line = True
            case UpdateKind.REASONING_CHUNK if self.show_reasoning:
                self.console.print(payload["text"], end="", style="dim italic", markup=False)
                self._mid_line = True
            case UpdateKind.TOOL_CALL:
                self._line(
                    f"[cyan]> {escape(payload['name'])}[/cyan] "
                    f"[dim]{escape(_preview(payload['arguments'], 200))}[/dim]"
                )
            case UpdateKind.TOOL_RESULT:
                style = "green" if payload["ok"] else "red"
                self._line(f"[{style}]{escape(_preview(payload['content']))}[/{style}]")
            case UpdateKind.STATUS:
                style = "yellow" if payload.get("level") == "warning" else "blue"
                self._line(f"[{style}]{escape(payload['message'])}[/{style}]")
            case UpdateKind.COMPACTION_BEGIN:
                self._line(f"[dim]Compacting context ({payload['tokens']} tokens)...[/dim]")
            case UpdateKind.COMPACTION_END:
                if payload["compacted"]:
                    self._line(
                        f"[dim]Compacted {payload['messages_before']} messages "
                        f"to {payload['messages_after']}[/dim]"
                    )
                elif payload["error"]:
                    self._line(f"[yellow]Compaction failed: {escape(payload['error'])}[/yellow]")
            case UpdateKind.STEP_INTERRUPTED:
                self._line("[yellow]Interrupted[/yellow]")
            case UpdateKind.STEP_END:
                self.finish_line()

    def _line(self, markup: str) -> None:
        self.finish_line()
        self.console.print(markup, highlight=False)

    def finish_line(self) -> None:
        """End a line left open by streamed text."""
        if self._mid_line:
            self.console.print()
            self._mid_line = False
