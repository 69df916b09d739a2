"""Per-run counters."""

from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field


@dataclass
class TaskMetrics:
    """Steps, tokens and tool use for one run."""

    task: str = ""
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None
    steps: int = 0
    tokens: int = 0
    tool_calls: Counter[str] = field(default_factory=Counter)
    tool_failures: int = 0

    def record_step(self) -> None:
        self.steps += 1

    def record_tokens(self, tokens: int) -> None:
        self.tokens += tokens

    def record_tool(self, name: str, ok: bool) -> None:
        self.tool_calls[name] += 1
        if not ok:
            self.tool_failures += 1

    def finish(self) -> None:
        self.finished_at = time.monotonic()

    @property
    def duration(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    def summary(self) -> str:
        tools = ", ".join(f"{name}x{count}" for name, count in self.tool_calls.most_common())
        return (
            f"{self.steps} steps, {self.tokens} tokens, "
            f"{sum(self.tool_calls.values())} tool calls ({tools or 'none'}), "
            f"{self.duration:.1f}s"
        )
