"""Checkpoints: snapshots of conversation history for undo/restore."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from stepwise.core.llm.provider import Message


@dataclass(frozen=True)
class Checkpoint:
    """Snapshot of the history list and token count at one point.

    Attributes:
        checkpoint_id: Integer id, the engine uses step numbers
        messages: Copy of the history when the checkpoint was taken
        token_count: Context token count at that moment
        created_at: Unix timestamp of creation
    """

    checkpoint_id: int
    messages: tuple[Message, ...]
    token_count: int = 0
    created_at: float = field(default_factory=time.time)

    @property
    def message_count(self) -> int:
        return len(self.messages)

