"""Conversation history, token count and checkpoints for one session."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from stepwise.context.checkpoint import Checkpoint
from stepwise.context.history_log import HistoryLog
from stepwise.core.llm.provider import Message
from stepwise.logging import get_logger

log = get_logger("context")


class ContextStore:
    """Owns the ordered message history of a session.

    History only grows through ``add_message(s)``; the whole list is swapped
    in one step by ``replace_history``, ``restore_checkpoint`` and ``clear``,
    so readers always see either the old or the new history.

    When a HistoryLog is attached every mutation is mirrored to it. Log write
    failures are logged and do not affect the in-memory state.
    """

    def __init__(self, history_log: HistoryLog | None = None) -> None:
        self._lock = threading.RLock()
        self._history: list[Message] = []
        self._token_count = 0
        self._checkpoints: dict[int, Checkpoint] = {}
        self._log = history_log

    # -- history ---------------------------------------------------------

    def get_history(self) -> list[Message]:
        """A copy of the history, oldest first."""
        with self._lock:
            return list(self._history)

    def __len__(self) -> int:
        return len(self._history)

    def add_message(self, message: Message) -> None:
        self.add_messages([message])

    def add_messages(self, messages: Iterable[Message]) -> None:
        batch = list(messages)
        if not batch:
            return
        with self._lock:
            self._history = [*self._history, *batch]
            self._persist(lambda hl: hl.append_messages(batch))

    def replace_history(self, messages: Iterable[Message]) -> None:
        """Swap the whole history (compaction)."""
        new_history = list(messages)
        with self._lock:
            self._history = new_history
            self._persist(lambda hl: hl.write_replacement(new_history, self._token_count))

    def clear(self) -> None:
        """Drop history, token count and checkpoints."""
        with self._lock:
            self._history = []
            self._token_count = 0
            self._checkpoints.clear()
            self._persist(lambda hl: hl.truncate())

    # -- tokens ----------------------------------------------------------

    def get_token_count(self) -> int:
        return self._token_count

    def set_token_count(self, count: int) -> None:
        with self._lock:
            if count == self._token_count:
                return
            self._token_count = max(0, count)
            self._persist(lambda hl: hl.append_token_count(self._token_count))

    # -- checkpoints -----------------------------------------------------

    def create_checkpoint(self, checkpoint_id: int) -> Checkpoint:
        """Snapshot the current history; an existing id is overwritten."""
        with self._lock:
            checkpoint = Checkpoint(
                checkpoint_id=checkpoint_id,
                messages=tuple(self._history),
                token_count=self._token_count,
            )
            self._checkpoints[checkpoint_id] = checkpoint
            return checkpoint

    def restore_checkpoint(self, checkpoint_id: int) -> bool:
        """Roll history back to a checkpoint.

        Checkpoints taken after the restored one are discarded. Returns
        False, leaving state untouched, if the id is unknown.
        """
        with self._lock:
            checkpoint = self._checkpoints.get(checkpoint_id)
            if checkpoint is None:
                log.debug("Unknown checkpoint %s", checkpoint_id)
                return False

            self._history = list(checkpoint.messages)
            self._token_count = checkpoint.token_count
            self._checkpoints = {
                cid: cp for cid, cp in self._checkpoints.items() if cid <= checkpoint_id
            }
            self._persist(lambda hl: hl.write_replacement(self._history, self._token_count))
            return True

    def get_checkpoint(self, checkpoint_id: int) -> Checkpoint | None:
        return self._checkpoints.get(checkpoint_id)

    def list_checkpoints(self) -> list[Checkpoint]:
        with self._lock:
            return sorted(self._checkpoints.values(), key=lambda cp: cp.checkpoint_id)

    # -- persistence -----------------------------------------------------

    def restore(self) -> bool:
        """Load history from the attached log. Returns True if anything was restored."""
        if self._log is None or not self._log.exists():
            return False
        state = self._log.replay()
        with self._lock:
            self._history = state.messages
            self._token_count = state.token_count
            self._checkpoints.clear()
        log.info("Restored %d messages from %s", len(state.messages), self._log.path)
        return bool(state.messages)

    def _persist(self, write) -> None:
        if self._log is None:
            return
        try:
            write(self._log)
        except OSError as e:
            log.warning("Failed to write history log %s: %s", self._log.path, e)
