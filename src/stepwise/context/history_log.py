"""JSONL log of a session's messages.

One JSON record per line:
    {"type": "message", "data": {...}}   a message appended to history
    {"type": "token", "count": N}        the context token count changed

Appends go to the end of the file. When history is replaced (compaction,
checkpoint restore) the file is rewritten through a temp file, so it holds
only the current history and never a half-written one.

Replaying the log reconstructs history after a process restart.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

from stepwise.core.llm.provider import Message
from stepwise.logging import get_logger

log = get_logger("history")

HISTORY_FILENAME = "history.jsonl"


def _message_record(message: Message) -> dict:
    return {"type": "message", "data": message.to_dict()}


@dataclass
class ReplayedHistory:
    """State reconstructed from a history log."""

    messages: list[Message] = field(default_factory=list)
    token_count: int = 0


class HistoryLog:
    """Writes and replays a session's history log."""

    def __init__(self, path: Path) -> None:
        self.path = path

    @staticmethod
    def _dump(f, records: list[dict]) -> None:
        for record in records:
            f.write(json.dumps(record, ensure_ascii=False))
            f.write("\n")

    def _write(self, records: list[dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            self._dump(f, records)

    def append_messages(self, messages: list[Message]) -> None:
        self._write([_message_record(m) for m in messages])

    def append_token_count(self, count: int) -> None:
        self._write([{"type": "token", "count": count}])

    def write_replacement(self, messages: list[Message], token_count: int) -> None:
        """Rewrite the log so it holds exactly ``messages``."""
        records = [_message_record(m) for m in messages]
        records.append({"type": "token", "count": token_count})

        temp_path = self.path.with_name(f"{self.path.name}.tmp")
        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                self._dump(f, records)
            temp_path.replace(self.path)
        except OSError:
            if temp_path.exists():
                temp_path.unlink()
            raise

    def truncate(self) -> None:
        if self.path.exists():
            self.path.write_text("", encoding="utf-8")

    def exists(self) -> bool:
        return self.path.exists() and self.path.stat().st_size > 0

    def replay(self) -> ReplayedHistory:
        """Rebuild history from the log; corrupt lines are skipped."""
        state = ReplayedHistory()
        if not self.path.exists():
            return state

        with open(self.path, encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = json.loads(line)
                    match record.get("type"):
                        case "message":
                            state.messages.append(Message.from_dict(record["data"]))
                        case "token":
                            state.token_count = int(record["count"])
                        case other:
                            log.warning("%s:%d: unknown record type %r", self.path, lineno, other)
                except (ValueError, KeyError, TypeError, AttributeError) as e:
                    log.warning("%s:%d: skipping corrupt record: %s", self.path, lineno, e)

        return state
