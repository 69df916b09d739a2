"""Updates emitted by the engine while a run progresses."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class UpdateKind(Enum):
    """Types of engine updates."""

    STEP_BEGIN = "step_begin"
    STEP_END = "step_end"
    STEP_INTERRUPTED = "step_interrupted"
    TEXT_CHUNK = "text_chunk"
    REASONING_CHUNK = "reasoning_chunk"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    TOKEN_USAGE = "token_usage"
    STATUS = "status"
    COMPACTION_BEGIN = "compaction_begin"
    COMPACTION_END = "compaction_end"


@dataclass(frozen=True, slots=True)
class EngineUpdate:
    """One update sent to front ends.

    Payloads by kind:
        STEP_BEGIN / STEP_END: {"step": int}
        TEXT_CHUNK / REASONING_CHUNK: {"text": str}
        TOOL_CALL: {"id", "name", "arguments"}
        TOOL_RESULT: {"id", "name", "ok", "content"}
        TOKEN_USAGE: {"prompt_tokens", "completion_tokens", "total_tokens", "context_tokens"}
        STATUS: {"message": str, "level": "info" | "warning"}
        COMPACTION_END: {"compacted", "messages_before", "messages_after", "error"}
    """

    kind: UpdateKind
    session_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


EventSink = Callable[[EngineUpdate], None]
