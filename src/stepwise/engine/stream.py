"""Assembly of one streamed model turn."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from stepwise.core.llm.provider import StreamChunk, ToolCallDelta, ToolCallRequest, Usage
from stepwise.logging import get_logger

log = get_logger("stream")


@dataclass
class _PendingCall:
    index: int | None = None
    id: str | None = None
    name: str | None = None
    arguments: list[str] = field(default_factory=list)


class StreamAccumulator:
    """Collects text, reasoning, tool-call fragments and usage of one turn.

    A fragment with an ``index`` belongs to the call at that index. Without
    an index, a fragment carrying a new id or a name starts a new call and
    anything else extends the most recent call.
    """

    def __init__(self) -> None:
        self._text: list[str] = []
        self._reasoning: list[str] = []
        self._calls: list[_PendingCall] = []
        self.usage: Usage | None = None
        self.finish_reason: str | None = None

    @property
    def text(self) -> str:
        return "".join(self._text)

    @property
    def reasoning(self) -> str:
        return "".join(self._reasoning)

    def add(self, chunk: StreamChunk) -> None:
        if chunk.text:
            self._text.append(chunk.text)
        if chunk.reasoning:
            self._reasoning.append(chunk.reasoning)
        for delta in chunk.tool_call_deltas:
            self._add_delta(delta)
        if chunk.usage is not None:
            self.usage = chunk.usage
        if chunk.finish_reason:
            self.finish_reason = chunk.finish_reason

    def _find_call(self, delta: ToolCallDelta) -> _PendingCall | None:
        if delta.index is not None:
            for call in self._calls:
                if call.index == delta.index:
                    return call
            return None
        if not self._calls:
            return None
        last = self._calls[-1]
        if delta.id and delta.id != last.id:
            return None
        if delta.name and not delta.id and last.name:
            return None
        return last

    def _add_delta(self, delta: ToolCallDelta) -> None:
        call = self._find_call(delta)
        if call is None:
            call = _PendingCall(index=delta.index)
            self._calls.append(call)
        if delta.id:
            call.id = delta.id
        if delta.name:
            call.name = delta.name
        if delta.arguments:
            call.arguments.append(delta.arguments)

    def tool_calls(self) -> list[ToolCallRequest]:
        """Completed calls in stream order, validated.

        Missing ids are generated; calls without a name or repeating an
        earlier id are dropped.
        """
        requests: list[ToolCallRequest] = []
        seen: set[str] = set()
        for call in self._calls:
            if not call.name:
                log.warning("Dropping tool call without a name (id=%s)", call.id)
                continue
            call_id = call.id or f"call_{uuid.uuid4().hex[:12]}"
            if call_id in seen:
                log.warning("Dropping duplicate tool call id %s (%s)", call_id, call.name)
                continue
            seen.add(call_id)
            arguments = "".join(call.arguments)
            if not arguments.strip():
                arguments = "{}"
            requests.append(ToolCallRequest(id=call_id, tool_name=call.name, raw_arguments=arguments))
        return requests
