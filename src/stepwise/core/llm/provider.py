"""LLM provider protocol and conversation types."""

from __future__ import annotations

import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class Role(Enum):
    """Message role in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True, slots=True)
class ToolCallRequest:
    """A model-requested tool invocation.

    Attributes:
        id: Provider-assigned call id, echoed back on the tool result
        tool_name: Name the registry resolves
        raw_arguments: Argument payload exactly as streamed by the model
    """

    id: str
    tool_name: str
    raw_arguments: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "tool_name": self.tool_name, "raw_arguments": self.raw_arguments}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCallRequest:
        return cls(
            id=data["id"],
            tool_name=data["tool_name"],
            raw_arguments=data.get("raw_arguments", ""),
        )


@dataclass(frozen=True, slots=True)
class Message:
    """A message in an LLM conversation.

    Attributes:
        role: The role (system, user, assistant, tool)
        content: Text content; None for an assistant turn that only calls tools
        tool_calls: Calls requested by an assistant turn, in stream order
        tool_call_id: For TOOL messages, the call this result answers
        timestamp: Creation time (epoch seconds)
    """

    role: Role
    content: str | None = None
    tool_calls: tuple[ToolCallRequest, ...] = ()
    tool_call_id: str | None = None
    timestamp: float = field(default_factory=time.time)

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(
        cls, content: str | None, tool_calls: tuple[ToolCallRequest, ...] = ()
    ) -> Message:
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls)

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> Message:
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.tool_calls:
            data["tool_calls"] = [call.to_dict() for call in self.tool_calls]
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            role=Role(data["role"]),
            content=data.get("content"),
            tool_calls=tuple(
                ToolCallRequest.from_dict(call) for call in data.get("tool_calls", [])
            ),
            tool_call_id=data.get("tool_call_id"),
            timestamp=data.get("timestamp", time.time()),
        )


@dataclass(slots=True)
class ToolCallDelta:
    """A fragment of a streamed tool call.

    The first fragment of a call normally carries ``id`` and ``name``;
    later fragments carry only pieces of ``arguments``.
    """

    index: int | None = None
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass(slots=True)
class Usage:
    """Token usage reported by the provider for one turn."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(slots=True)
class StreamChunk:
    """A chunk from a streaming LLM response."""

    text: str = ""
    reasoning: str = ""
    tool_call_deltas: list[ToolCallDelta] = field(default_factory=list)
    usage: Usage | None = None
    finish_reason: str | None = None


@runtime_checkable
class LLMProvider(Protocol):
    """Streaming chat abstraction consumed by the engine and the compactor."""

    @property
    def model(self) -> str:
        """The model identifier being used."""
        ...

    def generate_stream(
        self,
        system_prompt: str,
        history: list[Message],
        tool_schemas: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """Stream one model turn.

        Args:
            system_prompt: Instruction sent ahead of the history
            history: Conversation so far, oldest first
            tool_schemas: OpenAI-style function schemas; empty disables tools

        Yields:
            StreamChunk objects as they arrive. End of stream ends the turn.
        """
        ...
