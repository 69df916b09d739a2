"""Shared test utilities for stepwise tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from types import SimpleNamespace
from typing import Any

from stepwise.approval.interaction import ConfirmationStatus
from stepwise.core.llm.provider import Message, StreamChunk, ToolCallDelta, Usage
from stepwise.tools.base import BaseTool, ToolParams, ToolResult

Turn = list[StreamChunk] | Exception | Callable[[], list[StreamChunk]]


def text_turn(text: str, usage: Usage | None = None) -> list[StreamChunk]:
    """A turn streaming ``text`` in two chunks."""
    half = len(text) // 2
    chunks = [StreamChunk(text=text[:half]), StreamChunk(text=text[half:])]
    if usage is not None:
        chunks.append(StreamChunk(usage=usage))
    return chunks


def tool_turn(*calls: tuple[str, str, str], text: str = "", usage: Usage | None = None) -> list[StreamChunk]:
    """A turn requesting ``(id, name, arguments)`` calls, arguments split across chunks."""
    chunks: list[StreamChunk] = []
    if text:
        chunks.append(StreamChunk(text=text))
    for index, (call_id, name, arguments) in enumerate(calls):
        half = len(arguments) // 2
        chunks.append(StreamChunk(tool_call_deltas=[
            ToolCallDelta(index=index, id=call_id, name=name, arguments=arguments[:half])
        ]))
        chunks.append(StreamChunk(tool_call_deltas=[
            ToolCallDelta(index=index, arguments=arguments[half:])
        ]))
    if usage is not None:
        chunks.append(StreamChunk(usage=usage))
    return chunks


class ScriptedLLM:
    """LLM provider replaying scripted turns.

    Each ``generate_stream`` call consumes the next turn. A turn may be a
    chunk list, an exception to raise, or a callable producing chunks.
    Requests are recorded in ``calls``.
    """

    def __init__(self, turns: list[Turn] | None = None, model: str = "test-model") -> None:
        self.turns = list(turns or [])
        self._model = model
        self.calls: list[dict[str, Any]] = []
        self.chunk_delay = 0.0

    @property
    def model(self) -> str:
        return self._model

    async def generate_stream(
        self,
        system_prompt: str,
        history: list[Message],
        tool_schemas: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[StreamChunk]:
        self.calls.append({
            "system_prompt": system_prompt,
            "history": list(history),
            "tool_schemas": list(tool_schemas or []),
        })
        if not self.turns:
            raise AssertionError("ScriptedLLM ran out of turns")
        turn = self.turns.pop(0)
        if isinstance(turn, Exception):
            raise turn
        if callable(turn):
            turn = turn()
        for chunk in turn:
            if self.chunk_delay:
                await asyncio.sleep(self.chunk_delay)
            yield chunk


class ScriptedInteraction:
    """HumanInteraction answering from a list; records every prompt."""

    def __init__(self, *answers: ConfirmationStatus | BaseException) -> None:
        self.answers = list(answers)
        self.prompts: list[str] = []

    async def request_confirmation(self, prompt: str) -> ConfirmationStatus:
        self.prompts.append(prompt)
        answer = self.answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer


class EchoParams(ToolParams):
    text: str
    repeat: int = 1


class EchoTool(BaseTool[EchoParams]):
    """Returns its text; optionally requires approval."""

    name = "echo"
    description = "Echo text back"
    params_model = EchoParams

    def __init__(self, needs_approval: bool = False) -> None:
        self.needs_approval = needs_approval
        self.received: list[EchoParams] = []

    def approval_description(self, params: EchoParams) -> str:
        return f"Echo {params.text!r}"

    async def execute(self, params: EchoParams) -> ToolResult:
        self.received.append(params)
        return ToolResult.success(params.text * params.repeat)


class SleepParams(ToolParams):
    seconds: float


class SleepTool(BaseTool[SleepParams]):
    name = "sleep"
    description = "Sleep for a while"
    params_model = SleepParams
    timeout = 0.05

    async def execute(self, params: SleepParams) -> ToolResult:
        await asyncio.sleep(params.seconds)
        return ToolResult.success("slept")


class BrokenTool(BaseTool[EchoParams]):
    name = "broken"
    description = "Always raises"
    params_model = EchoParams

    async def execute(self, params: EchoParams) -> ToolResult:
        raise RuntimeError("disk on fire")


class RecordingSink:
    """Event sink collecting engine updates."""

    def __init__(self) -> None:
        self.updates = []

    def __call__(self, update) -> None:
        self.updates.append(update)

    def kinds(self) -> list:
        return [u.kind for u in self.updates]


def litellm_chunk(
    content: str | None = None,
    *,
    tool_calls: list | None = None,
    reasoning: str | None = None,
    finish_reason: str | None = None,
    usage: dict[str, int] | None = None,
    choices: bool = True,
) -> SimpleNamespace:
    """A streaming chunk shaped like litellm's ModelResponseStream."""
    delta = SimpleNamespace(content=content, tool_calls=tool_calls, reasoning_content=reasoning)
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=delta, finish_reason=finish_reason)] if choices else [],
        usage=SimpleNamespace(**usage) if usage else None,
    )


def litellm_tool_call(
    index: int, id: str | None = None, name: str | None = None, arguments: str | None = None
) -> SimpleNamespace:
    return SimpleNamespace(
        index=index, id=id, function=SimpleNamespace(name=name, arguments=arguments)
    )


async def async_iter(items):
    for item in items:
        yield item
