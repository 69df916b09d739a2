"""Tests for the tool invocation pipeline."""

from __future__ import annotations

import pytest

from stepwise.approval.gate import ApprovalGate
from stepwise.approval.interaction import ConfirmationStatus
from stepwise.core.llm.provider import ToolCallRequest
from stepwise.tools.pipeline import ArgumentError, ToolInvocationPipeline, parse_params
from stepwise.tools.registry import ToolRegistry
from tests.utils import (
    BrokenTool,
    EchoParams,
    EchoTool,
    ScriptedInteraction,
    SleepTool,
)


def make_pipeline(*tools, interaction=None, yolo=False, default_timeout=5.0):
    gate = ApprovalGate(interaction, yolo=yolo)
    return ToolInvocationPipeline(ToolRegistry(tools), gate, default_timeout=default_timeout)


class TestParseParams:
    def test_object(self) -> None:
        params = parse_params(EchoParams, '{"text": "hi", "repeat": 2}')
        assert params.text == "hi"
        assert params.repeat == 2

    def test_positional_array_maps_in_field_order(self) -> None:
        params = parse_params(EchoParams, '["hi", 3]')
        assert (params.text, params.repeat) == ("hi", 3)

    def test_too_many_positional_values(self) -> None:
        with pytest.raises(ArgumentError, match="at most 2"):
            parse_params(EchoParams, '["a", 1, 2]')

    def test_unknown_keys_ignored(self) -> None:
        params = parse_params(EchoParams, '{"text": "hi", "bogus": true}')
        assert params.text == "hi"

    def test_missing_required_field(self) -> None:
        with pytest.raises(ArgumentError):
            parse_params(EchoParams, "{}")

    def test_invalid_json(self) -> None:
        with pytest.raises(ArgumentError, match="invalid JSON"):
            parse_params(EchoParams, "[ls -la]")

    def test_scalar_rejected(self) -> None:
        with pytest.raises(ArgumentError, match="expected an object"):
            parse_params(EchoParams, '"hi"')


class TestInvoke:
    @pytest.mark.asyncio
    async def test_success(self) -> None:
        pipeline = make_pipeline(EchoTool())

        result = await pipeline.invoke(ToolCallRequest("c1", "echo", '{"text": "hi"}'))

        assert result.ok
        assert result.message == "hi"

    @pytest.mark.asyncio
    async def test_unknown_tool(self) -> None:
        pipeline = make_pipeline(EchoTool())

        result = await pipeline.invoke(ToolCallRequest("c1", "nope", "{}"))

        assert not result.ok
        assert result.error == "Tool not found: nope"

    @pytest.mark.asyncio
    async def test_malformed_arguments_are_repaired(self) -> None:
        tool = EchoTool()
        pipeline = make_pipeline(tool)

        result = await pipeline.invoke(ToolCallRequest("c1", "echo", "'ab', 2"))

        assert result.ok
        assert result.message == "abab"

    @pytest.mark.asyncio
    async def test_invalid_arguments(self) -> None:
        pipeline = make_pipeline(EchoTool())

        result = await pipeline.invoke(ToolCallRequest("c1", "echo", '{"repeat": 2}'))

        assert not result.ok
        assert result.error.startswith("Invalid arguments for echo:")

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        pipeline = make_pipeline(SleepTool())

        result = await pipeline.invoke(ToolCallRequest("c1", "sleep", '{"seconds": 1}'))

        assert not result.ok
        assert result.error == "Tool 'sleep' timed out after 0.05s"

    @pytest.mark.asyncio
    async def test_exception_becomes_failure(self) -> None:
        pipeline = make_pipeline(BrokenTool())

        result = await pipeline.invoke(ToolCallRequest("c1", "broken", '{"text": "x"}'))

        assert not result.ok
        assert result.error == "Tool 'broken' failed: disk on fire"


class TestApprovalInPipeline:
    @pytest.mark.asyncio
    async def test_rejected(self) -> None:
        tool = EchoTool(needs_approval=True)
        interaction = ScriptedInteraction(ConfirmationStatus.REJECTED)
        pipeline = make_pipeline(tool, interaction=interaction)

        result = await pipeline.invoke(ToolCallRequest("c1", "echo", '{"text": "hi"}'))

        assert not result.ok
        assert result.error == "Operation rejected by user: echo"
        assert tool.received == []

    @pytest.mark.asyncio
    async def test_prompt_carries_description(self) -> None:
        tool = EchoTool(needs_approval=True)
        interaction = ScriptedInteraction(ConfirmationStatus.APPROVED)
        pipeline = make_pipeline(tool, interaction=interaction)

        result = await pipeline.invoke(ToolCallRequest("c1", "echo", '{"text": "hi"}'))

        assert result.ok
        assert "Action: echo" in interaction.prompts[0]
        assert "Description: Echo 'hi'" in interaction.prompts[0]

    @pytest.mark.asyncio
    async def test_bad_arguments_never_reach_approval(self) -> None:
        interaction = ScriptedInteraction()
        pipeline = make_pipeline(EchoTool(needs_approval=True), interaction=interaction)

        result = await pipeline.invoke(ToolCallRequest("c1", "echo", "{}"))

        assert not result.ok
        assert interaction.prompts == []

    @pytest.mark.asyncio
    async def test_tool_without_approval_skips_gate(self) -> None:
        interaction = ScriptedInteraction()
        pipeline = make_pipeline(EchoTool(), interaction=interaction)

        result = await pipeline.invoke(ToolCallRequest("c1", "echo", '{"text": "hi"}'))

        assert result.ok
        assert interaction.prompts == []
