"""Tool invocation: resolve, normalize, parse, approve, execute.

``ToolInvocationPipeline.invoke`` never raises. Every failure (unknown
tool, unparseable arguments, rejection, timeout, exception) comes back as a
``ToolResult`` with ``ok=False`` so the model can react to it.
"""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING

from stepwise.config.schema import DEFAULT_TOOL_TIMEOUT
from stepwise.logging import get_logger
from stepwise.tools.arguments import normalize_arguments
from stepwise.tools.base import ToolParams, ToolResult

if TYPE_CHECKING:
    from stepwise.approval.gate import ApprovalGate
    from stepwise.core.llm.provider import ToolCallRequest
    from stepwise.hooks.registry import HookRegistry
    from stepwise.tools.base import Tool
    from stepwise.tools.registry import ToolRegistry

log = get_logger("pipeline")


class ArgumentError(ValueError):
    """Normalized arguments don't fit the tool's parameter model."""


def parse_params(params_model: type[ToolParams], normalized: str) -> ToolParams:
    """Deserialize normalized arguments into ``params_model``.

    Arrays are positional: element N fills the model's N-th declared field.

    Raises:
        ArgumentError: On invalid JSON, too many positional values, or a
            pydantic validation failure.
    """
    try:
        data = json.loads(normalized)
    except ValueError as e:
        raise ArgumentError(f"invalid JSON: {e}") from e

    if isinstance(data, list):
        fields = list(params_model.model_fields)
        if len(data) > len(fields):
            raise ArgumentError(
                f"expected at most {len(fields)} positional arguments, got {len(data)}"
            )
        data = dict(zip(fields, data))

    if not isinstance(data, dict):
        raise ArgumentError(f"expected an object, got {type(data).__name__}")

    try:
        return params_model.model_validate(data)
    except ValueError as e:
        raise ArgumentError(str(e)) from e


def touched_files(params: ToolParams) -> list[str]:
    """The ``path`` a call names, if its parameters have one."""
    path = getattr(params, "path", None)
    return [path] if isinstance(path, str) and path else []


class ToolInvocationPipeline:
    """Runs model tool calls against a registry."""

    def __init__(
        self,
        registry: ToolRegistry,
        approval_gate: ApprovalGate | None = None,
        *,
        default_timeout: float = DEFAULT_TOOL_TIMEOUT,
        hooks: HookRegistry | None = None,
        session_id: str | None = None,
    ) -> None:
        self.registry = registry
        self.approval_gate = approval_gate
        self.default_timeout = default_timeout
        self.hooks = hooks
        self.session_id = session_id

    async def invoke(self, request: ToolCallRequest) -> ToolResult:
        try:
            return await self._invoke(request)
        except Exception as e:
            log.exception("Unexpected error invoking %s", request.tool_name)
            return ToolResult.failure(f"Tool '{request.tool_name}' failed: {e}")

    async def _invoke(self, request: ToolCallRequest) -> ToolResult:
        name = request.tool_name
        tool = self.registry.resolve(name)
        if tool is None:
            log.warning("Call %s: tool not found: %s", request.id, name)
            return ToolResult.failure(f"Tool not found: {name}")

        normalized = normalize_arguments(request.raw_arguments)
        if normalized != request.raw_arguments:
            log.debug("Call %s: normalized arguments %r -> %r",
                      request.id, request.raw_arguments, normalized)

        try:
            params = parse_params(tool.params_model, normalized)
        except ArgumentError as e:
            log.info("Call %s: bad arguments for %s: %s", request.id, name, e)
            return ToolResult.failure(f"Invalid arguments for {name}: {e}")

        if tool.requires_approval() and self.approval_gate is not None:
            decision = await self.approval_gate.decide(
                request.id, name, tool.approval_description(params)
            )
            if not decision.approved:
                return ToolResult.failure(f"Operation rejected by user: {name}")

        if self.hooks is None:
            return await self._execute(tool, params, request)

        # Imported here: stepwise.hooks.schema -> stepwise.commands -> stepwise.tools is a cycle.
        from stepwise.hooks.schema import HookContext, HookType

        context = HookContext(
            work_dir=self.hooks.work_dir,
            session_id=self.session_id,
            tool_name=name,
            files=touched_files(params),
        )
        await self.hooks.trigger(HookType.PRE_TOOL_CALL, context)
        result = await self._execute(tool, params, request)
        context.tool_result = result.to_content()
        await self.hooks.trigger(HookType.POST_TOOL_CALL, context)
        return result

    async def _execute(self, tool: Tool, params: ToolParams, request: ToolCallRequest) -> ToolResult:
        timeout = tool.timeout_for(params) or self.default_timeout
        log.debug("Call %s: executing %s (timeout %ss)", request.id, tool.name, timeout)
        try:
            result = await asyncio.wait_for(tool.execute(params), timeout=timeout)
        except TimeoutError:
            log.warning("Call %s: %s timed out after %ss", request.id, tool.name, timeout)
            return ToolResult.failure(f"Tool '{tool.name}' timed out after {timeout:g}s")
        except Exception as e:
            log.warning("Call %s: %s raised %s", request.id, tool.name, e)
            return ToolResult.failure(f"Tool '{tool.name}' failed: {e}")

        if result.ok:
            return result
        return ToolResult.failure(
            f"Tool '{tool.name}' failed: {result.error or 'unknown error'}",
            message=result.message,
        )
