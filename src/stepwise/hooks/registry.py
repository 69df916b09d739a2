"""Hook registry: matches events to hooks and runs their scripts.

Hooks observe; they never block or alter what fired them. A failing,
timed-out or crashing hook is logged and the caller carries on.
"""

from __future__ import annotations

import fnmatch
import os
import re
from collections.abc import Iterable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import assert_never

from stepwise.hooks.schema import (
    EnvVarCondition,
    FileExistsCondition,
    HookCondition,
    HookContext,
    HookSpec,
    HookType,
    ScriptCondition,
    ToolResultContainsCondition,
)
from stepwise.logging import get_logger
from stepwise.tools.builtin.shell import run_shell

log = get_logger("hooks")


@dataclass(frozen=True)
class HookOutcome:
    name: str
    ok: bool
    output: str = ""


def expand_variables(text: str, hook_type: HookType, context: HookContext) -> str:
    """Substitute ``${VAR}`` placeholders from the hook context."""
    values = {
        "WORK_DIR": str(context.work_dir),
        "HOME": str(Path.home()),
        "HOOK_TYPE": hook_type.value,
        "SESSION_ID": context.session_id or "",
        "USER_INPUT": context.user_input or "",
        "TOOL_NAME": context.tool_name or "",
        "TOOL_RESULT": context.tool_result or "",
        "FILES": " ".join(context.files),
        "FILE": context.files[0] if context.files else "",
        "ERROR_MESSAGE": context.error_message or "",
    }
    for name, value in values.items():
        text = text.replace(f"${{{name}}}", value)
    return text


def hook_environment(hook_type: HookType, context: HookContext) -> dict[str, str]:
    env = {"HOOK_TYPE": hook_type.value, "HOOK_WORK_DIR": str(context.work_dir)}
    if context.session_id:
        env["HOOK_SESSION_ID"] = context.session_id
    if context.tool_name:
        env["HOOK_TOOL_NAME"] = context.tool_name
    if context.files:
        env["HOOK_FILES"] = os.pathsep.join(context.files)
    if context.error_message:
        env["HOOK_ERROR_MESSAGE"] = context.error_message
    return env


class HookRegistry:
    """Hooks for one working directory, ordered by priority (highest first)."""

    def __init__(self, work_dir: Path, hooks: Iterable[HookSpec] = ()) -> None:
        self.work_dir = Path(work_dir)
        self._hooks: dict[str, HookSpec] = {}
        for hook in hooks:
            self.register(hook)

    def __len__(self) -> int:
        return len(self._hooks)

    def __contains__(self, name: str) -> bool:
        return name in self._hooks

    def register(self, hook: HookSpec) -> None:
        if hook.name in self._hooks:
            log.debug("Replacing hook %s", hook.name)
        self._hooks[hook.name] = hook

    def unregister(self, name: str) -> bool:
        return self._hooks.pop(name, None) is not None

    def set_enabled(self, name: str, enabled: bool) -> bool:
        hook = self._hooks.get(name)
        if hook is None:
            return False
        self._hooks[name] = replace(hook, enabled=enabled)
        return True

    def enable(self, name: str) -> bool:
        return self.set_enabled(name, True)

    def disable(self, name: str) -> bool:
        return self.set_enabled(name, False)

    def hooks(self, hook_type: HookType | None = None) -> list[HookSpec]:
        """Registered hooks, optionally of one type, by descending priority."""
        selected = [
            h for h in self._hooks.values() if hook_type is None or h.trigger.type is hook_type
        ]
        return sorted(selected, key=lambda h: -h.priority)

    def matches(self, hook: HookSpec, context: HookContext) -> bool:
        """Whether the trigger filters accept ``context`` (conditions aside)."""
        trigger = hook.trigger
        if trigger.tools and context.tool_name not in trigger.tools:
            return False
        if trigger.file_patterns and not any(
            fnmatch.fnmatch(Path(f).name, pattern) or fnmatch.fnmatch(f, pattern)
            for f in context.files
            for pattern in trigger.file_patterns
        ):
            return False
        if trigger.error_pattern is not None and not re.search(
            trigger.error_pattern, context.error_message or ""
        ):
            return False
        return True

    async def trigger(self, hook_type: HookType, context: HookContext) -> list[HookOutcome]:
        """Run every enabled hook of ``hook_type`` that matches, in priority order.

        Never raises; outcomes are returned and logged.
        """
        outcomes: list[HookOutcome] = []
        for hook in self.hooks(hook_type):
            if not hook.enabled or not self.matches(hook, context):
                continue
            try:
                if not await self._conditions_hold(hook, hook_type, context):
                    log.debug("Hook %s skipped: conditions not met", hook.name)
                    continue
                outcome = await self._run(hook, hook_type, context)
            except Exception as e:
                log.warning("Hook %s failed: %s", hook.name, e)
                outcome = HookOutcome(hook.name, ok=False, output=str(e))
            outcomes.append(outcome)
        return outcomes

    async def _conditions_hold(
        self, hook: HookSpec, hook_type: HookType, context: HookContext
    ) -> bool:
        for condition in hook.conditions:
            if not await self._check(condition, hook_type, context):
                return False
        return True

    async def _check(
        self, condition: HookCondition, hook_type: HookType, context: HookContext
    ) -> bool:
        match condition:
            case EnvVarCondition(var=var, value=value):
                actual = os.environ.get(var)
                return actual is not None and (value is None or actual == value)
            case FileExistsCondition(path=path):
                target = Path(expand_variables(path, hook_type, context)).expanduser()
                if not target.is_absolute():
                    target = self.work_dir / target
                return target.exists()
            case ScriptCondition(script=script, timeout=timeout):
                result = await run_shell(
                    expand_variables(script, hook_type, context),
                    cwd=self.work_dir,
                    env=hook_environment(hook_type, context),
                    timeout=timeout,
                )
                return result.ok
            case ToolResultContainsCondition(pattern=pattern):
                return re.search(pattern, context.tool_result or "") is not None
            case _:
                assert_never(condition)

    async def _run(self, hook: HookSpec, hook_type: HookType, context: HookContext) -> HookOutcome:
        spec = hook.execution
        if spec.script_file:
            path = Path(expand_variables(spec.script_file, hook_type, context)).expanduser()
            if not path.is_absolute():
                path = self.work_dir / path
            if not path.is_file():
                raise FileNotFoundError(f"script file not found: {path}")
            script = path.read_text(encoding="utf-8")
        else:
            script = spec.script or ""

        cwd = self.work_dir
        if spec.working_dir:
            cwd = self.work_dir / os.path.expanduser(
                expand_variables(spec.working_dir, hook_type, context)
            )

        env = hook_environment(hook_type, context)
        env.update({k: expand_variables(v, hook_type, context) for k, v in spec.environment.items()})

        log.info("Running hook %s (%s)", hook.name, hook_type.value)
        result = await run_shell(
            expand_variables(script, hook_type, context), cwd=cwd, env=env, timeout=spec.timeout
        )
        output = result.output.rstrip("\n")
        if result.status == "timeout":
            log.warning("Hook %s timed out after %gs", hook.name, spec.timeout)
        elif not result.ok:
            log.warning("Hook %s exited with code %s", hook.name, result.exit_code)
        else:
            log.debug("Hook %s finished in %.0fms", hook.name, result.duration_ms)
        return HookOutcome(hook.name, ok=result.ok, output=output)
