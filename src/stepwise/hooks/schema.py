"""Hook definitions.

A hook file is YAML:

    name: format-python
    description: Run black on edited Python files
    priority: 10
    trigger:
      type: post_tool_call
      tools: [write_file]
      file_patterns: ["*.py"]
    conditions:
      - type: file_exists
        path: pyproject.toml
      - type: env_var
        var: CI
        value: "false"
    execution:
      type: script
      script: black ${FILES}
      timeout: 30

Hooks only run scripts. A hook's trigger narrows when it fires; its
conditions are then checked in order and all must hold.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from stepwise.commands.schema import ScriptExecution, parse_execution
from stepwise.errors import ConfigError

DEFAULT_CONDITION_TIMEOUT = 5.0

_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


class HookType(Enum):
    PRE_USER_INPUT = "pre_user_input"
    POST_USER_INPUT = "post_user_input"
    PRE_TOOL_CALL = "pre_tool_call"
    POST_TOOL_CALL = "post_tool_call"
    ON_ERROR = "on_error"
    ON_SESSION_START = "on_session_start"
    ON_SESSION_END = "on_session_end"


@dataclass(frozen=True)
class HookTrigger:
    """When a hook fires. Empty filters match everything."""

    type: HookType
    tools: tuple[str, ...] = ()
    file_patterns: tuple[str, ...] = ()
    error_pattern: str | None = None


@dataclass(frozen=True)
class EnvVarCondition:
    """Holds when ``var`` is set (and equals ``value``, if given)."""

    var: str
    value: str | None = None


@dataclass(frozen=True)
class FileExistsCondition:
    path: str


@dataclass(frozen=True)
class ScriptCondition:
    """Holds when the script exits with status 0."""

    script: str
    timeout: float = DEFAULT_CONDITION_TIMEOUT


@dataclass(frozen=True)
class ToolResultContainsCondition:
    """Holds when the tool result matches the ``pattern`` regex."""

    pattern: str


HookCondition = EnvVarCondition | FileExistsCondition | ScriptCondition | ToolResultContainsCondition


@dataclass(frozen=True)
class HookSpec:
    name: str
    trigger: HookTrigger
    execution: ScriptExecution
    description: str = ""
    enabled: bool = True
    priority: int = 0
    conditions: tuple[HookCondition, ...] = ()
    source: Path | None = None


@dataclass
class HookContext:
    """What a hook sees about the event that fired it.

    Attributes:
        work_dir: Working directory; scripts run here
        session_id: Current session id
        user_input: Task text (user input hooks)
        tool_name: Tool being called (tool hooks)
        tool_result: Result content (POST_TOOL_CALL)
        files: Paths the tool call names (tool hooks)
        error_message: Failure text (ON_ERROR)
    """

    work_dir: Path
    session_id: str | None = None
    user_input: str | None = None
    tool_name: str | None = None
    tool_result: str | None = None
    files: list[str] = field(default_factory=list)
    error_message: str | None = None


def _strings(data: dict[str, Any], key: str) -> tuple[str, ...]:
    value = data.get(key) or []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return tuple(value)


def _parse_trigger(data: Any) -> HookTrigger:
    if not isinstance(data, dict):
        raise ValueError("'trigger' must be a mapping")
    try:
        hook_type = HookType(data.get("type"))
    except ValueError:
        supported = ", ".join(t.value for t in HookType)
        raise ValueError(
            f"invalid trigger type {data.get('type')!r} (supported: {supported})"
        ) from None

    error_pattern = data.get("error_pattern")
    if error_pattern is not None:
        try:
            re.compile(error_pattern)
        except (re.error, TypeError) as e:
            raise ValueError(f"invalid error_pattern: {e}") from e

    return HookTrigger(
        type=hook_type,
        tools=_strings(data, "tools"),
        file_patterns=_strings(data, "file_patterns"),
        error_pattern=error_pattern,
    )


def _parse_condition(data: Any, index: int) -> HookCondition:
    if not isinstance(data, dict):
        raise ValueError(f"condition {index} must be a mapping")

    def required(key: str) -> str:
        value = data.get(key)
        if not isinstance(value, str) or not value:
            raise ValueError(f"condition {index}: '{key}' is required")
        return value

    match data.get("type"):
        case "env_var":
            value = data.get("value")
            return EnvVarCondition(required("var"), None if value is None else str(value))
        case "file_exists":
            return FileExistsCondition(required("path"))
        case "script":
            timeout = float(data.get("timeout", DEFAULT_CONDITION_TIMEOUT))
            if timeout <= 0:
                raise ValueError(f"condition {index}: timeout must be positive")
            return ScriptCondition(required("script"), timeout)
        case "tool_result_contains":
            pattern = required("pattern")
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValueError(f"condition {index}: invalid pattern: {e}") from e
            return ToolResultContainsCondition(pattern)
        case other:
            raise ValueError(
                f"condition {index}: invalid type {other!r} "
                "(expected env_var, file_exists, script or tool_result_contains)"
            )


def parse_hook(data: Any, source: Path | None = None) -> HookSpec:
    """Parse and validate a hook definition.

    Raises:
        ConfigError: If the definition is invalid.
    """
    where = str(source) if source else None
    if not isinstance(data, dict):
        raise ConfigError("hook definition must be a mapping", where)

    name = data.get("name")
    if not isinstance(name, str) or not _NAME_PATTERN.match(name):
        raise ConfigError(f"invalid hook name {name!r}", where)
    for key in ("trigger", "execution"):
        if key not in data:
            raise ConfigError(f"hook {name!r} needs a {key} block", where)

    execution = parse_execution(data["execution"], where)
    if not isinstance(execution, ScriptExecution):
        raise ConfigError(f"hook {name!r}: only script execution is supported", where)

    conditions = data.get("conditions") or []
    try:
        if not isinstance(conditions, list):
            raise ValueError("'conditions' must be a list")
        trigger = _parse_trigger(data["trigger"])
        parsed = tuple(_parse_condition(c, i) for i, c in enumerate(conditions, start=1))
        priority = int(data.get("priority", 0))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"hook {name!r}: {e}", where) from e

    return HookSpec(
        name=name,
        trigger=trigger,
        execution=execution,
        description=str(data.get("description") or ""),
        enabled=bool(data.get("enabled", True)),
        priority=priority,
        conditions=parsed,
        source=source,
    )
