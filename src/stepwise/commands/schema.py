"""Custom command definitions.

A command file is YAML:

    name: test
    description: Run the test suite
    aliases: [t]
    execution:
      type: script            # script | agent | composite
      script: pytest ${ARGS}
      timeout: 300

    execution:
      type: agent
      agent: reviewer
      task: "Review the changes in ${ARGS}"

    execution:
      type: composite
      steps:
        - type: script
          script: ruff check .
          continue_on_failure: true
        - type: command       # another custom command, by name
          command: test

Each execution kind is its own frozen dataclass; ``ExecutionSpec`` is their
union and is validated when parsed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from stepwise.errors import ConfigError

DEFAULT_SCRIPT_TIMEOUT = 60.0
DEFAULT_AGENT_TIMEOUT = 600.0

_NAME_PATTERN = re.compile(r"^[a-z0-9][a-z0-9_-]*$")


@dataclass(frozen=True)
class ScriptExecution:
    script: str | None = None
    script_file: str | None = None
    working_dir: str | None = None
    timeout: float = DEFAULT_SCRIPT_TIMEOUT
    environment: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AgentExecution:
    agent: str
    task: str
    timeout: float = DEFAULT_AGENT_TIMEOUT


@dataclass(frozen=True)
class ScriptStep:
    script: str
    description: str | None = None
    continue_on_failure: bool = False


@dataclass(frozen=True)
class CommandStep:
    command: str
    description: str | None = None
    continue_on_failure: bool = False


CompositeStep = ScriptStep | CommandStep


@dataclass(frozen=True)
class CompositeExecution:
    steps: tuple[CompositeStep, ...]
    timeout: float = DEFAULT_SCRIPT_TIMEOUT


ExecutionSpec = ScriptExecution | AgentExecution | CompositeExecution


@dataclass(frozen=True)
class CustomCommand:
    name: str
    description: str
    execution: ExecutionSpec
    aliases: tuple[str, ...] = ()
    usage: str | None = None
    source: Path | None = None


def _text(data: dict[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value if value.strip() else None


def _timeout(data: dict[str, Any], default: float) -> float:
    value = data.get("timeout", default)
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"timeout must be a number, got {value!r}") from e
    if timeout <= 0:
        raise ValueError(f"timeout must be positive, got {timeout:g}")
    return timeout


def _parse_step(data: Any, index: int) -> CompositeStep:
    if not isinstance(data, dict):
        raise ValueError(f"step {index} must be a mapping")
    description = _text(data, "description")
    continue_on_failure = bool(data.get("continue_on_failure", False))

    match data.get("type"):
        case "script":
            script = _text(data, "script")
            if script is None:
                raise ValueError(f"step {index}: 'script' is required for a script step")
            return ScriptStep(script, description, continue_on_failure)
        case "command":
            command = _text(data, "command")
            if command is None:
                raise ValueError(f"step {index}: 'command' is required for a command step")
            return CommandStep(command, description, continue_on_failure)
        case other:
            raise ValueError(f"step {index}: invalid type {other!r} (expected script or command)")


def _parse_execution(data: Any) -> ExecutionSpec:
    if not isinstance(data, dict):
        raise ValueError("'execution' must be a mapping")

    match data.get("type"):
        case "script":
            script, script_file = _text(data, "script"), _text(data, "script_file")
            if script is None and script_file is None:
                raise ValueError("either 'script' or 'script_file' is required for script execution")
            environment = data.get("environment") or {}
            if not isinstance(environment, dict):
                raise ValueError("'environment' must be a mapping")
            return ScriptExecution(
                script=script,
                script_file=script_file,
                working_dir=_text(data, "working_dir"),
                timeout=_timeout(data, DEFAULT_SCRIPT_TIMEOUT),
                environment={str(k): str(v) for k, v in environment.items()},
            )
        case "agent":
            agent, task = _text(data, "agent"), _text(data, "task")
            if agent is None:
                raise ValueError("'agent' is required for agent execution")
            if task is None:
                raise ValueError("'task' is required for agent execution")
            return AgentExecution(agent, task, _timeout(data, DEFAULT_AGENT_TIMEOUT))
        case "composite":
            steps = data.get("steps")
            if not isinstance(steps, list) or not steps:
                raise ValueError("'steps' are required for composite execution")
            return CompositeExecution(
                steps=tuple(_parse_step(step, i) for i, step in enumerate(steps, start=1)),
                timeout=_timeout(data, DEFAULT_SCRIPT_TIMEOUT),
            )
        case None:
            raise ValueError("execution 'type' is required")
        case other:
            raise ValueError(
                f"invalid execution type {other!r} (supported: script, agent, composite)"
            )


def parse_execution(data: Any, source: str | None = None) -> ExecutionSpec:
    """Parse and validate an ``execution`` block.

    Raises:
        ConfigError: If the block is invalid.
    """
    try:
        return _parse_execution(data)
    except ValueError as e:
        raise ConfigError(str(e), source) from e


def parse_command(data: Any, source: Path | None = None) -> CustomCommand:
    """Parse and validate a whole command definition.

    Raises:
        ConfigError: If the definition is invalid.
    """
    where = str(source) if source else None
    if not isinstance(data, dict):
        raise ConfigError("command definition must be a mapping", where)

    name = data.get("name")
    if not isinstance(name, str) or not _NAME_PATTERN.match(name):
        raise ConfigError(f"invalid command name {name!r}", where)
    description = data.get("description")
    if not isinstance(description, str) or not description.strip():
        raise ConfigError(f"command {name!r} needs a description", where)
    if "execution" not in data:
        raise ConfigError(f"command {name!r} needs an execution block", where)

    aliases = data.get("aliases") or []
    if not isinstance(aliases, list) or not all(
        isinstance(a, str) and _NAME_PATTERN.match(a) for a in aliases
    ):
        raise ConfigError(f"command {name!r} has invalid aliases", where)

    return CustomCommand(
        name=name,
        description=description.strip(),
        execution=parse_execution(data["execution"], where),
        aliases=tuple(aliases),
        usage=data.get("usage"),
        source=source,
    )
