"""Execution of custom commands."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, assert_never

from stepwise.commands.schema import (
    AgentExecution,
    CommandStep,
    CompositeExecution,
    CustomCommand,
    ExecutionSpec,
    ScriptExecution,
    ScriptStep,
)
from stepwise.logging import get_logger
from stepwise.tools.builtin.shell import run_shell

if TYPE_CHECKING:
    from stepwise.engine.result import ExecutionResult

log = get_logger("commands")

MAX_COMMAND_DEPTH = 5

AgentRunner = Callable[[str, str], Awaitable["ExecutionResult"]]


@dataclass
class CommandOutcome:
    ok: bool
    output: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.output)


@dataclass
class _Invocation:
    args: list[str]
    outcome: CommandOutcome
    depth: int = 0

    @property
    def args_text(self) -> str:
        return " ".join(self.args)


class CommandRunner:
    """Runs custom commands by name.

    Args:
        commands: Commands keyed by name and alias
        work_dir: Default working directory for scripts
        agent_runner: Runs ``(agent_name, task)`` through an engine; without
            one, agent commands fail
    """

    def __init__(
        self,
        commands: dict[str, CustomCommand],
        work_dir: Path,
        agent_runner: AgentRunner | None = None,
    ) -> None:
        self.commands = commands
        self.work_dir = work_dir
        self.agent_runner = agent_runner

    def resolve(self, name: str) -> CustomCommand | None:
        return self.commands.get(name)

    def names(self) -> list[str]:
        return sorted({c.name for c in self.commands.values()})

    def expand(self, text: str, args: list[str]) -> str:
        """Substitute ``${HOME}``, ``${WORK_DIR}``, ``${PROJECT_ROOT}`` and ``${ARGS}``."""
        return (
            text.replace("${HOME}", str(Path.home()))
            .replace("${WORK_DIR}", str(self.work_dir))
            .replace("${PROJECT_ROOT}", str(self.work_dir))
            .replace("${ARGS}", " ".join(args))
        )

    async def run(self, name: str, args: list[str] | None = None) -> CommandOutcome:
        command = self.resolve(name)
        if command is None:
            return CommandOutcome(ok=False, output=[f"Unknown command: {name}"])
        invocation = _Invocation(args=list(args or []), outcome=CommandOutcome(ok=True))
        await self._run_command(command, invocation)
        return invocation.outcome

    async def _run_command(self, command: CustomCommand, inv: _Invocation) -> None:
        log.info("Running command %s %s", command.name, inv.args_text)
        try:
            await self._execute(command.execution, inv)
        except Exception as e:
            log.warning("Command %s failed: %s", command.name, e)
            inv.outcome.output.append(f"Command {command.name} failed: {e}")
            inv.outcome.ok = False

    async def _execute(self, spec: ExecutionSpec, inv: _Invocation) -> None:
        match spec:
            case ScriptExecution():
                await self._script(spec, inv)
            case AgentExecution():
                await self._agent(spec, inv)
            case CompositeExecution():
                await self._composite(spec, inv)
            case _:
                assert_never(spec)

    def _script_env(self, spec: ScriptExecution, args: list[str]) -> dict[str, str]:
        env = {k: self.expand(v, args) for k, v in spec.environment.items()}
        for i, arg in enumerate(args):
            env[f"ARG_{i}"] = arg
        env["ARGS"] = " ".join(args)
        return env

    async def _script(self, spec: ScriptExecution, inv: _Invocation) -> None:
        if spec.script_file:
            path = Path(self.expand(spec.script_file, inv.args)).expanduser()
            if not path.is_absolute():
                path = self.work_dir / path
            if not path.is_file():
                raise FileNotFoundError(f"script file not found: {path}")
            script = path.read_text(encoding="utf-8")
        else:
            script = spec.script or ""

        cwd = self.work_dir
        if spec.working_dir:
            cwd = self.work_dir / os.path.expanduser(self.expand(spec.working_dir, inv.args))

        result = await run_shell(
            self.expand(script, inv.args),
            cwd=cwd,
            env=self._script_env(spec, inv.args),
            timeout=spec.timeout,
        )
        if result.output:
            inv.outcome.output.append(result.output.rstrip("\n"))
        if result.status == "timeout":
            raise TimeoutError(f"timed out after {spec.timeout:g}s")
        if not result.ok:
            raise RuntimeError(f"exit code {result.exit_code}")

    async def _agent(self, spec: AgentExecution, inv: _Invocation) -> None:
        if self.agent_runner is None:
            raise RuntimeError(f"no engine available to run agent {spec.agent!r}")
        task = self.expand(spec.task, inv.args)
        result = await asyncio.wait_for(self.agent_runner(spec.agent, task), timeout=spec.timeout)
        if result.success:
            inv.outcome.output.append(result.response or "")
        elif result.interrupted:
            raise RuntimeError(f"agent {spec.agent} was interrupted")
        else:
            raise RuntimeError(result.error or f"agent {spec.agent} failed")

    async def _composite(self, spec: CompositeExecution, inv: _Invocation) -> None:
        total = len(spec.steps)
        for i, step in enumerate(spec.steps, start=1):
            label = f"Step {i}/{total}" + (f": {step.description}" if step.description else "")
            inv.outcome.output.append(label)
            try:
                match step:
                    case ScriptStep():
                        await self._script(ScriptExecution(script=step.script, timeout=spec.timeout), inv)
                    case CommandStep():
                        await self._nested(step.command, inv)
                    case _:
                        assert_never(step)
            except Exception as e:
                if not step.continue_on_failure:
                    raise
                inv.outcome.output.append(f"Step failed (continuing): {e}")

    async def _nested(self, name: str, inv: _Invocation) -> None:
        if inv.depth >= MAX_COMMAND_DEPTH:
            raise RuntimeError(f"command nesting deeper than {MAX_COMMAND_DEPTH}")
        command = self.resolve(name)
        if command is None:
            raise RuntimeError(f"unknown command {name!r}")
        nested = _Invocation(args=inv.args, outcome=CommandOutcome(ok=True), depth=inv.depth + 1)
        try:
            await self._execute(command.execution, nested)
        finally:
            inv.outcome.output.extend(nested.outcome.output)
