"""Shell execution: the ``bash`` tool and the helper custom commands use."""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field

from stepwise.logging import get_logger
from stepwise.tools.base import BaseTool, ToolParams, ToolResult

log = get_logger("shell")

OUTPUT_LIMIT = 50_000


@dataclass
class ShellResult:
    """Result of a shell command."""

    command: str
    exit_code: int | None
    output: str
    truncated: bool = False
    status: str = "ok"  # "ok", "error", "timeout"
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == "ok"


async def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
        await process.wait()
    except ProcessLookupError:
        pass


async def run_shell(
    command: str,
    *,
    cwd: str | Path | None = None,
    env: dict[str, str] | None = None,
    timeout: float | None = None,
    output_limit: int = OUTPUT_LIMIT,
) -> ShellResult:
    """Run ``command`` through the system shell, stderr merged into stdout.

    The process is killed when ``timeout`` elapses or when the awaiting task
    is cancelled (e.g. by an outer ``asyncio.wait_for``).
    """
    start = time.perf_counter()

    process_env = os.environ.copy()
    if env:
        process_env.update(env)

    try:
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(cwd) if cwd else None,
            env=process_env,
        )
    except OSError as e:
        return ShellResult(command=command, exit_code=126, output=f"OS error: {e}",
                           status="error")

    try:
        stdout, _ = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        await _kill(process)
        return ShellResult(
            command=command,
            exit_code=None,
            output=f"Command timed out after {timeout:g}s",
            status="timeout",
            duration_ms=(time.perf_counter() - start) * 1000,
        )
    except asyncio.CancelledError:
        log.debug("Killing cancelled command: %s", command)
        await _kill(process)
        raise

    output = stdout.decode("utf-8", errors="replace")
    truncated = len(output) > output_limit
    if truncated:
        output = output[:output_limit] + "\n... (output truncated)"

    return ShellResult(
        command=command,
        exit_code=process.returncode,
        output=output,
        truncated=truncated,
        status="ok" if process.returncode == 0 else "error",
        duration_ms=(time.perf_counter() - start) * 1000,
    )


class BashParams(ToolParams):
    command: str = Field(description="Shell command to run")
    timeout: float | None = Field(default=None, description="Timeout in seconds")


class BashTool(BaseTool[BashParams]):
    name = "bash"
    description = (
        "Run a shell command in the working directory and return its combined "
        "stdout and stderr. A non-zero exit status is reported as an error."
    )
    params_model = BashParams
    needs_approval = True

    def __init__(self, work_dir: Path, timeout: float | None = None) -> None:
        self.work_dir = work_dir
        self.timeout = timeout

    def approval_description(self, params: BashParams) -> str:
        return f"Execute command: {params.command}"

    def timeout_for(self, params: BashParams) -> float | None:
        return params.timeout or self.timeout

    async def execute(self, params: BashParams) -> ToolResult:
        # The pipeline's wait_for bounds the run; cancellation kills the process.
        result = await run_shell(params.command, cwd=self.work_dir)
        if result.ok:
            return ToolResult.success(result.output or "(no output)")
        return ToolResult.failure(f"Command exited with code {result.exit_code}",
                                  message=result.output)
