"""File tools: read, write and list directories.

Every path goes through a PathPolicy first. By default writes are confined
to the working directory and the policy's denied patterns block both reads
and writes.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field

from stepwise.tools.base import BaseTool, ToolParams, ToolResult
from stepwise.tools.sandbox import PathDenied, PathPolicy

MAX_READ_LINES = 2000
MAX_LIST_ENTRIES = 500


class _PolicyMixin:
    def __init__(self, work_dir: Path, policy: PathPolicy | None = None) -> None:
        self.work_dir = work_dir
        self.policy = policy or PathPolicy.from_config(work_dir, None)


class ReadFileParams(ToolParams):
    path: str = Field(description="File to read, absolute or relative to the working directory")
    start_line: int | None = Field(default=None, ge=1, description="First line (1-based)")
    end_line: int | None = Field(default=None, ge=1, description="Last line, inclusive")


class ReadFileTool(_PolicyMixin, BaseTool[ReadFileParams]):
    name = "read_file"
    description = "Read a text file, optionally a line range. Lines are numbered in the output."
    params_model = ReadFileParams

    async def execute(self, params: ReadFileParams) -> ToolResult:
        try:
            path = self.policy.check_access(params.path, "read")
        except PathDenied as e:
            return ToolResult.failure(str(e))
        if not path.is_file():
            return ToolResult.failure(f"File not found: {params.path}")

        try:
            lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
        except OSError as e:
            return ToolResult.failure(f"Cannot read {params.path}: {e}")

        start = params.start_line or 1
        end = params.end_line or min(len(lines), start + MAX_READ_LINES - 1)
        if end < start:
            return ToolResult.failure(f"end_line {end} is before start_line {start}")

        selected = lines[start - 1 : end]
        body = "\n".join(f"{n:6}\t{line}" for n, line in enumerate(selected, start=start))
        if end < len(lines):
            body += f"\n... ({len(lines) - end} more lines)"
        return ToolResult.success(body or "(empty file)")


class WriteFileParams(ToolParams):
    path: str = Field(description="File to write, inside the working directory")
    content: str = Field(description="Full new file content")


class WriteFileTool(_PolicyMixin, BaseTool[WriteFileParams]):
    name = "write_file"
    description = "Create or overwrite a file in the working directory with the given content."
    params_model = WriteFileParams
    needs_approval = True

    def approval_description(self, params: WriteFileParams) -> str:
        return f"Write {len(params.content)} characters to {params.path}"

    async def execute(self, params: WriteFileParams) -> ToolResult:
        try:
            path = self.policy.check_access(params.path, "write")
        except PathDenied as e:
            return ToolResult.failure(str(e))
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(params.content, encoding="utf-8")
        except OSError as e:
            return ToolResult.failure(f"Cannot write {params.path}: {e}")
        return ToolResult.success(f"Wrote {len(params.content)} characters to {params.path}")


class ListDirParams(ToolParams):
    path: str = Field(default=".", description="Directory to list")


class ListDirTool(_PolicyMixin, BaseTool[ListDirParams]):
    name = "list_dir"
    description = "List the entries of a directory; subdirectories end with '/'."
    params_model = ListDirParams

    async def execute(self, params: ListDirParams) -> ToolResult:
        try:
            path = self.policy.check_access(params.path, "read")
        except PathDenied as e:
            return ToolResult.failure(str(e))
        if not path.is_dir():
            return ToolResult.failure(f"Not a directory: {params.path}")

        try:
            entries = sorted(path.iterdir(), key=lambda p: (not p.is_dir(), p.name))
        except OSError as e:
            return ToolResult.failure(f"Cannot list {params.path}: {e}")

        names = [e.name + "/" if e.is_dir() else e.name for e in entries[:MAX_LIST_ENTRIES]]
        if len(entries) > MAX_LIST_ENTRIES:
            names.append(f"... ({len(entries) - MAX_LIST_ENTRIES} more)")
        return ToolResult.success("\n".join(names) or "(empty directory)")
