"""Built-in tools and the provider that contributes them."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from stepwise.tools.builtin.files import ListDirTool, ReadFileTool, WriteFileTool
from stepwise.tools.builtin.shell import BashTool, ShellResult, run_shell
from stepwise.tools.sandbox import PathPolicy

if TYPE_CHECKING:
    from stepwise.config.schema import Config
    from stepwise.tools.base import Tool


class CoreToolProvider:
    """File and shell tools, available everywhere."""

    name = "core"
    priority = 0

    def supports(self, work_dir: Path, config: Config) -> bool:
        return True

    def create_tools(self, work_dir: Path, config: Config) -> list[Tool]:
        policy = PathPolicy.from_config(work_dir, config.tools)
        return [
            ReadFileTool(work_dir, policy),
            WriteFileTool(work_dir, policy),
            ListDirTool(work_dir, policy),
            BashTool(work_dir, timeout=config.tools.shell_timeout),
        ]


BUILTIN_PROVIDERS = [CoreToolProvider()]

__all__ = [
    "BUILTIN_PROVIDERS",
    "BashTool",
    "CoreToolProvider",
    "ListDirTool",
    "ReadFileTool",
    "ShellResult",
    "WriteFileTool",
    "run_shell",
]
