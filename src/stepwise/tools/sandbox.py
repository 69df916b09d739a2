"""Path access policy for the file tools.

Writes must stay inside the working directory unless
``tools.allow_write_outside_workspace`` is set. Paths matching one of
``tools.denied_paths`` (glob patterns, ``~`` expanded, relative patterns
taken from the working directory) can be neither read nor written.
Symlinks are resolved before checking.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from stepwise.logging import get_logger

if TYPE_CHECKING:
    from stepwise.config.schema import ToolsConfig

log = get_logger("sandbox")

AccessMode = Literal["read", "write"]


@dataclass
class PathDenied(Exception):
    """A file tool tried to touch a path the policy forbids."""

    path: str
    mode: AccessMode
    reason: str

    def __str__(self) -> str:
        return f"Access denied: {self.mode} access to '{self.path}' ({self.reason})"


@dataclass
class PathPolicy:
    """Decides which paths the file tools may read and write.

    Attributes:
        work_dir: Working directory (resolved)
        allow_write_outside: Permit writes outside ``work_dir``
        denied_patterns: Absolute glob patterns nobody may access
    """

    work_dir: Path
    allow_write_outside: bool = False
    denied_patterns: list[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, work_dir: Path, config: ToolsConfig | None) -> PathPolicy:
        work_dir = Path(work_dir).resolve()
        if config is None:
            return cls(work_dir=work_dir)

        patterns: list[str] = []
        for pattern in config.denied_paths:
            pattern = str(Path(pattern).expanduser())
            if not Path(pattern).is_absolute() and not pattern.startswith("*"):
                pattern = str(work_dir / pattern)
            patterns.append(pattern)

        return cls(
            work_dir=work_dir,
            allow_write_outside=config.allow_write_outside_workspace,
            denied_patterns=patterns,
        )

    def resolve(self, path: str) -> Path:
        """Absolute, symlink-free form of ``path`` (relative to ``work_dir``)."""
        candidate = Path(path).expanduser()
        if not candidate.is_absolute():
            candidate = self.work_dir / candidate
        return candidate.resolve()

    def is_inside_workspace(self, resolved: Path) -> bool:
        return resolved == self.work_dir or self.work_dir in resolved.parents

    def check_access(self, path: str, mode: AccessMode) -> Path:
        """Resolve ``path`` and check it against the policy.

        Raises:
            PathDenied: If the path is denied for ``mode``.
        """
        resolved = self.resolve(path)
        text = str(resolved)

        for pattern in self.denied_patterns:
            if fnmatch.fnmatch(text, pattern):
                log.warning("Denied %s access to %s (matches %s)", mode, text, pattern)
                raise PathDenied(text, mode, f"matches denied pattern {pattern}")

        if mode == "write" and not self.allow_write_outside and not self.is_inside_workspace(resolved):
            log.warning("Denied write outside the working directory: %s", text)
            raise PathDenied(text, mode, f"outside the working directory {self.work_dir}")

        return resolved
