"""Tool registry and statically listed tool providers.

Providers are listed explicitly. Each declares whether it applies to a
working directory and a priority; when two providers offer a tool with the
same name, the higher priority one wins.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from stepwise.logging import get_logger
from stepwise.tools.schema import tool_schema

if TYPE_CHECKING:
    from stepwise.config.schema import Config
    from stepwise.tools.base import Tool

log = get_logger("tools")


class ToolRegistry:
    """Name-to-tool mapping consulted by the invocation pipeline."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool, *, replace: bool = True) -> bool:
        """Add a tool. Returns False if the name was taken and ``replace`` is off."""
        if tool.name in self._tools and not replace:
            return False
        self._tools[tool.name] = tool
        return True

    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None

    def resolve(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return sorted(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def restricted(self, allowed: Iterable[str]) -> ToolRegistry:
        """A registry holding only the allowed tool names."""
        allow = set(allowed)
        return ToolRegistry(t for n, t in self._tools.items() if n in allow)

    def tool_schemas(self) -> list[dict[str, Any]]:
        return [tool_schema(self._tools[name]) for name in self.names()]


class ToolProvider(Protocol):
    """Contributes tools for a working directory."""

    name: str
    priority: int

    def supports(self, work_dir: Path, config: Config) -> bool: ...

    def create_tools(self, work_dir: Path, config: Config) -> list[Tool]: ...


def build_registry(
    work_dir: Path,
    config: Config,
    providers: Sequence[ToolProvider] | None = None,
) -> ToolRegistry:
    """Build a registry from providers, honoring priority and ``tools.disabled``."""
    if providers is None:
        from stepwise.tools.builtin import BUILTIN_PROVIDERS

        providers = BUILTIN_PROVIDERS

    registry = ToolRegistry()
    disabled = set(config.tools.disabled)
    for provider in sorted(providers, key=lambda p: p.priority, reverse=True):
        if not provider.supports(work_dir, config):
            log.debug("Tool provider %s does not support %s", provider.name, work_dir)
            continue
        for tool in provider.create_tools(work_dir, config):
            if tool.name in disabled:
                continue
            if not registry.register(tool, replace=False):
                log.debug("Tool %s from %s shadowed by higher priority provider",
                          tool.name, provider.name)

    log.info("Registered tools: %s", ", ".join(registry.names()))
    return registry
