"""Tools: contract, registry, argument repair and the invocation pipeline."""

from stepwise.tools.arguments import normalize_arguments
from stepwise.tools.base import BaseTool, Tool, ToolParams, ToolResult
from stepwise.tools.pipeline import ArgumentError, ToolInvocationPipeline, parse_params
from stepwise.tools.registry import ToolProvider, ToolRegistry, build_registry

__all__ = [
    "ArgumentError",
    "BaseTool",
    "Tool",
    "ToolInvocationPipeline",
    "ToolParams",
    "ToolProvider",
    "ToolRegistry",
    "ToolResult",
    "build_registry",
    "normalize_arguments",
    "parse_params",
]
