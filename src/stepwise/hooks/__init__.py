"""Scripts run around user input, tool calls, errors and session boundaries."""

from stepwise.hooks.loader import load_hook_file, load_hooks
from stepwise.hooks.registry import HookOutcome, HookRegistry, expand_variables
from stepwise.hooks.schema import (
    EnvVarCondition,
    FileExistsCondition,
    HookCondition,
    HookContext,
    HookSpec,
    HookTrigger,
    HookType,
    ScriptCondition,
    ToolResultContainsCondition,
    parse_hook,
)

__all__ = [
    "EnvVarCondition",
    "FileExistsCondition",
    "HookCondition",
    "HookContext",
    "HookOutcome",
    "HookRegistry",
    "HookSpec",
    "HookTrigger",
    "HookType",
    "ScriptCondition",
    "ToolResultContainsCondition",
    "expand_variables",
    "load_hook_file",
    "load_hooks",
    "parse_hook",
]
