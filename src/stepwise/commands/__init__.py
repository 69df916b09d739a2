"""User-defined commands loaded from YAML."""

from stepwise.commands.loader import load_command_file, load_commands
from stepwise.commands.runner import AgentRunner, CommandOutcome, CommandRunner
from stepwise.commands.schema import (
    AgentExecution,
    CommandStep,
    CompositeExecution,
    CustomCommand,
    ExecutionSpec,
    ScriptExecution,
    ScriptStep,
    parse_command,
    parse_execution,
)

__all__ = [
    "AgentExecution",
    "AgentRunner",
    "CommandOutcome",
    "CommandRunner",
    "CommandStep",
    "CompositeExecution",
    "CustomCommand",
    "ExecutionSpec",
    "ScriptExecution",
    "ScriptStep",
    "load_command_file",
    "load_commands",
    "parse_command",
    "parse_execution",
]
