"""Discovery of custom command files."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import yaml

from stepwise.commands.schema import CustomCommand, parse_command
from stepwise.errors import ConfigError
from stepwise.logging import get_logger

log = get_logger("commands")

COMMAND_SUFFIXES = (".yaml", ".yml")


def load_command_file(path: Path) -> CustomCommand:
    """Load one command file.

    Raises:
        ConfigError: If the file can't be read or the definition is invalid.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read command file: {e}", str(path)) from e
    return parse_command(data, path)


def load_commands(directories: Iterable[Path]) -> dict[str, CustomCommand]:
    """Load every command in ``directories``, keyed by name and alias.

    Later directories override earlier ones, so project commands shadow
    user commands of the same name.
    """
    commands: dict[str, CustomCommand] = {}
    for directory in directories:
        if not directory.is_dir():
            continue
        for path in sorted(directory.iterdir()):
            if path.suffix not in COMMAND_SUFFIXES or not path.is_file():
                continue
            command = load_command_file(path)
            for key in (command.name, *command.aliases):
                if key in commands and commands[key].source != path:
                    log.debug("Command %s from %s overrides %s", key, path, commands[key].source)
                commands[key] = command
            log.debug("Loaded command %s from %s", command.name, path)
    return commands
