"""Discovery of hook files."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import yaml

from stepwise.errors import ConfigError
from stepwise.hooks.schema import HookSpec, parse_hook
from stepwise.logging import get_logger

log = get_logger("hooks")

HOOK_SUFFIXES = (".yaml", ".yml")


def load_hook_file(path: Path) -> HookSpec:
    """Load one hook file.

    Raises:
        ConfigError: If the file can't be read or the definition is invalid.
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read hook file: {e}", str(path)) from e
    return parse_hook(data, path)


def load_hooks(directories: Iterable[Path]) -> list[HookSpec]:
    """Load every hook in ``directories``.

    A hook in a later directory replaces an earlier one of the same name,
    so project hooks shadow user hooks.
    """
    hooks: dict[str, HookSpec] = {}
    for directory in directories:
        if not directory.is_dir():
            continue
        for path in sorted(directory.iterdir()):
            if path.suffix not in HOOK_SUFFIXES or not path.is_file():
                continue
            hook = load_hook_file(path)
            if hook.name in hooks:
                log.debug("Hook %s from %s overrides %s", hook.name, path, hooks[hook.name].source)
            hooks[hook.name] = hook
            log.debug("Loaded hook %s (%s) from %s", hook.name, hook.trigger.type.value, path)
    return list(hooks.values())
