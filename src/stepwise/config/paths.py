"""Platform-aware configuration path resolution.

- Windows: %PROGRAMDATA% (system), %APPDATA% (user)
- Unix: /etc/stepwise/ (system), $XDG_CONFIG_HOME/stepwise/ or ~/.stepwise/ (user)
- Project: <work_dir>/.stepwise/
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

CONFIG_FILENAME = "config.yaml"
APP_NAME = "stepwise"
PROJECT_DIR = ".stepwise"
COMMANDS_DIR = "commands"
HOOKS_DIR = "hooks"


def get_system_config_path() -> Path | None:
    if sys.platform == "win32":
        program_data = os.environ.get("PROGRAMDATA")
        if program_data:
            return Path(program_data) / APP_NAME / CONFIG_FILENAME
        return None
    return Path("/etc") / APP_NAME / CONFIG_FILENAME


def get_user_config_dir() -> Path | None:
    """Directory holding the user-level config and commands."""
    if sys.platform == "win32":
        app_data = os.environ.get("APPDATA")
        return Path(app_data) / APP_NAME if app_data else None

    xdg_config = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config) / APP_NAME

    home = Path.home()
    if (home / ".config").exists():
        return home / ".config" / APP_NAME
    return home / PROJECT_DIR


def get_user_config_path() -> Path | None:
    config_dir = get_user_config_dir()
    return config_dir / CONFIG_FILENAME if config_dir else None


def get_project_dir(work_dir: str | Path) -> Path:
    """The per-project ``.stepwise`` directory."""
    return Path(work_dir) / PROJECT_DIR


def get_project_config_path(work_dir: str | Path) -> Path:
    return get_project_dir(work_dir) / CONFIG_FILENAME


def get_config_paths(work_dir: str | Path | None = None) -> list[Path]:
    """Config paths lowest to highest priority: system, user, project."""
    paths: list[Path] = []

    system_path = get_system_config_path()
    if system_path:
        paths.append(system_path)

    user_path = get_user_config_path()
    if user_path:
        paths.append(user_path)

    if work_dir:
        paths.append(get_project_config_path(work_dir))

    return paths


def get_command_dirs(work_dir: str | Path | None = None) -> list[Path]:
    """Custom command directories; project commands override user ones."""
    dirs: list[Path] = []
    user_dir = get_user_config_dir()
    if user_dir:
        dirs.append(user_dir / COMMANDS_DIR)
    if work_dir:
        dirs.append(get_project_dir(work_dir) / COMMANDS_DIR)
    return dirs


def get_hook_dirs(work_dir: str | Path | None = None) -> list[Path]:
    """Hook directories; project hooks override user ones."""
    dirs: list[Path] = []
    user_dir = get_user_config_dir()
    if user_dir:
        dirs.append(user_dir / HOOKS_DIR)
    if work_dir:
        dirs.append(get_project_dir(work_dir) / HOOKS_DIR)
    return dirs
