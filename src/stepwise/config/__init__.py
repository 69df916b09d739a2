"""Configuration management for stepwise.

Hierarchical YAML configuration:
- System-level config (/etc/stepwise/ or %PROGRAMDATA%)
- User-level config ($XDG_CONFIG_HOME/stepwise/ or %APPDATA%)
- Project-level config (<work_dir>/.stepwise/)
- Environment variable overrides (highest priority)

Example usage:
    from stepwise.config import load_config

    config = load_config(work_dir="/path/to/project")
    print(config.engine.max_steps)
"""

from stepwise.config.loader import (
    get_config,
    load_config,
    on_config_reload,
    reload_config,
    reset_config,
)
from stepwise.config.paths import (
    get_command_dirs,
    get_config_paths,
    get_hook_dirs,
    get_project_config_path,
    get_project_dir,
    get_system_config_path,
    get_user_config_path,
)
from stepwise.config.schema import (
    AgentConfig,
    ApprovalConfig,
    Config,
    EngineConfig,
    LLMConfig,
    LoggingConfig,
    SessionConfig,
    ToolsConfig,
)
from stepwise.config.secrets import clear_secret_cache, fetch_secret

__all__ = [
    # Main API
    "load_config",
    "get_config",
    "reload_config",
    "reset_config",
    "on_config_reload",
    # Paths
    "get_config_paths",
    "get_hook_dirs",
    "get_command_dirs",
    "get_project_dir",
    "get_project_config_path",
    "get_system_config_path",
    "get_user_config_path",
    # Schema
    "Config",
    "AgentConfig",
    "ApprovalConfig",
    "EngineConfig",
    "LLMConfig",
    "LoggingConfig",
    "SessionConfig",
    "ToolsConfig",
    # Secrets
    "fetch_secret",
    "clear_secret_cache",
]
