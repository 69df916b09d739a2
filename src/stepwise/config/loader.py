"""Configuration file loading and caching.

Handles:
- YAML file parsing
- Environment variable overrides
- Config caching with reload support
- Conversion from dict to typed Config dataclass
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml

from stepwise.config.merge import merge_configs
from stepwise.config.paths import get_config_paths
from stepwise.config.schema import (
    DEFAULT_DENIED_PATHS,
    DEFAULT_MAX_CONTEXT_TOKENS,
    DEFAULT_MAX_STEPS,
    DEFAULT_MAX_THINKING_STEPS,
    DEFAULT_TOOL_TIMEOUT,
    AgentConfig,
    ApprovalConfig,
    Config,
    EngineConfig,
    LLMConfig,
    LoggingConfig,
    SessionConfig,
    ToolsConfig,
)
from stepwise.errors import ConfigError

# Module logger (may not be configured yet at import time)
_log = logging.getLogger("stepwise.config")

_cached_config: Config | None = None

_reload_callbacks: list[Callable[[Config], None]] = []

_TRUE_STRINGS = {"1", "true", "yes", "on"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning an empty dict if missing or invalid."""
    if not path.exists():
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
            return data if isinstance(data, dict) else {}
    except yaml.YAMLError as e:
        _log.warning("Invalid YAML in %s: %s", path, e)
        return {}
    except PermissionError:
        _log.debug("Permission denied reading %s", path)
        return {}
    except OSError as e:
        _log.warning("Error reading %s: %s", path, e)
        return {}


def env_overrides() -> dict[str, Any]:
    """Build a config layer from environment variables.

    API keys are NOT loaded here; use fetch_secret() for secrets.
    """
    overrides: dict[str, Any] = {}

    log_path = os.environ.get("STEPWISE_LOG")
    if log_path:
        overrides.setdefault("logging", {})["file"] = log_path

    model = os.environ.get("STEPWISE_MODEL")
    if model:
        overrides.setdefault("llm", {})["model"] = model

    yolo = os.environ.get("STEPWISE_YOLO")
    if yolo is not None:
        overrides.setdefault("approval", {})["yolo"] = yolo.strip().lower() in _TRUE_STRINGS

    return overrides


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"expected a mapping, got {type(value).__name__}", key)
    return value


def _int(section: dict[str, Any], key: str, default: int, source: str) -> int:
    value = section.get(key, default)
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be an integer, got {value!r}", source) from e


def _float(section: dict[str, Any], key: str, default: float, source: str) -> float:
    value = section.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key} must be a number, got {value!r}", source) from e


def _agents(data: dict[str, Any]) -> dict[str, AgentConfig]:
    agents: dict[str, AgentConfig] = {}
    for name, spec in _section(data, "agents").items():
        if not isinstance(spec, dict):
            raise ConfigError(f"agent {name!r} must be a mapping", "agents")
        tools = spec.get("tools")
        if tools is not None and not isinstance(tools, list):
            raise ConfigError(f"agent {name!r} tools must be a list", "agents")
        agents[name] = AgentConfig(
            name=name,
            system_prompt=spec.get("system_prompt"),
            tools=[str(t) for t in tools] if tools is not None else None,
            max_steps=spec.get("max_steps"),
            max_thinking_steps=spec.get("max_thinking_steps"),
        )
    return agents


def dict_to_config(data: dict[str, Any]) -> Config:
    """Convert a merged dict to the typed Config dataclass.

    Raises:
        ConfigError: If a section has the wrong shape or a limit is invalid.
    """
    llm_data = _section(data, "llm")
    llm = LLMConfig(
        model=llm_data.get("model"),
        api_base=llm_data.get("api_base"),
        api_key=llm_data.get("api_key"),
        temperature=llm_data.get("temperature"),
        max_tokens=llm_data.get("max_tokens"),
    )

    engine_data = _section(data, "engine")
    engine = EngineConfig(
        max_steps=_int(engine_data, "max_steps", DEFAULT_MAX_STEPS, "engine"),
        max_thinking_steps=_int(
            engine_data, "max_thinking_steps", DEFAULT_MAX_THINKING_STEPS, "engine"
        ),
        max_context_tokens=_int(
            engine_data, "max_context_tokens", DEFAULT_MAX_CONTEXT_TOKENS, "engine"
        ),
        system_prompt=engine_data.get("system_prompt"),
    )

    approval = ApprovalConfig(yolo=bool(_section(data, "approval").get("yolo", False)))

    tools_data = _section(data, "tools")
    tools = ToolsConfig(
        default_timeout=_float(tools_data, "default_timeout", DEFAULT_TOOL_TIMEOUT, "tools"),
        shell_timeout=_float(tools_data, "shell_timeout", DEFAULT_TOOL_TIMEOUT, "tools"),
        disabled=[str(t) for t in tools_data.get("disabled", [])],
        allow_write_outside_workspace=bool(
            tools_data.get("allow_write_outside_workspace", False)
        ),
        denied_paths=[
            str(p) for p in tools_data.get("denied_paths", DEFAULT_DENIED_PATHS)
        ],
    )

    session = SessionConfig(root=_section(data, "session").get("root"))

    log_data = _section(data, "logging")
    logging_config = LoggingConfig(
        level=log_data.get("level"),
        file=log_data.get("file"),
        verbose=log_data.get("verbose"),
    )

    known_keys = {"llm", "engine", "approval", "tools", "session", "logging", "agents"}
    extra = {k: v for k, v in data.items() if k not in known_keys}

    return Config(
        llm=llm,
        engine=engine,
        approval=approval,
        tools=tools,
        session=session,
        logging=logging_config,
        agents=_agents(data),
        extra=extra,
    )


def load_config(work_dir: str | Path | None = None, reload: bool = False) -> Config:
    """Load and merge config from all sources.

    Priority order (highest to lowest):
    1. Environment variables
    2. Project config (<work_dir>/.stepwise/config.yaml)
    3. User config
    4. System config

    Args:
        work_dir: Project directory for project-level config.
        reload: Force reload even if cached.

    Raises:
        ConfigError: If the merged configuration is invalid.
    """
    global _cached_config

    if _cached_config is not None and not reload and work_dir is None:
        return _cached_config

    layers: list[dict[str, Any]] = []

    for path in get_config_paths(work_dir):
        layer = load_yaml_file(path)
        if layer:
            _log.debug("Loaded config from %s", path)
            layers.append(layer)

    env_layer = env_overrides()
    if env_layer:
        layers.append(env_layer)

    config = dict_to_config(merge_configs(*layers))

    # Only the global (project-less) config is cached
    if work_dir is None:
        _cached_config = config

    return config


def get_config() -> Config:
    """Get the cached global config, loading it on first use."""
    if _cached_config is None:
        return load_config()
    return _cached_config


def reset_config() -> None:
    """Drop the cached config (tests, forced reload)."""
    global _cached_config
    _cached_config = None


def reload_config(work_dir: str | Path | None = None) -> Config:
    """Reload config from files and notify callbacks."""
    config = load_config(work_dir=work_dir, reload=True)

    for callback in _reload_callbacks:
        try:
            callback(config)
        except Exception as e:
            _log.warning("Config reload callback error: %s", e)

    return config


def on_config_reload(callback: Callable[[Config], None]) -> Callable[[], None]:
    """Register a reload callback. Returns a function that unregisters it."""
    _reload_callbacks.append(callback)

    def unregister() -> None:
        if callback in _reload_callbacks:
            _reload_callbacks.remove(callback)

    return unregister
