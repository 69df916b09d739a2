"""Configuration schema dataclasses for stepwise.

Defines the structure of configuration at all levels (system, user, project).
All fields have defaults so partial configs merge together.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from stepwise.errors import ConfigError

DEFAULT_MAX_STEPS = 100
DEFAULT_MAX_THINKING_STEPS = 5
DEFAULT_MAX_CONTEXT_TOKENS = 100_000
DEFAULT_TOOL_TIMEOUT = 60.0
DEFAULT_DENIED_PATHS = ("~/.ssh/*", "**/.env.secrets")


@dataclass
class LLMConfig:
    """LLM provider configuration."""

    model: str | None = None  # litellm model id, e.g. "anthropic/claude-sonnet-4-5"
    api_base: str | None = None  # Custom endpoint
    api_key: str | None = None  # Name of the env var / secret holding the key
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class EngineConfig:
    """Step loop limits."""

    max_steps: int = DEFAULT_MAX_STEPS
    max_thinking_steps: int = DEFAULT_MAX_THINKING_STEPS
    max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS
    system_prompt: str | None = None

    def __post_init__(self) -> None:
        if self.max_steps <= 0:
            raise ConfigError(f"max_steps must be positive, got {self.max_steps}", "engine")
        if self.max_thinking_steps <= 0:
            raise ConfigError(
                f"max_thinking_steps must be positive, got {self.max_thinking_steps}", "engine"
            )
        if self.max_context_tokens <= 0:
            raise ConfigError(
                f"max_context_tokens must be positive, got {self.max_context_tokens}", "engine"
            )


@dataclass
class ApprovalConfig:
    """Approval policy."""

    yolo: bool = False  # Auto-approve every tool action


@dataclass
class ToolsConfig:
    """Built-in tool settings."""

    default_timeout: float = DEFAULT_TOOL_TIMEOUT
    shell_timeout: float = DEFAULT_TOOL_TIMEOUT
    disabled: list[str] = field(default_factory=list)
    # File tool sandbox
    allow_write_outside_workspace: bool = False
    denied_paths: list[str] = field(default_factory=lambda: list(DEFAULT_DENIED_PATHS))

    def __post_init__(self) -> None:
        if self.default_timeout <= 0 or self.shell_timeout <= 0:
            raise ConfigError("tool timeouts must be positive", "tools")


@dataclass
class SessionConfig:
    """Session persistence settings."""

    root: str | None = None  # Directory holding .stepwise/sessions (default: home)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str | None = None  # DEBUG, INFO, WARNING, ERROR
    file: str | None = None  # Log file path
    verbose: int | None = None  # 0-4, overrides level


@dataclass
class AgentConfig:
    """A named persona: prompt, tool allowlist and step limits.

    Example config.yaml:
        agents:
          reviewer:
            system_prompt: "You review diffs and report problems."
            tools: [read_file, list_dir]
            max_steps: 20
    """

    name: str
    system_prompt: str | None = None
    tools: list[str] | None = None  # None allows every registered tool
    max_steps: int | None = None
    max_thinking_steps: int | None = None


@dataclass
class Config:
    """Root configuration object."""

    llm: LLMConfig = field(default_factory=LLMConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    approval: ApprovalConfig = field(default_factory=ApprovalConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    agents: dict[str, AgentConfig] = field(default_factory=dict)

    # Unknown top-level sections
    extra: dict[str, Any] = field(default_factory=dict)
