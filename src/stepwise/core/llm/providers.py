"""Known LLM providers, loaded from the packaged providers.yaml."""

from __future__ import annotations

import importlib.resources
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

import yaml


@dataclass
class ModelConfig:
    """A catalogued model."""

    id: str
    name: str
    context_length: int


@dataclass
class ProviderConfig:
    """A catalogued provider and the env var holding its API key."""

    name: str
    env_var: str | None
    prefixes: list[str] = field(default_factory=list)
    models: list[ModelConfig] = field(default_factory=list)

    def matches(self, model: str) -> bool:
        return any(model.startswith(prefix) for prefix in self.prefixes)


@lru_cache(maxsize=1)
def _load_providers_yaml() -> dict[str, Any]:
    files = importlib.resources.files("stepwise.core.llm")
    with files.joinpath("providers.yaml").open(encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@lru_cache(maxsize=1)
def provider_configs() -> dict[str, ProviderConfig]:
    """All catalogued providers keyed by name."""
    configs: dict[str, ProviderConfig] = {}
    for name, data in _load_providers_yaml().get("providers", {}).items():
        configs[name] = ProviderConfig(
            name=name,
            env_var=data.get("env_var"),
            prefixes=list(data.get("prefixes", [])),
            models=[
                ModelConfig(id=m["id"], name=m["name"], context_length=m["context_length"])
                for m in data.get("models", [])
            ],
        )
    return configs


def find_provider(model: str) -> ProviderConfig | None:
    """The catalogued provider serving ``model``, if any."""
    for provider in provider_configs().values():
        if provider.matches(model) or any(m.id == model for m in provider.models):
            return provider
    return None


def find_model(model: str) -> ModelConfig | None:
    for provider in provider_configs().values():
        for entry in provider.models:
            if entry.id == model:
                return entry
    return None
