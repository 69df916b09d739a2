"""LLM provider abstraction."""

from stepwise.core.llm.litellm_provider import LiteLLMProvider, create_provider
from stepwise.core.llm.provider import (
    LLMProvider,
    Message,
    Role,
    StreamChunk,
    ToolCallDelta,
    ToolCallRequest,
    Usage,
)
from stepwise.core.llm.providers import ModelConfig, ProviderConfig, find_model, find_provider

__all__ = [
    # Protocol and types
    "LLMProvider",
    "Message",
    "Role",
    "StreamChunk",
    "ToolCallDelta",
    "ToolCallRequest",
    "Usage",
    # litellm implementation
    "LiteLLMProvider",
    "create_provider",
    # Catalog
    "ModelConfig",
    "ProviderConfig",
    "find_model",
    "find_provider",
]
