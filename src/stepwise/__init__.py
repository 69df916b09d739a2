"""stepwise: a step-driven LLM agent that acts through gated tools."""

__version__ = "0.1.0"

# Public API
from stepwise.approval import ApprovalDecision, ApprovalGate, ConfirmationStatus, HumanInteraction
from stepwise.config import Config, get_config, load_config
from stepwise.context import Checkpoint, Compactor, ContextStore
from stepwise.core.llm import LiteLLMProvider, LLMProvider, Message, Role, ToolCallRequest
from stepwise.engine import EngineUpdate, ExecutionEngine, ExecutionResult, UpdateKind
from stepwise.errors import ConfigError, StepwiseError
from stepwise.runtime import Runtime, build_runtime
from stepwise.session import Session, SessionStore
from stepwise.tools import BaseTool, ToolInvocationPipeline, ToolParams, ToolRegistry, ToolResult

__all__ = [
    # Main entry points
    "ExecutionEngine",
    "Runtime",
    "build_runtime",
    # Config
    "Config",
    "load_config",
    "get_config",
    # LLM
    "LLMProvider",
    "LiteLLMProvider",
    "Message",
    "Role",
    "ToolCallRequest",
    # Context
    "Checkpoint",
    "Compactor",
    "ContextStore",
    # Tools
    "BaseTool",
    "ToolInvocationPipeline",
    "ToolParams",
    "ToolRegistry",
    "ToolResult",
    # Approval
    "ApprovalDecision",
    "ApprovalGate",
    "ConfirmationStatus",
    "HumanInteraction",
    # Engine
    "EngineUpdate",
    "ExecutionResult",
    "UpdateKind",
    # Session
    "Session",
    "SessionStore",
    # Errors
    "ConfigError",
    "StepwiseError",
]
