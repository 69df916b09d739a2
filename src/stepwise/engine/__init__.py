"""Execution engine: the step loop and its results, events and metrics."""

from stepwise.engine.engine import (
    DEFAULT_SYSTEM_PROMPT,
    EngineState,
    ExecutionEngine,
    compose_input,
)
from stepwise.engine.events import EngineUpdate, EventSink, UpdateKind
from stepwise.engine.metrics import TaskMetrics
from stepwise.engine.result import ExecutionResult
from stepwise.engine.stream import StreamAccumulator

__all__ = [
    "DEFAULT_SYSTEM_PROMPT",
    "EngineState",
    "EngineUpdate",
    "EventSink",
    "ExecutionEngine",
    "ExecutionResult",
    "StreamAccumulator",
    "TaskMetrics",
    "UpdateKind",
    "compose_input",
]
