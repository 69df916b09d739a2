"""Tool contract: parameter models, results and the Tool protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict


class ToolParams(BaseModel):
    """Base for tool parameter models.

    Unknown keys are ignored so a model adding stray fields still gets its
    call through.
    """

    model_config = ConfigDict(extra="ignore")


class NoParams(ToolParams):
    pass


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of one tool call.

    ``message`` carries the output of a successful call; ``error`` the
    reason a call failed, was rejected, or timed out.
    """

    ok: bool
    message: str | None = None
    error: str | None = None

    @classmethod
    def success(cls, message: str) -> ToolResult:
        return cls(ok=True, message=message)

    @classmethod
    def failure(cls, error: str, message: str | None = None) -> ToolResult:
        return cls(ok=False, message=message, error=error)

    def to_content(self) -> str:
        """Text placed in the TOOL message the model sees."""
        if self.ok:
            return self.message or ""
        if self.message:
            return f"{self.error}\n{self.message}"
        return self.error or "Tool failed"


P = TypeVar("P", bound=ToolParams)


@runtime_checkable
class Tool(Protocol):
    """An executable capability the model can call by name."""

    name: str
    description: str
    params_model: type[ToolParams]

    def requires_approval(self) -> bool: ...

    def approval_description(self, params: Any) -> str: ...

    def timeout_for(self, params: Any) -> float | None: ...

    async def execute(self, params: Any) -> ToolResult: ...


class BaseTool(Generic[P]):
    """Convenience base implementing the Tool protocol.

    Subclasses set ``name``, ``description`` and ``params_model`` and
    implement ``execute``.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    params_model: ClassVar[type[ToolParams]] = NoParams
    needs_approval: ClassVar[bool] = False
    timeout: float | None = None

    def requires_approval(self) -> bool:
        return self.needs_approval

    def approval_description(self, params: P) -> str:
        return f"Run {self.name}"

    def timeout_for(self, params: P) -> float | None:
        return self.timeout

    async def execute(self, params: P) -> ToolResult:
        raise NotImplementedError
