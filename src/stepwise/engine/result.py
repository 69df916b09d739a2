"""Terminal outcome of an engine run."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ExecutionResult:
    """What ``ExecutionEngine.run`` returns.

    Exactly one of ``success`` and ``interrupted`` is true, except for
    failures where both are false and ``error`` says why.
    """

    success: bool
    response: str | None = None
    steps_executed: int = 0
    tokens_used: int = 0
    error: str | None = None
    interrupted: bool = False

    def __post_init__(self) -> None:
        if self.success and self.interrupted:
            raise ValueError("a result cannot be both successful and interrupted")
        if (self.error is not None) != (not self.success and not self.interrupted):
            raise ValueError("error must be set exactly when the run failed")

    @classmethod
    def success_result(cls, response: str, steps: int, tokens: int) -> ExecutionResult:
        return cls(success=True, response=response, steps_executed=steps, tokens_used=tokens)

    @classmethod
    def error_result(cls, message: str, steps: int = 0, tokens: int = 0) -> ExecutionResult:
        return cls(success=False, error=message, steps_executed=steps, tokens_used=tokens)

    @classmethod
    def interrupted_result(cls, steps: int = 0, tokens: int = 0) -> ExecutionResult:
        return cls(success=False, interrupted=True, steps_executed=steps, tokens_used=tokens)
