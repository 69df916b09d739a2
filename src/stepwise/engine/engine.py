"""The step loop: stream a model turn, run its tool calls, repeat.

One engine serves one session and runs at most one task at a time. Each
step streams one model turn. A turn that requests tools has them dispatched
sequentially, in the order requested, and the loop continues so the model
sees the results. A turn with text and no tool calls ends the run. A turn
with neither is a thinking step; after ``max_thinking_steps`` of those in a
row a warning status is emitted and the loop carries on, bounded by
``max_steps``.

``interrupt()`` is cooperative: it is observed at step boundaries and
between stream chunks, never in the middle of a tool execution.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from stepwise.config.schema import EngineConfig
from stepwise.core.llm.provider import Message, ToolCallRequest, Usage
from stepwise.core.tokens import count_message_tokens
from stepwise.engine.events import EngineUpdate, EventSink, UpdateKind
from stepwise.engine.metrics import TaskMetrics
from stepwise.engine.result import ExecutionResult
from stepwise.engine.stream import StreamAccumulator
from stepwise.errors import EngineBusyError, SessionError
from stepwise.hooks.schema import HookContext, HookType
from stepwise.logging import get_logger

if TYPE_CHECKING:
    from stepwise.context.compaction import Compactor
    from stepwise.context.store import ContextStore
    from stepwise.core.llm.provider import LLMProvider
    from stepwise.hooks.registry import HookRegistry
    from stepwise.session.storage import Session, SessionStore
    from stepwise.tools.pipeline import ToolInvocationPipeline

log = get_logger("engine")

DEFAULT_SYSTEM_PROMPT = """You are a coding assistant working in the directory {work_dir}.
Use the available tools to inspect and change files and to run commands.
Call tools when you need information or need to act; answer in plain text once the task is done."""


class EngineState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


def compose_input(text: str, extra_context: str | None) -> str:
    """User input with optional extra context as a system-tagged segment."""
    if not extra_context:
        return text
    return f"{text}\n\n<system>\n{extra_context}\n</system>"


class ExecutionEngine:
    """Drives think/act/observe steps for one session.

    Collaborators are passed in; the engine looks nothing up on its own.
    """

    def __init__(
        self,
        llm: LLMProvider,
        context: ContextStore,
        pipeline: ToolInvocationPipeline,
        session: Session,
        *,
        compactor: Compactor | None = None,
        config: EngineConfig | None = None,
        system_prompt: str | None = None,
        event_sink: EventSink | None = None,
        session_store: SessionStore | None = None,
        token_counter: Callable[[list[Message]], int] = count_message_tokens,
        hooks: HookRegistry | None = None,
    ) -> None:
        self.llm = llm
        self.context = context
        self.pipeline = pipeline
        self.session = session
        self.compactor = compactor
        self.config = config or EngineConfig()
        self.system_prompt = system_prompt or DEFAULT_SYSTEM_PROMPT.format(
            work_dir=session.work_dir
        )
        self.event_sink = event_sink
        self.session_store = session_store
        self._count_tokens = token_counter
        self.hooks = hooks

        self._state = EngineState.IDLE
        self._last_outcome = EngineState.IDLE
        self._state_lock = threading.Lock()
        self._interrupt = threading.Event()
        self._metrics: TaskMetrics | None = None

    # -- public surface --------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def last_outcome(self) -> EngineState:
        """Terminal state of the most recent run (IDLE before the first)."""
        return self._last_outcome

    @property
    def metrics(self) -> TaskMetrics | None:
        """Metrics of the current or most recent run."""
        return self._metrics

    def is_running(self) -> bool:
        return self._state is EngineState.RUNNING

    def interrupt(self) -> None:
        """Ask the running task to stop at the next chunk or step boundary."""
        if self.is_running():
            log.info("Interrupt requested for session %s", self.session.id)
            self._interrupt.set()

    async def run(self, input: str, extra_context: str | None = None) -> ExecutionResult:
        """Run one task to completion, failure or interruption.

        Never raises, except for cancellation of the awaiting task.
        """
        with self._state_lock:
            if self._state is EngineState.RUNNING:
                busy = EngineBusyError(self.session.id)
                log.warning("Rejected run for session %s: %s", self.session.id, busy)
                return ExecutionResult.error_result(str(busy))
            self._state = EngineState.RUNNING
            self._interrupt.clear()

        metrics = TaskMetrics(task=input)
        self._metrics = metrics
        outcome = EngineState.FAILED
        try:
            try:
                result = await self._run(input, extra_context, metrics)
            except Exception as e:
                log.exception("Run failed in session %s", self.session.id)
                result = ExecutionResult.error_result(
                    str(e) or type(e).__name__, metrics.steps, metrics.tokens
                )
            if result.success:
                outcome = EngineState.COMPLETED
            elif result.interrupted:
                outcome = EngineState.INTERRUPTED
            else:
                await self._fire_hooks(HookType.ON_ERROR, error_message=result.error)
            return result
        except asyncio.CancelledError:
            outcome = EngineState.INTERRUPTED
            raise
        finally:
            metrics.finish()
            log.info("Run %s: %s", outcome.value, metrics.summary())
            self._touch_session()
            with self._state_lock:
                self._last_outcome = outcome
                self._state = EngineState.IDLE

    # -- step loop -------------------------------------------------------

    async def _run(
        self, input: str, extra_context: str | None, metrics: TaskMetrics
    ) -> ExecutionResult:
        self.context.create_checkpoint(0)
        await self._fire_hooks(HookType.PRE_USER_INPUT, user_input=input)
        self.context.add_message(Message.user(compose_input(input, extra_context)))
        await self._fire_hooks(HookType.POST_USER_INPUT, user_input=input)

        max_steps = self.config.max_steps
        thinking_steps = 0

        for step in range(1, max_steps + 1):
            if self._interrupt.is_set():
                return self._interrupted(metrics)

            await self._compact_if_needed()

            self.context.create_checkpoint(step)
            metrics.record_step()
            self._emit(UpdateKind.STEP_BEGIN, step=step)

            turn = await self._stream_turn()
            if turn is None or self._interrupt.is_set():
                return self._interrupted(metrics)

            if turn.finish_reason == "length":
                message = f"Model output was cut off at the token limit (step {step})"
                log.warning("Session %s: %s", self.session.id, message)
                self._emit(UpdateKind.STATUS, message=message, level="warning")

            calls = turn.tool_calls()
            text = turn.text
            if calls or text:
                self.context.add_message(Message.assistant(text or None, tuple(calls)))

            added: list[Message] = []
            if calls:
                thinking_steps = 0
                added = await self._dispatch(calls, metrics)

            self._update_tokens(turn.usage, added, metrics)
            self._emit(UpdateKind.STEP_END, step=step)

            if calls:
                continue

            if text.strip():
                return ExecutionResult.success_result(text, metrics.steps, metrics.tokens)

            thinking_steps += 1
            if thinking_steps >= self.config.max_thinking_steps:
                message = (
                    f"No tool call or answer after {thinking_steps} thinking steps "
                    f"(step {step} of {max_steps})"
                )
                log.warning("Session %s: %s", self.session.id, message)
                self._emit(UpdateKind.STATUS, message=message, level="warning")
                thinking_steps = 0

        if self._interrupt.is_set():
            return self._interrupted(metrics)
        return ExecutionResult.error_result(
            f"Reached the maximum of {max_steps} steps without a final answer",
            metrics.steps,
            metrics.tokens,
        )

    async def _stream_turn(self) -> StreamAccumulator | None:
        """Stream one model turn. Returns None if interrupted mid-stream."""
        turn = StreamAccumulator()
        stream = self.llm.generate_stream(
            self.system_prompt,
            self.context.get_history(),
            self.pipeline.registry.tool_schemas(),
        )
        try:
            async for chunk in stream:
                if self._interrupt.is_set():
                    return None
                turn.add(chunk)
                if chunk.text:
                    self._emit(UpdateKind.TEXT_CHUNK, text=chunk.text)
                if chunk.reasoning:
                    self._emit(UpdateKind.REASONING_CHUNK, text=chunk.reasoning)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
        return turn

    async def _dispatch(self, calls: list[ToolCallRequest], metrics: TaskMetrics) -> list[Message]:
        """Run tool calls one after another, appending each result."""
        added: list[Message] = []
        for call in calls:
            self._emit(
                UpdateKind.TOOL_CALL, id=call.id, name=call.tool_name, arguments=call.raw_arguments
            )
            result = await self.pipeline.invoke(call)
            metrics.record_tool(call.tool_name, result.ok)

            message = Message.tool_result(call.id, result.to_content())
            self.context.add_message(message)
            added.append(message)
            self._emit(
                UpdateKind.TOOL_RESULT,
                id=call.id,
                name=call.tool_name,
                ok=result.ok,
                content=message.content,
            )
        return added

    def _update_tokens(self, usage: Usage | None, added: list[Message], metrics: TaskMetrics) -> None:
        """Recompute the context size after a step.

        Provider usage covers the prompt and the completion; tool results
        appended afterwards are estimated on top. Without usage the whole
        history is estimated.
        """
        if usage is not None and usage.total_tokens:
            metrics.record_tokens(usage.total_tokens)
            context_tokens = usage.total_tokens + (self._count_tokens(added) if added else 0)
        else:
            context_tokens = self._count_tokens(self.context.get_history())
            metrics.record_tokens(context_tokens)

        self.context.set_token_count(context_tokens)
        self._emit(
            UpdateKind.TOKEN_USAGE,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
            context_tokens=context_tokens,
        )

    async def _compact_if_needed(self) -> None:
        if self.compactor is None:
            return
        tokens = self.context.get_token_count()
        if tokens <= self.config.max_context_tokens:
            return

        log.info("Context at %d tokens exceeds %d, compacting",
                 tokens, self.config.max_context_tokens)
        self._emit(UpdateKind.COMPACTION_BEGIN, tokens=tokens)
        outcome = await self.compactor.compact_store(self.context)
        if outcome.compacted:
            self.context.set_token_count(self._count_tokens(self.context.get_history()))
        self._emit(
            UpdateKind.COMPACTION_END,
            compacted=outcome.compacted,
            messages_before=outcome.messages_before,
            messages_after=outcome.messages_after,
            error=outcome.error,
        )

    # -- helpers ---------------------------------------------------------

    def _interrupted(self, metrics: TaskMetrics) -> ExecutionResult:
        log.info("Session %s interrupted after %d steps", self.session.id, metrics.steps)
        self._emit(UpdateKind.STEP_INTERRUPTED, step=metrics.steps)
        return ExecutionResult.interrupted_result(metrics.steps, metrics.tokens)

    async def _fire_hooks(self, hook_type: HookType, **fields: Any) -> None:
        if self.hooks is None:
            return
        context = HookContext(work_dir=self.hooks.work_dir, session_id=self.session.id, **fields)
        await self.hooks.trigger(hook_type, context)

    def _emit(self, kind: UpdateKind, **payload: Any) -> None:
        if self.event_sink is None:
            return
        try:
            self.event_sink(EngineUpdate(kind=kind, session_id=self.session.id, payload=payload))
        except Exception as e:
            log.warning("Event sink error on %s: %s", kind.value, e)

    def _touch_session(self) -> None:
        self.session.touch()
        if self.session_store is None:
            return
        try:
            self.session_store.save(self.session)
        except SessionError as e:
            log.warning("%s", e)
