"""Wiring of the engine and its collaborators for one working directory."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from stepwise.approval.gate import ApprovalGate
from stepwise.commands.loader import load_commands
from stepwise.commands.runner import CommandRunner
from stepwise.config.loader import load_config
from stepwise.config.paths import get_command_dirs, get_hook_dirs, get_project_dir
from stepwise.config.secrets import SECRETS_FILE
from stepwise.context.compaction import Compactor
from stepwise.context.store import ContextStore
from stepwise.core.llm.litellm_provider import create_provider
from stepwise.engine.engine import ExecutionEngine
from stepwise.engine.result import ExecutionResult
from stepwise.hooks.loader import load_hooks
from stepwise.hooks.registry import HookRegistry
from stepwise.hooks.schema import HookContext, HookType
from stepwise.logging import get_logger
from stepwise.session.storage import Session, SessionStore
from stepwise.tools.pipeline import ToolInvocationPipeline
from stepwise.tools.registry import ToolRegistry, build_registry

if TYPE_CHECKING:
    from stepwise.approval.interaction import HumanInteraction
    from stepwise.config.schema import Config
    from stepwise.core.llm.provider import LLMProvider
    from stepwise.engine.events import EventSink

log = get_logger("runtime")


@dataclass
class Runtime:
    """Everything a front end needs to drive one session."""

    config: Config
    work_dir: Path
    llm: LLMProvider
    session_store: SessionStore
    session: Session
    context: ContextStore
    approval_gate: ApprovalGate
    registry: ToolRegistry
    pipeline: ToolInvocationPipeline
    engine: ExecutionEngine
    commands: CommandRunner
    hooks: HookRegistry

    async def start(self) -> None:
        """Fire the session start hooks."""
        await self.hooks.trigger(HookType.ON_SESSION_START, self._hook_context())

    async def close(self) -> None:
        """Fire the session end hooks."""
        await self.hooks.trigger(HookType.ON_SESSION_END, self._hook_context())

    def _hook_context(self) -> HookContext:
        return HookContext(work_dir=self.work_dir, session_id=self.session.id)

    async def run_agent(self, agent_name: str, task: str) -> ExecutionResult:
        """Run ``task`` with a named agent persona in a fresh, unsaved context."""
        agent = self.config.agents.get(agent_name)
        if agent is None:
            return ExecutionResult.error_result(f"Unknown agent: {agent_name}")

        registry = self.registry if agent.tools is None else self.registry.restricted(agent.tools)
        engine_config = replace(
            self.config.engine,
            max_steps=agent.max_steps or self.config.engine.max_steps,
            max_thinking_steps=agent.max_thinking_steps or self.config.engine.max_thinking_steps,
        )
        context = ContextStore()
        engine = ExecutionEngine(
            self.llm,
            context,
            ToolInvocationPipeline(
                registry,
                self.approval_gate,
                default_timeout=self.config.tools.default_timeout,
                hooks=self.hooks,
                session_id=self.session.id,
            ),
            self.session,
            compactor=Compactor(self.llm),
            config=engine_config,
            system_prompt=agent.system_prompt,
            event_sink=self.engine.event_sink,
        )
        log.info("Running agent %s", agent_name)
        return await engine.run(task)


def build_runtime(
    work_dir: str | Path,
    config: Config | None = None,
    *,
    interaction: HumanInteraction | None = None,
    llm: LLMProvider | None = None,
    event_sink: EventSink | None = None,
    session_id: str | None = None,
) -> Runtime:
    """Assemble a Runtime.

    Resumes the working directory's session (or ``session_id``) and replays
    its history log.

    Raises:
        ConfigError: For invalid configuration, a missing model or
            credentials, or a broken custom command or hook definition.
    """
    work_dir = Path(work_dir).expanduser().resolve()
    config = config or load_config(work_dir)

    if llm is None:
        llm = create_provider(config.llm, secrets_path=get_project_dir(work_dir) / SECRETS_FILE)

    session_store = SessionStore(Path(config.session.root or Path.home()))
    session = None
    if session_id:
        session = session_store.load(session_id)
        if session is None:
            log.warning("Session %s not found, using the working directory's session", session_id)
    if session is None:
        session = session_store.get_or_create(work_dir)

    context = ContextStore(session_store.history_log(session.id))
    context.restore()

    approval_gate = ApprovalGate(interaction, yolo=config.approval.yolo)
    registry = build_registry(work_dir, config)
    hooks = HookRegistry(work_dir, load_hooks(get_hook_dirs(work_dir)))
    pipeline = ToolInvocationPipeline(
        registry,
        approval_gate,
        default_timeout=config.tools.default_timeout,
        hooks=hooks,
        session_id=session.id,
    )
    engine = ExecutionEngine(
        llm,
        context,
        pipeline,
        session,
        compactor=Compactor(llm),
        config=config.engine,
        system_prompt=config.engine.system_prompt,
        event_sink=event_sink,
        session_store=session_store,
        hooks=hooks,
    )

    runtime = Runtime(
        config=config,
        work_dir=work_dir,
        llm=llm,
        session_store=session_store,
        session=session,
        context=context,
        approval_gate=approval_gate,
        registry=registry,
        pipeline=pipeline,
        engine=engine,
        commands=CommandRunner(load_commands(get_command_dirs(work_dir)), work_dir),
        hooks=hooks,
    )
    runtime.commands.agent_runner = runtime.run_agent
    return runtime
