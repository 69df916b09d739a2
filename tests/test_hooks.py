"""Tests for hook definitions, loading and the hook registry."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import yaml

from stepwise.approval.gate import ApprovalGate
from stepwise.commands.schema import ScriptExecution
from stepwise.config.paths import get_hook_dirs
from stepwise.config.schema import Config, SessionConfig
from stepwise.context.store import ContextStore
from stepwise.core.llm.provider import ToolCallRequest
from stepwise.engine.engine import ExecutionEngine
from stepwise.errors import ConfigError
from stepwise.hooks import (
    EnvVarCondition,
    FileExistsCondition,
    HookContext,
    HookRegistry,
    HookSpec,
    HookTrigger,
    HookType,
    ScriptCondition,
    ToolResultContainsCondition,
    expand_variables,
    load_hooks,
    parse_hook,
)
from stepwise.runtime import build_runtime
from stepwise.session.storage import Session
from stepwise.tools.pipeline import ToolInvocationPipeline
from stepwise.tools.registry import ToolRegistry
from tests.utils import EchoTool, ScriptedLLM, text_turn, tool_turn

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX shell commands")


def make_hook(
    name: str,
    hook_type: HookType,
    script: str,
    *,
    priority: int = 0,
    tools: tuple[str, ...] = (),
    file_patterns: tuple[str, ...] = (),
    error_pattern: str | None = None,
    conditions: tuple = (),
    enabled: bool = True,
) -> HookSpec:
    return HookSpec(
        name=name,
        trigger=HookTrigger(hook_type, tools, file_patterns, error_pattern),
        execution=ScriptExecution(script=script, timeout=5),
        priority=priority,
        conditions=conditions,
        enabled=enabled,
    )


def logged(work_dir: Path) -> list[str]:
    log_file = work_dir / "hooks.log"
    return log_file.read_text().splitlines() if log_file.exists() else []


# =============================================================================
# Definitions
# =============================================================================


class TestParseHook:
    def test_full_definition(self) -> None:
        hook = parse_hook({
            "name": "format-python",
            "description": "Format edited files",
            "priority": 10,
            "trigger": {
                "type": "post_tool_call",
                "tools": ["write_file"],
                "file_patterns": ["*.py"],
            },
            "conditions": [
                {"type": "file_exists", "path": "pyproject.toml"},
                {"type": "env_var", "var": "CI", "value": False},
                {"type": "script", "script": "which black"},
                {"type": "tool_result_contains", "pattern": "Wrote"},
            ],
            "execution": {"type": "script", "script": "black ${FILES}", "timeout": 30},
        })

        assert hook.trigger == HookTrigger(HookType.POST_TOOL_CALL, ("write_file",), ("*.py",))
        assert hook.conditions == (
            FileExistsCondition("pyproject.toml"),
            EnvVarCondition("CI", "False"),
            ScriptCondition("which black"),
            ToolResultContainsCondition("Wrote"),
        )
        assert hook.execution.timeout == 30
        assert hook.priority == 10
        assert hook.enabled

    @pytest.mark.parametrize(
        ("data", "message"),
        [
            ({"name": "Bad Name"}, "invalid hook name"),
            ({"name": "h", "execution": {"type": "script", "script": "x"}}, "trigger"),
            ({"name": "h", "trigger": {"type": "on_error"}}, "execution"),
            (
                {
                    "name": "h",
                    "trigger": {"type": "on_lunch"},
                    "execution": {"type": "script", "script": "x"},
                },
                "invalid trigger type",
            ),
            (
                {
                    "name": "h",
                    "trigger": {"type": "on_error"},
                    "execution": {"type": "agent", "agent": "a", "task": "t"},
                },
                "only script execution",
            ),
            (
                {
                    "name": "h",
                    "trigger": {"type": "on_error"},
                    "conditions": [{"type": "moon_phase"}],
                    "execution": {"type": "script", "script": "x"},
                },
                "condition 1",
            ),
            (
                {
                    "name": "h",
                    "trigger": {"type": "on_error", "error_pattern": "("},
                    "execution": {"type": "script", "script": "x"},
                },
                "error_pattern",
            ),
        ],
    )
    def test_invalid(self, data: dict, message: str) -> None:
        with pytest.raises(ConfigError, match=message):
            parse_hook(data)


class TestLoadHooks:
    def write_hook(self, directory: Path, name: str, script: str) -> None:
        directory.mkdir(parents=True, exist_ok=True)
        (directory / f"{name}.yaml").write_text(yaml.safe_dump({
            "name": name,
            "trigger": {"type": "on_session_start"},
            "execution": {"type": "script", "script": script},
        }))

    def test_project_overrides_user(self, tmp_path: Path) -> None:
        user, project = tmp_path / "user", tmp_path / "project"
        self.write_hook(user, "greet", "echo user")
        self.write_hook(user, "only-user", "echo u")
        self.write_hook(project, "greet", "echo project")
        (project / "notes.txt").write_text("ignored")

        hooks = {h.name: h for h in load_hooks([user, project, tmp_path / "missing"])}

        assert set(hooks) == {"greet", "only-user"}
        assert hooks["greet"].execution.script == "echo project"
        assert hooks["greet"].source == project / "greet.yaml"

    def test_broken_file(self, tmp_path: Path) -> None:
        (tmp_path / "bad.yaml").write_text("name: [unclosed")
        with pytest.raises(ConfigError, match="bad.yaml"):
            load_hooks([tmp_path])

    def test_hook_dirs(self, tmp_path: Path) -> None:
        dirs = get_hook_dirs(tmp_path)
        assert dirs[-1] == tmp_path / ".stepwise" / "hooks"


# =============================================================================
# Registry
# =============================================================================


class TestRegistry:
    def test_priority_order(self, tmp_path: Path) -> None:
        registry = HookRegistry(tmp_path, [
            make_hook("low", HookType.ON_ERROR, "true", priority=1),
            make_hook("high", HookType.ON_ERROR, "true", priority=5),
            make_hook("other", HookType.ON_SESSION_START, "true", priority=9),
        ])

        assert [h.name for h in registry.hooks(HookType.ON_ERROR)] == ["high", "low"]
        assert len(registry) == 3

    def test_register_enable_disable(self, tmp_path: Path) -> None:
        registry = HookRegistry(tmp_path)
        registry.register(make_hook("h", HookType.ON_ERROR, "true"))

        assert registry.disable("h")
        assert not registry.hooks()[0].enabled
        assert registry.enable("h")
        assert registry.hooks()[0].enabled
        assert not registry.disable("missing")
        assert registry.unregister("h")
        assert "h" not in registry

    @pytest.mark.parametrize(
        ("context", "expected"),
        [
            (HookContext(Path("."), tool_name="write_file", files=["src/app.py"]), True),
            (HookContext(Path("."), tool_name="write_file", files=["README.md"]), False),
            (HookContext(Path("."), tool_name="read_file", files=["src/app.py"]), False),
            (HookContext(Path("."), tool_name="write_file"), False),
        ],
    )
    def test_trigger_filters(self, context: HookContext, expected: bool) -> None:
        hook = make_hook(
            "fmt", HookType.POST_TOOL_CALL, "true", tools=("write_file",), file_patterns=("*.py",)
        )
        assert HookRegistry(Path(".")).matches(hook, context) is expected

    def test_error_pattern(self) -> None:
        hook = make_hook("net", HookType.ON_ERROR, "true", error_pattern=r"rate limit|timeout")
        registry = HookRegistry(Path("."))

        assert registry.matches(hook, HookContext(Path("."), error_message="LLM timeout"))
        assert not registry.matches(hook, HookContext(Path("."), error_message="bad key"))

    def test_expand_variables(self, tmp_path: Path) -> None:
        context = HookContext(
            tmp_path, session_id="s1", tool_name="write_file", files=["a.py", "b.py"]
        )

        text = expand_variables(
            "${TOOL_NAME} ${FILES} ${FILE} ${WORK_DIR} ${SESSION_ID} ${HOOK_TYPE}",
            HookType.POST_TOOL_CALL,
            context,
        )

        assert text == f"write_file a.py b.py a.py {tmp_path} s1 post_tool_call"


@posix_only
class TestTrigger:
    @pytest.mark.asyncio
    async def test_runs_in_priority_order(self, tmp_path: Path) -> None:
        registry = HookRegistry(tmp_path, [
            make_hook("second", HookType.ON_SESSION_START, "echo second >> hooks.log"),
            make_hook("first", HookType.ON_SESSION_START, "echo first >> hooks.log", priority=3),
            make_hook("off", HookType.ON_SESSION_START, "echo off >> hooks.log", enabled=False),
        ])

        outcomes = await registry.trigger(HookType.ON_SESSION_START, HookContext(tmp_path))

        assert [o.name for o in outcomes] == ["first", "second"]
        assert all(o.ok for o in outcomes)
        assert logged(tmp_path) == ["first", "second"]

    @pytest.mark.asyncio
    async def test_environment_and_variables(self, tmp_path: Path) -> None:
        registry = HookRegistry(tmp_path, [
            make_hook(
                "env",
                HookType.PRE_TOOL_CALL,
                'echo "$HOOK_TOOL_NAME ${FILE} $HOOK_TYPE" >> hooks.log',
            )
        ])
        context = HookContext(tmp_path, tool_name="write_file", files=["notes.md"])

        await registry.trigger(HookType.PRE_TOOL_CALL, context)

        assert logged(tmp_path) == ["write_file notes.md pre_tool_call"]

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_later_hooks(self, tmp_path: Path) -> None:
        registry = HookRegistry(tmp_path, [
            make_hook("broken", HookType.ON_ERROR, "echo oops; exit 2", priority=2),
            make_hook("after", HookType.ON_ERROR, "echo after >> hooks.log"),
        ])

        outcomes = await registry.trigger(HookType.ON_ERROR, HookContext(tmp_path))

        assert [(o.name, o.ok) for o in outcomes] == [("broken", False), ("after", True)]
        assert outcomes[0].output == "oops"
        assert logged(tmp_path) == ["after"]

    @pytest.mark.asyncio
    async def test_missing_script_file_reported(self, tmp_path: Path) -> None:
        hook = HookSpec(
            name="gone",
            trigger=HookTrigger(HookType.ON_ERROR),
            execution=ScriptExecution(script_file="hooks/gone.sh"),
        )

        outcomes = await HookRegistry(tmp_path, [hook]).trigger(
            HookType.ON_ERROR, HookContext(tmp_path)
        )

        assert not outcomes[0].ok
        assert "script file not found" in outcomes[0].output

    @pytest.mark.asyncio
    async def test_conditions(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("STEPWISE_TEST_FLAG", "on")
        (tmp_path / "marker").write_text("")
        registry = HookRegistry(tmp_path, [
            make_hook("all-hold", HookType.POST_TOOL_CALL, "echo yes >> hooks.log", conditions=(
                EnvVarCondition("STEPWISE_TEST_FLAG", "on"),
                FileExistsCondition("marker"),
                ScriptCondition("test -f marker"),
                ToolResultContainsCondition(r"passed"),
            )),
            make_hook("env-differs", HookType.POST_TOOL_CALL, "echo env >> hooks.log",
                      conditions=(EnvVarCondition("STEPWISE_TEST_FLAG", "off"),)),
            make_hook("script-fails", HookType.POST_TOOL_CALL, "echo script >> hooks.log",
                      conditions=(ScriptCondition("exit 1"),)),
            make_hook("no-file", HookType.POST_TOOL_CALL, "echo file >> hooks.log",
                      conditions=(FileExistsCondition("absent"),)),
        ])
        context = HookContext(tmp_path, tool_name="bash", tool_result="3 passed")

        outcomes = await registry.trigger(HookType.POST_TOOL_CALL, context)

        assert [o.name for o in outcomes] == ["all-hold"]
        assert logged(tmp_path) == ["yes"]


# =============================================================================
# Wiring
# =============================================================================


@posix_only
class TestHooksAroundToolCalls:
    @pytest.mark.asyncio
    async def test_pre_and_post_tool_call(self, tmp_path: Path) -> None:
        hooks = HookRegistry(tmp_path, [
            make_hook("pre", HookType.PRE_TOOL_CALL, 'echo "pre ${TOOL_NAME}" >> hooks.log'),
            make_hook("post", HookType.POST_TOOL_CALL, 'echo "post ${TOOL_RESULT}" >> hooks.log'),
        ])
        pipeline = ToolInvocationPipeline(ToolRegistry([EchoTool()]), ApprovalGate(), hooks=hooks)

        result = await pipeline.invoke(ToolCallRequest("c1", "echo", '{"text": "hi"}'))

        assert result.ok
        assert logged(tmp_path) == ["pre echo", "post hi"]

    @pytest.mark.asyncio
    async def test_unknown_tool_fires_no_hooks(self, tmp_path: Path) -> None:
        hooks = HookRegistry(tmp_path, [
            make_hook("pre", HookType.PRE_TOOL_CALL, "echo pre >> hooks.log"),
        ])
        pipeline = ToolInvocationPipeline(
            ToolRegistry([EchoTool()]), ApprovalGate(), hooks=hooks
        )

        result = await pipeline.invoke(ToolCallRequest("c1", "missing", "{}"))

        assert not result.ok
        assert logged(tmp_path) == []


@posix_only
class TestHooksAroundRuns:
    def make_engine(self, tmp_path: Path, llm: ScriptedLLM, hooks: HookRegistry) -> ExecutionEngine:
        pipeline = ToolInvocationPipeline(ToolRegistry([EchoTool()]), ApprovalGate(), hooks=hooks)
        return ExecutionEngine(
            llm,
            ContextStore(),
            pipeline,
            Session(id="hooked", work_dir=tmp_path),
            hooks=hooks,
            token_counter=len,
        )

    @pytest.mark.asyncio
    async def test_user_input_and_tool_hooks_in_order(self, tmp_path: Path) -> None:
        hooks = HookRegistry(tmp_path, [
            make_hook("pre-input", HookType.PRE_USER_INPUT, 'echo "pre ${USER_INPUT}" >> hooks.log'),
            make_hook("post-input", HookType.POST_USER_INPUT, "echo post-input >> hooks.log"),
            make_hook("tool", HookType.POST_TOOL_CALL, "echo tool >> hooks.log"),
            make_hook("error", HookType.ON_ERROR, "echo error >> hooks.log"),
        ])
        llm = ScriptedLLM([tool_turn(("c1", "echo", '{"text": "x"}')), text_turn("Done.")])
        engine = self.make_engine(tmp_path, llm, hooks)

        result = await engine.run("do it")

        assert result.success
        assert logged(tmp_path) == ["pre do it", "post-input", "tool"]

    @pytest.mark.asyncio
    async def test_on_error_receives_message(self, tmp_path: Path) -> None:
        hooks = HookRegistry(tmp_path, [
            make_hook("error", HookType.ON_ERROR, 'echo "$HOOK_ERROR_MESSAGE" >> hooks.log'),
        ])
        engine = self.make_engine(tmp_path, ScriptedLLM([RuntimeError("provider down")]), hooks)

        result = await engine.run("do it")

        assert not result.success
        assert logged(tmp_path) == ["provider down"]


@posix_only
class TestSessionHooks:
    @pytest.mark.asyncio
    async def test_start_and_close(self, tmp_path: Path) -> None:
        project = tmp_path / "project"
        hook_dir = project / ".stepwise" / "hooks"
        hook_dir.mkdir(parents=True)
        for hook_type in ("on_session_start", "on_session_end"):
            (hook_dir / f"{hook_type}.yaml").write_text(yaml.safe_dump({
                "name": hook_type.replace("_", "-"),
                "trigger": {"type": hook_type},
                "execution": {
                    "type": "script",
                    "script": f'echo "{hook_type} ${{SESSION_ID}}" >> hooks.log',
                },
            }))
        config = Config(session=SessionConfig(root=str(tmp_path / "home")))
        runtime = build_runtime(project, config, llm=ScriptedLLM())

        await runtime.start()
        await runtime.close()

        session_id = runtime.session.id
        assert len(runtime.hooks) == 2
        assert logged(project) == [
            f"on_session_start {session_id}",
            f"on_session_end {session_id}",
        ]
