"""Tests for the context store, checkpoints and the history log."""

from __future__ import annotations

from pathlib import Path

from stepwise.context.history_log import HistoryLog
from stepwise.context.store import ContextStore
from stepwise.core.llm.provider import Message, Role, ToolCallRequest


def conversation() -> list[Message]:
    call = ToolCallRequest("c1", "read_file", '{"path": "a.txt"}')
    return [
        Message.user("read a.txt"),
        Message.assistant(None, (call,)),
        Message.tool_result("c1", "hello"),
        Message.assistant("It says hello."),
    ]


class TestHistory:
    def test_append_order(self) -> None:
        store = ContextStore()
        store.add_message(Message.user("one"))
        store.add_messages([Message.assistant("two"), Message.user("three")])

        assert [m.content for m in store.get_history()] == ["one", "two", "three"]
        assert len(store) == 3

    def test_get_history_is_a_copy(self) -> None:
        store = ContextStore()
        store.add_message(Message.user("one"))

        history = store.get_history()
        history.append(Message.user("sneaky"))

        assert len(store) == 1

    def test_replace_history(self) -> None:
        store = ContextStore()
        store.add_messages(conversation())

        store.replace_history([Message.assistant("summary")])

        assert [m.content for m in store.get_history()] == ["summary"]

    def test_clear(self) -> None:
        store = ContextStore()
        store.add_messages(conversation())
        store.set_token_count(42)
        store.create_checkpoint(0)

        store.clear()

        assert len(store) == 0
        assert store.get_token_count() == 0
        assert store.list_checkpoints() == []

    def test_token_count_never_negative(self) -> None:
        store = ContextStore()
        store.set_token_count(-5)
        assert store.get_token_count() == 0


class TestCheckpoints:
    def test_restore_rolls_back(self) -> None:
        store = ContextStore()
        store.add_message(Message.user("one"))
        store.set_token_count(10)
        store.create_checkpoint(1)
        store.add_message(Message.assistant("two"))
        store.set_token_count(20)

        assert store.restore_checkpoint(1)

        assert [m.content for m in store.get_history()] == ["one"]
        assert store.get_token_count() == 10

    def test_restore_drops_later_checkpoints(self) -> None:
        store = ContextStore()
        for i in range(4):
            store.create_checkpoint(i)
            store.add_message(Message.user(str(i)))

        store.restore_checkpoint(1)

        assert [cp.checkpoint_id for cp in store.list_checkpoints()] == [0, 1]
        assert store.get_checkpoint(3) is None

    def test_restore_unknown_id(self) -> None:
        store = ContextStore()
        store.add_message(Message.user("one"))

        assert not store.restore_checkpoint(7)
        assert len(store) == 1

    def test_checkpoint_is_a_snapshot(self) -> None:
        store = ContextStore()
        store.add_message(Message.user("one"))
        checkpoint = store.create_checkpoint(0)
        store.add_message(Message.user("two"))

        assert checkpoint.message_count == 1

    def test_same_id_overwrites(self) -> None:
        store = ContextStore()
        store.create_checkpoint(0)
        store.add_message(Message.user("one"))
        store.create_checkpoint(0)

        assert store.get_checkpoint(0).message_count == 1


class TestHistoryLog:
    def test_restore_after_restart(self, tmp_path: Path) -> None:
        log_path = tmp_path / "history.jsonl"
        store = ContextStore(HistoryLog(log_path))
        store.add_messages(conversation())
        store.set_token_count(123)

        restored = ContextStore(HistoryLog(log_path))
        assert restored.restore()

        history = restored.get_history()
        assert [m.role for m in history] == [Role.USER, Role.ASSISTANT, Role.TOOL, Role.ASSISTANT]
        assert history[1].tool_calls[0].tool_name == "read_file"
        assert history[2].tool_call_id == "c1"
        assert restored.get_token_count() == 123

    def test_replacement_and_restore_are_replayed(self, tmp_path: Path) -> None:
        log_path = tmp_path / "history.jsonl"
        store = ContextStore(HistoryLog(log_path))
        store.add_messages(conversation())
        store.replace_history([Message.assistant("summary")])
        store.create_checkpoint(1)
        store.add_message(Message.user("next"))
        store.restore_checkpoint(1)

        restored = ContextStore(HistoryLog(log_path))
        restored.restore()

        assert [m.content for m in restored.get_history()] == ["summary"]

    def test_replacement_rewrites_log(self, tmp_path: Path) -> None:
        log_path = tmp_path / "history.jsonl"
        store = ContextStore(HistoryLog(log_path))
        store.add_messages(conversation())
        store.set_token_count(500)

        for _ in range(3):
            store.replace_history([Message.assistant("summary"), Message.user("next")])

        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        assert '"summary"' in lines[0]
        assert lines[-1] == '{"type": "token", "count": 500}'
        assert not (tmp_path / "history.jsonl.tmp").exists()

    def test_clear_truncates(self, tmp_path: Path) -> None:
        log = HistoryLog(tmp_path / "history.jsonl")
        store = ContextStore(log)
        store.add_messages(conversation())

        store.clear()

        assert not log.exists()
        assert not ContextStore(log).restore()

    def test_corrupt_lines_skipped(self, tmp_path: Path) -> None:
        log_path = tmp_path / "history.jsonl"
        store = ContextStore(HistoryLog(log_path))
        store.add_message(Message.user("one"))
        with open(log_path, "a", encoding="utf-8") as f:
            f.write("{not json\n")
            f.write('{"type": "message", "data": {"role": "nobody"}}\n')
        store.add_message(Message.assistant("two"))

        state = HistoryLog(log_path).replay()

        assert [m.content for m in state.messages] == ["one", "two"]

    def test_missing_log(self, tmp_path: Path) -> None:
        store = ContextStore(HistoryLog(tmp_path / "missing" / "history.jsonl"))
        assert not store.restore()
