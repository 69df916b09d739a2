"""Token-budget compaction: summarize older history, keep the recent tail.

The history is split at the point where, scanning backwards, the
``preserved_messages``-th USER/ASSISTANT message is found. Everything before
that point is summarized by one tool-less LLM call and replaced with a single
ASSISTANT message; everything from that point on is kept verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from stepwise.core.llm.provider import Message, Role
from stepwise.logging import get_logger

if TYPE_CHECKING:
    from stepwise.context.store import ContextStore
    from stepwise.core.llm.provider import LLMProvider

log = get_logger("compaction")

PRESERVED_MESSAGES = 2

COMPACTION_SYSTEM_PROMPT = "You are a helpful assistant that compacts conversation context."

COMPACTION_PROMPT = """Summarize the conversation below so it can replace the original messages.
Keep:
1. The user's main questions and needs
2. Key operations completed and their results (files read or changed, commands run)
3. Important context, decisions and open problems needed to continue the work

Be concise and factual. Do not add new instructions.

{transcript}"""

SUMMARY_PREFIX = "Previous context has been compacted. Here is the compaction output:\n\n"


@dataclass
class CompactionResult:
    """Outcome of one compaction attempt."""

    compacted: bool
    messages_before: int
    messages_after: int
    error: str | None = None


def find_preservation_boundary(history: list[Message], preserved: int = PRESERVED_MESSAGES) -> int | None:
    """Index of the first preserved message, or None if too few exchanges exist."""
    found = 0
    for index in range(len(history) - 1, -1, -1):
        if history[index].role in (Role.USER, Role.ASSISTANT):
            found += 1
            if found == preserved:
                return index
    return None


def render_transcript(messages: list[Message]) -> str:
    parts: list[str] = []
    for i, message in enumerate(messages, start=1):
        lines = [f"## Message {i}", f"Role: {message.role.value}"]
        if message.content:
            lines.append(f"Content: {message.content}")
        for call in message.tool_calls:
            lines.append(f"Tool call: {call.tool_name}({call.raw_arguments})")
        parts.append("\n".join(lines))
    return "\n\n".join(parts)


class Compactor:
    """Summarizes older history through the LLM abstraction."""

    def __init__(self, llm: LLMProvider, preserved_messages: int = PRESERVED_MESSAGES) -> None:
        self._llm = llm
        self.preserved_messages = preserved_messages

    async def _summarize(self, messages: list[Message]) -> str:
        prompt = COMPACTION_PROMPT.format(transcript=render_transcript(messages))
        parts: list[str] = []
        async for chunk in self._llm.generate_stream(
            COMPACTION_SYSTEM_PROMPT, [Message.user(prompt)], []
        ):
            if chunk.text:
                parts.append(chunk.text)
        return "".join(parts).strip()

    async def compact(self, history: list[Message]) -> list[Message]:
        """Return the compacted history, or ``history`` itself if nothing changed.

        Never raises: a failed summarization keeps the original history.
        """
        compacted, _ = await self._compact(history)
        return compacted

    async def _compact(self, history: list[Message]) -> tuple[list[Message], str | None]:
        boundary = find_preservation_boundary(history, self.preserved_messages)
        if boundary is None:
            log.debug("Skipping compaction: fewer than %d exchanges", self.preserved_messages)
            return history, None
        if boundary == 0:
            return history, None

        to_compact, preserved = history[:boundary], history[boundary:]
        try:
            summary = await self._summarize(to_compact)
        except Exception as e:
            log.warning("Compaction failed, keeping original history: %s", e)
            return history, str(e)
        if not summary:
            log.warning("Compaction returned an empty summary, keeping original history")
            return history, "empty summary"

        log.info("Compacted %d messages, kept %d", len(to_compact), len(preserved))
        return [Message.assistant(SUMMARY_PREFIX + summary), *preserved], None

    async def compact_store(self, store: ContextStore) -> CompactionResult:
        """Compact a store's history in place."""
        history = store.get_history()
        compacted, error = await self._compact(history)
        if compacted is history:
            return CompactionResult(
                compacted=False,
                messages_before=len(history),
                messages_after=len(history),
                error=error,
            )
        store.replace_history(compacted)
        return CompactionResult(
            compacted=True,
            messages_before=len(history),
            messages_after=len(compacted),
        )
