"""Token estimation with tiktoken.

Providers normally report usage; these estimates cover turns where they
don't and the history size after compaction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import tiktoken

from stepwise.logging import get_logger

if TYPE_CHECKING:
    from stepwise.core.llm.provider import Message

log = get_logger("tokens")

ENCODING_NAME = "o200k_base"
CHARS_PER_TOKEN = 4.0
# Role and framing overhead per chat message
MESSAGE_OVERHEAD_TOKENS = 4

_encoder: tiktoken.Encoding | None = None
_encoder_failed = False

_token_cache: dict[int, int] = {}


def _get_encoder() -> tiktoken.Encoding | None:
    global _encoder, _encoder_failed
    if _encoder is None and not _encoder_failed:
        try:
            _encoder = tiktoken.get_encoding(ENCODING_NAME)
        except Exception as e:
            # Encoding files are fetched on first use and may be unreachable
            _encoder_failed = True
            log.warning("tiktoken encoding %s unavailable, estimating: %s", ENCODING_NAME, e)
    return _encoder


def count_tokens_heuristic(text: str) -> int:
    """Character-ratio estimate, no encoding."""
    return int(len(text) / CHARS_PER_TOKEN)


def count_tokens(text: str) -> int:
    """Count tokens in ``text`` (cached)."""
    if not text:
        return 0
    key = hash(text)
    if key not in _token_cache:
        encoder = _get_encoder()
        _token_cache[key] = (
            len(encoder.encode(text, disallowed_special=()))
            if encoder
            else count_tokens_heuristic(text)
        )
    return _token_cache[key]


def count_message_tokens(messages: list[Message]) -> int:
    """Estimate the prompt size of a message list."""
    total = 0
    for message in messages:
        total += MESSAGE_OVERHEAD_TOKENS + count_tokens(message.content or "")
        for call in message.tool_calls:
            total += count_tokens(call.tool_name) + count_tokens(call.raw_arguments)
    return total


def invalidate_cache() -> None:
    _token_cache.clear()
