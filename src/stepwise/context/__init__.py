"""Conversation context: history store, checkpoints, compaction."""

from stepwise.context.checkpoint import Checkpoint
from stepwise.context.compaction import CompactionResult, Compactor
from stepwise.context.history_log import HISTORY_FILENAME, HistoryLog
from stepwise.context.store import ContextStore

__all__ = [
    "Checkpoint",
    "CompactionResult",
    "Compactor",
    "ContextStore",
    "HISTORY_FILENAME",
    "HistoryLog",
]
