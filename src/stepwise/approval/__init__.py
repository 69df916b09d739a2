"""Approval gating for tool actions."""

from stepwise.approval.gate import ApprovalDecision, ApprovalGate
from stepwise.approval.interaction import (
    ConfirmationStatus,
    HumanInteraction,
    format_approval_prompt,
)

__all__ = [
    "ApprovalDecision",
    "ApprovalGate",
    "ConfirmationStatus",
    "HumanInteraction",
    "format_approval_prompt",
]
