"""Approval policy for tool actions.

Decisions are made in this order:

1. YOLO mode approves everything.
2. Actions approved "for this session" are approved without asking.
3. With no interaction channel configured the action is approved, with a warning.
4. Otherwise the human is asked. Only an explicit approval proceeds; any
   other answer, or a failure while asking, rejects.
"""

from __future__ import annotations

import threading
from enum import Enum

from stepwise.approval.interaction import (
    ConfirmationStatus,
    HumanInteraction,
    format_approval_prompt,
)
from stepwise.logging import get_logger

log = get_logger("approval")


class ApprovalDecision(Enum):
    APPROVE = "approve"
    APPROVE_FOR_SESSION = "approve_for_session"
    REJECT = "reject"

    @property
    def approved(self) -> bool:
        return self is not ApprovalDecision.REJECT


class ApprovalGate:
    """Decides whether a requested action may proceed.

    The session approval set may be hit by concurrent front-end requests on
    the same session, so membership checks and inserts hold a lock.
    """

    def __init__(
        self,
        interaction: HumanInteraction | None = None,
        *,
        yolo: bool = False,
    ) -> None:
        self._interaction = interaction
        self._yolo = yolo
        self._session_approvals: set[str] = set()
        self._lock = threading.Lock()

    def is_auto_approve_mode(self) -> bool:
        return self._yolo

    def set_auto_approve_mode(self, enabled: bool) -> None:
        log.info("Auto-approve mode %s", "enabled" if enabled else "disabled")
        self._yolo = enabled

    def add_session_approval(self, action: str) -> None:
        with self._lock:
            self._session_approvals.add(action)

    def is_session_approved(self, action: str) -> bool:
        with self._lock:
            return action in self._session_approvals

    def clear_session_approvals(self) -> None:
        with self._lock:
            self._session_approvals.clear()

    def session_approval_count(self) -> int:
        with self._lock:
            return len(self._session_approvals)

    async def decide(self, call_id: str, action: str, description: str) -> ApprovalDecision:
        """Decide on one tool call.

        Args:
            call_id: Id of the tool call being approved (for logging)
            action: Label the session cache is keyed by, normally the tool name
            description: Human-readable summary of what will happen
        """
        if self._yolo:
            return ApprovalDecision.APPROVE

        if self.is_session_approved(action):
            log.debug("Call %s: %s approved for session", call_id, action)
            return ApprovalDecision.APPROVE

        if self._interaction is None:
            log.warning("Call %s: no interaction channel, approving %s", call_id, action)
            return ApprovalDecision.APPROVE

        try:
            status = await self._interaction.request_confirmation(
                format_approval_prompt(action, description)
            )
        except (Exception, KeyboardInterrupt) as e:
            log.warning("Call %s: approval request failed, rejecting: %r", call_id, e)
            return ApprovalDecision.REJECT

        match status:
            case ConfirmationStatus.APPROVED:
                return ApprovalDecision.APPROVE
            case ConfirmationStatus.APPROVED_FOR_SESSION:
                self.add_session_approval(action)
                return ApprovalDecision.APPROVE_FOR_SESSION
            case _:
                log.info("Call %s: %s rejected (%s)", call_id, action, status)
                return ApprovalDecision.REJECT
