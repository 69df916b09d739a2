"""Human interaction channel used to confirm risky actions."""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable


class ConfirmationStatus(Enum):
    """Answer to a confirmation request."""

    APPROVED = "approved"
    APPROVED_FOR_SESSION = "approved_for_session"
    REJECTED = "rejected"
    NEEDS_MODIFICATION = "needs_modification"


@runtime_checkable
class HumanInteraction(Protocol):
    """Asks a person to confirm an action.

    Front ends implement this: a terminal prompt, a web dialog, an IDE popup.
    """

    async def request_confirmation(self, prompt: str) -> ConfirmationStatus: ...


def format_approval_prompt(action: str, description: str) -> str:
    return f"Approval required:\n  Action: {action}\n  Description: {description}\nApprove?"
