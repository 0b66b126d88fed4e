"""
Vendor Status State Machine

All vendor status changes go through this module.

    PENDING   --approve-->    ACTIVE
    PENDING   --reject-->     REJECTED
    ACTIVE    --suspend-->    SUSPENDED
    SUSPENDED --reactivate--> ACTIVE

REJECTED is terminal for the normal flow. Any other pair, including a
"transition" to the current status, is rejected with InvalidTransitionError.
"""

from typing import Dict, List

from app.core.exceptions import InvalidTransitionError
from app.models.vendor import VendorStatus


# current_status -> [allowed next statuses]
VENDOR_TRANSITIONS: Dict[str, List[str]] = {
    VendorStatus.PENDING.value: [
        VendorStatus.ACTIVE.value,      # Approve
        VendorStatus.REJECTED.value,    # Reject
    ],
    VendorStatus.ACTIVE.value: [
        VendorStatus.SUSPENDED.value,   # Suspend
    ],
    VendorStatus.SUSPENDED.value: [
        VendorStatus.ACTIVE.value,      # Reactivate
    ],
    VendorStatus.REJECTED.value: [],    # Terminal - manual override only
}

TRANSITION_ACTIONS: Dict[tuple, str] = {
    (VendorStatus.PENDING.value, VendorStatus.ACTIVE.value): "Approve",
    (VendorStatus.PENDING.value, VendorStatus.REJECTED.value): "Reject",
    (VendorStatus.ACTIVE.value, VendorStatus.SUSPENDED.value): "Suspend",
    (VendorStatus.SUSPENDED.value, VendorStatus.ACTIVE.value): "Reactivate",
}


def can_transition(current_status: str, new_status: str) -> bool:
    """Check if a transition is allowed."""
    return new_status in VENDOR_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(current_status: str) -> List[str]:
    return VENDOR_TRANSITIONS.get(current_status, [])


def get_transition_action(current_status: str, new_status: str) -> str:
    """Human-readable action name, used as the audit issue title."""
    return TRANSITION_ACTIONS.get((current_status, new_status), f"{current_status} -> {new_status}")


def validate_transition(current_status: str, new_status: str) -> None:
    """Raise InvalidTransitionError unless the edge exists."""
    if not can_transition(current_status, new_status):
        raise InvalidTransitionError(
            "vendor",
            current_status,
            new_status,
            allowed=get_allowed_transitions(current_status),
        )


def get_source_statuses(new_status: str) -> List[str]:
    """Statuses from which new_status can be reached, in table order."""
    return [current for current, allowed in VENDOR_TRANSITIONS.items() if new_status in allowed]
