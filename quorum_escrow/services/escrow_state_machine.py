"""Escrow state machine: pure quorum logic, no DB dependency.

An escrow is ``open`` until it is either released (quorum reached) or
cancelled by its creator; both paths end in the single terminal state
``completed``. The quorum size is derived from the number of *distinct*
addresses filling the approver slots, never from the slot count.
"""

from collections.abc import Iterable
from enum import StrEnum


class EscrowStatus(StrEnum):
    OPEN = "open"
    COMPLETED = "completed"


class EscrowAction(StrEnum):
    CREATE = "create_escrow"
    APPROVE = "approve_release"
    CANCEL = "cancel_escrow"


TERMINAL_STATUSES: frozenset[EscrowStatus] = frozenset({EscrowStatus.COMPLETED})

# distinct approver count -> approvals required to release
QUORUM: dict[int, int] = {
    0: 0,
    1: 1,
    2: 2,
    3: 2,
}


def distinct_approvers(slots: Iterable[str | None]) -> list[str]:
    """Collapse approver slots to their sorted distinct, non-empty addresses."""
    return sorted({slot for slot in slots if slot is not None})


def required_approvals(slots: Iterable[str | None]) -> int:
    """Approvals needed before release: 1 of 1, 2 of 2, 2 of 3."""
    return QUORUM.get(len(distinct_approvers(slots)), 2)


def quorum_reached(approvals: Iterable[str], slots: Iterable[str | None]) -> bool:
    return len(list(approvals)) >= required_approvals(slots)


def get_available_actions(
    status: str,
    *,
    is_creator: bool,
    is_approver: bool,
    has_approved: bool,
    approval_count: int,
) -> list[str]:
    """Return the transitions an address may currently attempt on an escrow."""
    try:
        current = EscrowStatus(status)
    except ValueError:
        return []

    if current in TERMINAL_STATUSES:
        return []

    actions: list[str] = []
    if is_approver and not has_approved:
        actions.append(EscrowAction.APPROVE.value)
    if is_creator and approval_count == 0:
        actions.append(EscrowAction.CANCEL.value)
    return actions
