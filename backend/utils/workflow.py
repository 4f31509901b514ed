"""Status transition tables for product requests and orders."""

from __future__ import annotations

from typing import Dict, FrozenSet

from utils.validation import ValidationError

PRODUCT_REQUEST_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"under_review", "needs_partner_confirmation", "approved", "rejected"}),
    "under_review": frozenset({"needs_partner_confirmation", "approved", "rejected"}),
    "needs_partner_confirmation": frozenset({"approved", "rejected"}),
    "approved": frozenset({"in_mysklad"}),
    "rejected": frozenset(),
    "in_mysklad": frozenset(),
}

ORDER_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    "pending": frozenset({"processing", "cancelled"}),
    "processing": frozenset({"shipped", "cancelled"}),
    "shipped": frozenset({"delivered"}),
    "delivered": frozenset(),
    "cancelled": frozenset(),
}


class InvalidTransitionError(Exception):
    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move from '{current}' to '{target}'")


def check_transition(table: Dict[str, FrozenSet[str]], current: str, target: str) -> None:
    if target not in table:
        raise ValidationError(f"Unknown status '{target}'")
    if target not in table.get(current, frozenset()):
        raise InvalidTransitionError(current, target)
