"""
Optimistic field transitions with explicit rollback.

Usage:
    transition = PendingTransition(student, "is_deprioritized", True)
    transition.apply()
    try:
        persist(student)
    except ProcedureError:
        transition.rollback()
        raise
    transition.commit()
"""

from typing import Any

PENDING = "pending"
APPLIED = "applied"
COMMITTED = "committed"
ROLLED_BACK = "rolled_back"


class PendingTransition:
    def __init__(self, target: dict, field: str, new_value: Any):
        self.target = target
        self.field = field
        self.new_value = new_value
        self.previous_value = target.get(field)
        self.state = PENDING

    def apply(self) -> dict:
        if self.state != PENDING:
            raise RuntimeError(f"Cannot apply a transition in state {self.state}")
        self.target[self.field] = self.new_value
        self.state = APPLIED
        return self.target

    def commit(self) -> dict:
        if self.state != APPLIED:
            raise RuntimeError(f"Cannot commit a transition in state {self.state}")
        self.state = COMMITTED
        return self.target

    def rollback(self) -> dict:
        if self.state != APPLIED:
            raise RuntimeError(f"Cannot roll back a transition in state {self.state}")
        self.target[self.field] = self.previous_value
        self.state = ROLLED_BACK
        return self.target
