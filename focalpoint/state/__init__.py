"""Typed runtime state for the lifecycle manager."""
from dataclasses import dataclass, field
from typing import Any


@dataclass
class OperationState:
    """Process-wide guard so one lifecycle operation touches live state at a time."""
    lock: Any
    status_lock: Any
    active: str = ""
    last_result: dict = field(default_factory=dict)

    def try_begin(self, operation):
        """Acquire the guard without waiting; False when another operation holds it."""
        if not self.lock.acquire(blocking=False):
            return False
        with self.status_lock:
            self.active = operation
        return True

    def end(self, result=None):
        with self.status_lock:
            self.active = ""
            if result is not None:
                self.last_result = dict(result)
        self.lock.release()

    def snapshot(self):
        with self.status_lock:
            return {"active": self.active, "last_result": dict(self.last_result)}
