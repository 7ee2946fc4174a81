"""
Result types returned to the host file store.

A Status carries success plus zero or more structured faults. Faults are
(category, context) pairs drawn from a fixed vocabulary; they never carry a
raw remote exception, endpoint or bucket name.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

__all__ = [
    "FAULT_INVALID_PATH",
    "FAULT_NOT_FOUND",
    "FAULT_INTERNAL",
    "FAULT_CATEGORIES",
    "Fault",
    "Status",
    "StreamResult",
]

FAULT_INVALID_PATH = "invalid-path"
FAULT_NOT_FOUND = "not-found"
FAULT_INTERNAL = "internal"

FAULT_CATEGORIES = (FAULT_INVALID_PATH, FAULT_NOT_FOUND, FAULT_INTERNAL)


@dataclass(frozen=True)
class Fault:
    """
    A single caller-facing failure.

    Attributes:
        category: One of FAULT_CATEGORIES
        context: Caller-supplied virtual path (or short usage note)
    """
    category: str
    context: str

    def __post_init__(self):
        if self.category not in FAULT_CATEGORIES:
            raise ValueError(f"Unknown fault category: {self.category}")


@dataclass
class Status:
    """Outcome of a mutating backend operation."""
    faults: List[Fault] = field(default_factory=list)

    @classmethod
    def good(cls) -> Status:
        return cls()

    @classmethod
    def fatal(cls, category: str, context: str) -> Status:
        return cls(faults=[Fault(category, context)])

    @property
    def ok(self) -> bool:
        return not self.faults

    def add(self, fault: Fault) -> None:
        self.faults.append(fault)

    def merge(self, other: Status) -> Status:
        """Fold another status into this one; the result is ok only if both are."""
        self.faults.extend(other.faults)
        return self

    def has(self, category: str) -> bool:
        return any(f.category == category for f in self.faults)

    def __bool__(self) -> bool:
        return self.ok

    def __str__(self) -> str:
        if self.ok:
            return "ok"
        return "; ".join(f"{f.category}: {f.context}" for f in self.faults)


@dataclass
class StreamResult:
    """Status of a stream operation plus the response headers that were emitted."""
    status: Status
    headers: Dict[str, str] = field(default_factory=dict)
