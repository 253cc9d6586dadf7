"""Exceptions raised by the scheduling engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .validator import ViolationReport


class SchedulerError(Exception):
    """Base class for all scheduling engine errors."""
    pass


class MalformedProblemError(SchedulerError, ValueError):
    """
    Raised when a problem specification is structurally invalid.

    Raised before any search begins. ``errors`` holds every problem that was
    found, one message per entry.
    """

    def __init__(self, errors: list[str] | str):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(
            "Malformed problem specification:\n"
            + "\n".join(f"  - {e}" for e in self.errors)
        )


class ScheduleIntegrityError(SchedulerError):
    """Raised when the engine's own output fails schedule validation."""

    def __init__(self, violations: list[ViolationReport]):
        self.violations = list(violations)
        lines = "\n".join(f"  - {v}" for v in self.violations)
        super().__init__(
            f"Solver produced {len(self.violations)} invariant violation(s):\n{lines}"
        )
