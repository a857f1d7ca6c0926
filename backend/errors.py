"""
errors.py
---------
Exception hierarchy raised by the route planning engine.

  ValidationError  — malformed request; raised before any external call.
  ProviderError    — directions / geocoding / places provider failed.
                     Caught inside the engine and turned into a fallback.
  NotFoundError    — none of the requested pandals (or the saved route) exist.
  PlanCancelled    — the caller explicitly aborted the request.

Storage collaborator errors are not part of this hierarchy; they propagate
unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FieldError:
    """One failed check: which request field, and why."""
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class RoutePlanningError(Exception):
    """Base class for every error raised by the engine."""


class ValidationError(RoutePlanningError):
    def __init__(self, errors: list[FieldError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(str(e) for e in self.errors) or "invalid request")

    @property
    def fields(self) -> list[str]:
        """Failed field names, in check order, without repeats."""
        seen: list[str] = []
        for e in self.errors:
            if e.field not in seen:
                seen.append(e.field)
        return seen


class ProviderError(RoutePlanningError):
    def __init__(self, message: str, status: Optional[str] = None) -> None:
        self.status = status
        super().__init__(message)


class NotFoundError(RoutePlanningError):
    pass


class PlanCancelled(RoutePlanningError):
    pass
