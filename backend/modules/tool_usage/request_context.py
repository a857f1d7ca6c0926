"""
modules/tool_usage/request_context.py
---------------------------------------
Per-request deadline and cancellation flag, threaded through every provider
call made while serving one plan / re-optimize request.

  - Deadline expired  → ProviderError  (the directions call falls back)
  - cancel() called   → PlanCancelled  (propagates to the caller)

An in-flight HTTP request cannot be interrupted; the remaining time is used
as its timeout instead, and the flags are checked before and after the call.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from errors import PlanCancelled, ProviderError


class RequestContext:
    """Thread-safe; one instance may be shared by the food-lookup workers."""

    def __init__(
        self,
        timeout_s: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        self._deadline = time.monotonic() + timeout_s if timeout_s is not None else None
        self._cancel = cancel_event or threading.Event()

    def cancel(self) -> None:
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def check(self, operation: str = "request") -> None:
        """Raise if the caller aborted or the deadline has passed."""
        if self._cancel.is_set():
            raise PlanCancelled(f"{operation} cancelled by caller")
        remaining = self.remaining()
        if remaining is not None and remaining <= 0.0:
            raise ProviderError(f"{operation} timed out before completion", status="TIMEOUT")

    def timeout_for(self, default_s: float) -> float:
        """HTTP timeout for the next call: the smaller of *default_s* and the time left."""
        remaining = self.remaining()
        if remaining is None:
            return default_s
        return min(default_s, remaining)
