"""
Cooperative cancellation for client calls.

A CancellationToken is shared between the caller and a running call. The call
checks it before each suspension point, and components that must react to
cancellation even when nobody resumes the call register a callback on it.
"""

import threading
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from ..errors import OperationCancelledError
from ..observability.logging import ClientLogger

logger = ClientLogger("cancellation")


class CancellationToken:
    """Thread-safe, one-way cancellation signal."""

    def __init__(self):
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: List[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Signal cancellation and run registered callbacks once."""
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            self._run(callback)

    def register(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback to run on cancellation.

        The callback runs immediately when the token is already cancelled.

        Returns:
            A function that unregisters the callback
        """
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(callback)
                return lambda: self._unregister(callback)

        self._run(callback)
        return lambda: None

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise OperationCancelledError("Operation was cancelled")

    def _unregister(self, callback: Callable[[], None]) -> None:
        with self._lock:
            try:
                self._callbacks.remove(callback)
            except ValueError:
                pass

    @staticmethod
    def _run(callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception as e:
            logger.warning(
                "Cancellation callback failed",
                error_type=type(e).__name__,
                error_msg=str(e),
            )


@dataclass(frozen=True)
class CallContext:
    """Per-call context passed explicitly through the client layers.

    Attributes:
        cancellation: Token the caller may use to cancel the call
        instrumented: True when an outer call already owns the telemetry for
            this request, so inner helper calls must not start their own
    """
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    instrumented: bool = False

    @classmethod
    def create(cls, cancellation: Optional[CancellationToken] = None) -> "CallContext":
        return cls(cancellation=cancellation or CancellationToken())

    def nested(self) -> "CallContext":
        """Context for a helper call issued on behalf of this call."""
        return replace(self, instrumented=True)
