"""Cooperative cancellation for long-running replace and revert calls."""

from __future__ import annotations

import threading

from kube_dev_swap.integrations.kubernetes.exceptions import OperationCancelledError


class CancellationToken:
    """Thread-safe flag checked before every API call and at every poll tick.

    The CLI cancels the token from its SIGINT handler; library callers can
    cancel it from any other thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether cancellation was requested."""
        return self._event.is_set()

    @property
    def event(self) -> threading.Event:
        """The underlying event, for waits that should wake up on cancel."""
        return self._event

    def raise_if_cancelled(self, step: str | None = None) -> None:
        """Raise OperationCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise OperationCancelledError(step=step)

    def wait(self, seconds: float) -> None:
        """Sleep for ``seconds`` or until cancelled, whichever comes first."""
        self._event.wait(seconds)
