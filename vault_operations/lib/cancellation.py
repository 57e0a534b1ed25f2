"""Cooperative cancellation signal for polling and paging."""

import threading

from vault_operations.lib.errors import CancelledError


class CancellationToken:
    """Cancellation signal shared between a caller and a blocking operation.

    Backed by a threading.Event so waits between polls wake up as soon as
    cancel() is called from another thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancellation has been requested."""
        if self._event.is_set():
            raise CancelledError("Operation cancelled by caller")

    def wait(self, timeout: float) -> None:
        """Block up to timeout seconds, raising CancelledError if cancelled meanwhile."""
        if self._event.wait(timeout):
            raise CancelledError("Operation cancelled by caller")
