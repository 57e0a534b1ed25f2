"""Exception types raised by vault operations."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from vault_operations.lib.poller import OperationHandle


class VaultError(Exception):
    """Base class for all vault operation errors."""


class TransportError(VaultError):
    """Request could not be sent or no response was received.

    Safe to retry the same call.
    """


class ServiceError(VaultError):
    """Service answered a single request with a non-success status."""

    def __init__(self, status_code: int, body: Any = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(self._format_message())

    @property
    def error_code(self) -> str | None:
        """Service error code from the JSON error envelope, if any."""
        if isinstance(self.body, dict):
            error = self.body.get("error")
            if isinstance(error, dict):
                return error.get("code")
        return None

    def _format_message(self) -> str:
        message = f"Service returned status {self.status_code}"
        if isinstance(self.body, dict) and isinstance(self.body.get("error"), dict):
            error = self.body["error"]
            message += f": ({error.get('code', '')}) {error.get('message', '')}"
        return message


class OperationFailedError(ServiceError):
    """Long-running operation reached the Failed terminal state. Not retryable.

    Subclasses ServiceError because the failure is reported by the service on
    a status check; the handle is already terminal when this is raised.
    """

    def __init__(self, handle: "OperationHandle", status_code: int = 200) -> None:
        self.handle = handle
        super().__init__(status_code, handle.body)

    def _format_message(self) -> str:
        detail = f": {self.handle.error}" if self.handle.error else ""
        return f"Operation on {self.handle.resource_id} failed{detail}"


class CancelledError(VaultError):
    """Caller-requested cancellation observed at a suspend point."""
