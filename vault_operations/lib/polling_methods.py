"""Polling methods for the vault's long-running operations."""

from collections.abc import Callable
from typing import Any

from vault_operations.lib.errors import ServiceError
from vault_operations.lib.executor import RequestExecutor, Response, raise_for_status
from vault_operations.lib.poller import (
    OperationHandle,
    OperationRequest,
    OperationStatus,
    PollState,
)

CERTIFICATE_OPERATION_STATUS = {
    "inprogress": OperationStatus.IN_PROGRESS,
    "completed": OperationStatus.SUCCEEDED,
    "failed": OperationStatus.FAILED,
    "cancelled": OperationStatus.FAILED,
}


class DeleteRecoverPolling:
    """Polling for key and certificate deletion.

    The DELETE response is the deleted entity. Without a recoveryId the vault
    has soft-delete disabled and the delete is already complete; otherwise
    the deleted entity becomes readable once deletion finishes.
    """

    def __init__(self, deleted_url: str, deserialize: Callable[[dict], Any]) -> None:
        """Initialize polling method.

        Args:
            deleted_url: Path of the deleted entity (e.g., /deletedkeys/{name})
            deserialize: Builds the final value from the deleted entity body
        """
        self.deleted_url = deleted_url
        self.deserialize = deserialize

    def initial_state(self, response: Response, request: OperationRequest) -> PollState:
        body = response.body if isinstance(response.body, dict) else {}
        if not body.get("recoveryId"):
            return PollState(OperationStatus.SUCCEEDED, body=body)
        return PollState(OperationStatus.IN_PROGRESS, body=body, polling_url=self.deleted_url)

    def poll_state(self, response: Response) -> PollState:
        if response.status_code == 200:
            return PollState(OperationStatus.SUCCEEDED, body=response.body)
        if response.status_code == 404:
            return PollState(OperationStatus.IN_PROGRESS)
        if response.status_code == 403:
            # Caller can delete but not read deleted entities; deletion was accepted
            return PollState(OperationStatus.SUCCEEDED)
        raise ServiceError(response.status_code, response.body)

    def final_result(self, executor: RequestExecutor, handle: OperationHandle) -> Any:
        return self.deserialize(handle.body or {})


class CertificateOperationPolling:
    """Polling for certificate creation via the pending certificate operation."""

    def __init__(
        self,
        pending_url: str,
        certificate_url: str,
        deserialize: Callable[[dict], Any],
    ) -> None:
        """Initialize polling method.

        Args:
            pending_url: Fallback polling path (/certificates/{name}/pending)
            certificate_url: Path fetched once the operation completes
            deserialize: Builds the final value from the certificate body
        """
        self.pending_url = pending_url
        self.certificate_url = certificate_url
        self.deserialize = deserialize

    @staticmethod
    def _state_from_operation(body: Any) -> PollState:
        if not isinstance(body, dict):
            return PollState(OperationStatus.NOT_STARTED)
        raw_status = str(body.get("status", "")).lower()
        status = CERTIFICATE_OPERATION_STATUS.get(raw_status)
        if status is None:
            status = OperationStatus.IN_PROGRESS if raw_status else OperationStatus.NOT_STARTED
        return PollState(status, body=body, error=body.get("error"))

    def initial_state(self, response: Response, request: OperationRequest) -> PollState:
        state = self._state_from_operation(response.body)
        polling_url = response.header("Location")
        if not polling_url and isinstance(response.body, dict):
            polling_url = response.body.get("id")
        return PollState(
            state.status,
            body=state.body,
            error=state.error,
            polling_url=polling_url or self.pending_url,
        )

    def poll_state(self, response: Response) -> PollState:
        raise_for_status(response, 200)
        return self._state_from_operation(response.body)

    def final_result(self, executor: RequestExecutor, handle: OperationHandle) -> Any:
        response = raise_for_status(executor.execute("GET", self.certificate_url), 200)
        return self.deserialize(response.body)
