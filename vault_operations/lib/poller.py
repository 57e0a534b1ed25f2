"""Long-running operation polling.

A start request returns either a terminal result or a handle plus a polling
location. The poller then issues status checks one at a time until the
operation reaches Succeeded or Failed. How a response maps to a status is
delegated to a PollingMethod, since deletes and certificate creation report
progress differently.
"""

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Protocol

from vault_operations.lib.cancellation import CancellationToken
from vault_operations.lib.errors import OperationFailedError
from vault_operations.lib.executor import RequestExecutor, Response, raise_for_status

logger = logging.getLogger(__name__)


class OperationStatus(Enum):
    """Status of a long-running operation."""

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @property
    def rank(self) -> int:
        return _STATUS_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (OperationStatus.SUCCEEDED, OperationStatus.FAILED)


_STATUS_RANK = {
    OperationStatus.NOT_STARTED: 0,
    OperationStatus.IN_PROGRESS: 1,
    OperationStatus.SUCCEEDED: 2,
    OperationStatus.FAILED: 2,
}


@dataclass(frozen=True)
class OperationRequest:
    """Initiating request for a long-running operation."""

    method: str
    url: str
    resource_id: str
    body: Any = None
    expected_status: tuple[int, ...] = ()


@dataclass(frozen=True)
class PollState:
    """Interpretation of one response by a PollingMethod."""

    status: OperationStatus
    body: Any = None
    error: Any = None
    polling_url: str | None = None


@dataclass
class OperationHandle:
    """Server-side operation being driven to completion.

    Not safe for concurrent polling from several threads.
    """

    resource_id: str
    polling_url: str | None = None
    status: OperationStatus = OperationStatus.NOT_STARTED
    body: Any = None
    error: Any = None
    result: Any = field(default=None, repr=False)

    @property
    def done(self) -> bool:
        return self.status.is_terminal

    def apply(self, state: PollState) -> None:
        """Record a poll observation.

        Terminal handles ignore further updates, and an observation with a
        status earlier than the current one is dropped entirely.
        """
        if self.done or state.status.rank < self.status.rank:
            return
        self.status = state.status
        if state.body is not None:
            self.body = state.body
        if state.error is not None:
            self.error = state.error
        if state.polling_url:
            self.polling_url = state.polling_url


class PollingMethod(Protocol):
    """Maps initiating and status-check responses onto OperationStatus."""

    def initial_state(self, response: Response, request: OperationRequest) -> PollState: ...

    def poll_state(self, response: Response) -> PollState: ...

    def final_result(self, executor: RequestExecutor, handle: OperationHandle) -> Any: ...


def _interval_seconds(poll_interval: float | timedelta) -> float:
    if isinstance(poll_interval, timedelta):
        return poll_interval.total_seconds()
    return float(poll_interval)


class LROPoller:
    """Drives long-running operations through a RequestExecutor."""

    def __init__(self, executor: RequestExecutor, polling_method: PollingMethod) -> None:
        self.executor = executor
        self.polling_method = polling_method

    def start(self, request: OperationRequest) -> OperationHandle:
        """Issue the initiating request and return a handle.

        Raises:
            TransportError: If the request cannot be sent
            ServiceError: If the service rejects the request
        """
        response = self.executor.execute(request.method, request.url, request.body)
        raise_for_status(response, *request.expected_status)

        handle = OperationHandle(resource_id=request.resource_id)
        handle.apply(self.polling_method.initial_state(response, request))
        logger.info("Started %s %s: %s", request.method, request.resource_id, handle.status.value)
        return handle

    def poll(
        self, handle: OperationHandle, cancellation: CancellationToken | None = None
    ) -> OperationHandle:
        """Issue one status check and update the handle.

        A terminal handle is returned as-is without a request. If cancellation
        is requested while the request is in flight the response is discarded.

        Raises:
            TransportError: On network failure (handle unchanged)
            ServiceError: On an unexpected status (handle unchanged)
            OperationFailedError: If the operation reached the Failed state
            CancelledError: If cancellation was requested
        """
        if handle.done:
            return handle
        if handle.polling_url is None:
            raise ValueError(f"No polling location for operation on {handle.resource_id}")

        if cancellation is not None:
            cancellation.raise_if_cancelled()
        response = self.executor.execute("GET", handle.polling_url)
        if cancellation is not None:
            cancellation.raise_if_cancelled()

        state = self.polling_method.poll_state(response)
        previous = handle.status
        handle.apply(state)
        if handle.status is not previous:
            logger.info(
                "Operation on %s: %s -> %s",
                handle.resource_id,
                previous.value,
                handle.status.value,
            )

        if handle.status is OperationStatus.FAILED:
            raise OperationFailedError(handle, response.status_code)
        return handle

    def poll_until_done(
        self,
        handle: OperationHandle,
        poll_interval: float | timedelta,
        cancellation: CancellationToken | None = None,
    ) -> Any:
        """Poll sequentially until terminal and return the final resource.

        Blocks the calling thread, waiting poll_interval between attempts.
        Returns without waiting when the handle is already terminal.

        Raises:
            OperationFailedError: If the operation failed
            CancelledError: If cancellation was requested
        """
        interval = _interval_seconds(poll_interval)
        token = cancellation or CancellationToken()

        first = True
        while not handle.done:
            if not first:
                token.wait(interval)
            first = False
            self.poll(handle, token)

        if handle.status is OperationStatus.FAILED:
            raise OperationFailedError(handle)

        if handle.result is None:
            handle.result = self.polling_method.final_result(self.executor, handle)
        return handle.result


class LongRunningOperation:
    """An OperationHandle bound to the poller that drives it."""

    def __init__(self, poller: LROPoller, handle: OperationHandle) -> None:
        self.poller = poller
        self.handle = handle

    def status(self) -> OperationStatus:
        return self.handle.status

    def done(self) -> bool:
        return self.handle.done

    def poll(self, cancellation: CancellationToken | None = None) -> OperationStatus:
        """Issue one status check and return the updated status."""
        return self.poller.poll(self.handle, cancellation).status

    def result(
        self,
        poll_interval: float | timedelta = 1.0,
        cancellation: CancellationToken | None = None,
    ) -> Any:
        """Block until the operation is terminal and return its final value."""
        return self.poller.poll_until_done(self.handle, poll_interval, cancellation)
