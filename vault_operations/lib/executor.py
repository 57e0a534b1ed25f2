"""HTTP request execution against the vault REST endpoint."""

import http.client
import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass, field
from typing import Any, Protocol

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    retry_if_result,
    stop_after_attempt,
    wait_exponential_jitter,
)

from vault_operations.lib.config import RetryConfig
from vault_operations.lib.errors import ServiceError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "7.4"
VAULT_SCOPE = "https://vault.azure.net/.default"
MANAGED_HSM_SCOPE = "https://managedhsm.azure.net/.default"

# Refresh bearer tokens this many seconds before they expire
TOKEN_REFRESH_MARGIN = 300


@dataclass(frozen=True)
class Response:
    """Raw service response: status code, headers and decoded JSON body."""

    status_code: int
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None


class RequestExecutor(Protocol):
    """Issues one HTTP request and returns the response.

    Non-success statuses are returned, not raised; only failures to send or
    receive raise TransportError.
    """

    def execute(self, method: str, url: str, body: Any = None) -> Response: ...


class TokenCredential(Protocol):
    """Anything with azure-identity's get_token() shape."""

    def get_token(self, *scopes: str) -> Any: ...


def raise_for_status(response: Response, *expected: int) -> Response:
    """Return response if its status is expected, else raise ServiceError.

    Args:
        response: Response to check
        expected: Accepted status codes (default: any 2xx)

    Returns:
        The same response, for chaining
    """
    if expected:
        ok = response.status_code in expected
    else:
        ok = 200 <= response.status_code < 300
    if not ok:
        raise ServiceError(response.status_code, response.body)
    return response


class UrllibRequestExecutor:
    """RequestExecutor backed by urllib with bearer-token authentication.

    Transport failures and throttling or transient server statuses are retried
    with exponential backoff. When attempts run out the last TransportError is
    raised, or the last retryable response is returned for the caller to map.
    """

    def __init__(
        self,
        vault_url: str,
        credential: TokenCredential,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30,
        retry: RetryConfig | None = None,
        scope: str = VAULT_SCOPE,
    ) -> None:
        """Initialize executor.

        Args:
            vault_url: Vault base URL (e.g., https://myvault.vault.azure.net)
            credential: Credential used to acquire bearer tokens
            api_version: REST API version sent on every request
            timeout: Socket timeout in seconds
            retry: Backoff settings (RetryConfig defaults when None)
            scope: Token scope; MANAGED_HSM_SCOPE for a managed HSM endpoint
        """
        self.vault_url = vault_url.rstrip("/")
        self.credential = credential
        self.api_version = api_version
        self.timeout = timeout
        self.retry = retry or RetryConfig()
        self.scope = scope
        self._token: str | None = None
        self._token_expires_on = 0.0

    def build_url(self, url: str) -> str:
        """Resolve a path against the vault URL and add api-version if absent."""
        if not url.startswith(("http://", "https://")):
            url = f"{self.vault_url}/{url.lstrip('/')}"

        parts = urllib.parse.urlsplit(url)
        query = urllib.parse.parse_qsl(parts.query, keep_blank_values=True)
        if not any(key == "api-version" for key, _ in query):
            query.append(("api-version", self.api_version))
        return urllib.parse.urlunsplit(parts._replace(query=urllib.parse.urlencode(query)))

    def _bearer_token(self) -> str:
        if self._token is None or time.time() >= self._token_expires_on - TOKEN_REFRESH_MARGIN:
            access_token = self.credential.get_token(self.scope)
            self._token = access_token.token
            self._token_expires_on = float(access_token.expires_on)
        return self._token

    def _retryable_status(self, response: Response) -> bool:
        return response.status_code in self.retry.retry_status_codes

    def execute(self, method: str, url: str, body: Any = None) -> Response:
        """Send one request, retrying transient failures.

        Raises:
            TransportError: If no response was received on any attempt
        """
        full_url = self.build_url(url)
        data = json.dumps(body).encode("utf-8") if body is not None else None

        retrying = Retrying(
            stop=stop_after_attempt(self.retry.max_attempts),
            wait=wait_exponential_jitter(
                initial=self.retry.initial_delay,
                max=self.retry.max_delay,
                jitter=self.retry.jitter,
            ),
            retry=(
                retry_if_exception_type(TransportError)
                | retry_if_result(self._retryable_status)
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            # Exhausted: re-raise the last error or hand back the last response
            retry_error_callback=lambda state: state.outcome.result(),
        )
        return retrying(self._send, method, full_url, data)

    def _send(self, method: str, full_url: str, data: bytes | None) -> Response:
        headers = {
            "Authorization": f"Bearer {self._bearer_token()}",
            "Accept": "application/json",
        }
        if data is not None:
            headers["Content-Type"] = "application/json"

        logger.debug("%s %s", method, full_url)
        req = urllib.request.Request(full_url, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                return Response(
                    status_code=response.status,
                    headers=dict(response.headers.items()),
                    body=_decode_body(response.read()),
                )
        except urllib.error.HTTPError as e:
            # Non-2xx is a valid service answer; callers decide what it means
            try:
                raw = e.read()
            except (http.client.HTTPException, OSError) as read_error:
                raise TransportError(f"{method} {full_url} failed: {read_error}") from read_error
            return Response(
                status_code=e.code,
                headers=dict(e.headers.items()) if e.headers else {},
                body=_decode_body(raw),
            )
        except (http.client.HTTPException, OSError) as e:
            # URLError, timeouts, resets, malformed status lines, truncated bodies
            raise TransportError(f"{method} {full_url} failed: {e!r}") from e


def _decode_body(raw: bytes) -> Any:
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text
