"""Vault configuration dataclasses."""

import os
from dataclasses import dataclass, field

from azure.identity import ClientSecretCredential

THROTTLE_WAIT_SECONDS = 10

# Throttling and transient server-side failures
RETRYABLE_STATUS_CODES = (408, 429, 500, 502, 503, 504)


def get_env(name: str, default: str = "") -> str:
    """Read an environment variable, falling back to a non-empty default.

    Raises:
        ValueError: If the variable is unset and no default is given
    """
    value = os.environ.get(name)
    if value is None:
        if default:
            return default
        raise ValueError(f"{name} is required to run but not set as an environment variable.")
    return value


@dataclass
class PollingConfig:
    """Polling and throttling behaviour for long-running operations."""

    poll_interval_seconds: float = 60
    purge_wait_seconds: float = 60
    avoid_throttling: bool = False
    throttle_wait_seconds: float = THROTTLE_WAIT_SECONDS


@dataclass
class RetryConfig:
    """Transport-level retry with exponential backoff and jitter."""

    max_attempts: int = 4
    initial_delay: float = 1.0
    max_delay: float = 30.0
    jitter: float = 1.0
    retry_status_codes: tuple[int, ...] = RETRYABLE_STATUS_CODES


@dataclass
class VaultConfig:
    """Vault endpoint and service principal credentials."""

    vault_url: str
    tenant_id: str
    client_id: str
    client_secret: str
    hsm_url: str | None = None
    api_version: str = "7.4"
    polling: PollingConfig | None = None
    retry: RetryConfig = field(default_factory=RetryConfig)

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Build configuration from AZURE_* environment variables.

        Raises:
            ValueError: If a required variable is missing
        """
        return cls(
            vault_url=get_env("AZURE_KEYVAULT_URL"),
            tenant_id=get_env("AZURE_TENANT_ID"),
            client_id=get_env("AZURE_CLIENT_ID"),
            client_secret=get_env("AZURE_CLIENT_SECRET"),
            hsm_url=os.environ.get("AZURE_KEYVAULT_HSM_URL") or None,
            polling=PollingConfig(
                avoid_throttling=get_env("AZURE_KEYVAULT_AVOID_THROTTLED", "0") != "0",
            ),
        )

    def build_credential(self) -> ClientSecretCredential:
        """Create the service principal credential used for bearer tokens."""
        return ClientSecretCredential(self.tenant_id, self.client_id, self.client_secret)
