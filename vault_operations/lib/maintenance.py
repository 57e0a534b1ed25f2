"""Vault maintenance: delete and purge keys in bulk."""

import logging
import time
from datetime import timedelta

from vault_operations.lib.config import PollingConfig, VaultConfig
from vault_operations.lib.executor import MANAGED_HSM_SCOPE, VAULT_SCOPE, UrllibRequestExecutor
from vault_operations.lib.key_client import KeyClient
from vault_operations.lib.models import PurgeResult
from vault_operations.lib.poller import LongRunningOperation

logger = logging.getLogger(__name__)


def create_key_client(config: VaultConfig, use_hsm: bool = False) -> KeyClient:
    """Build a KeyClient authenticated with the config's service principal.

    Args:
        config: Vault configuration
        use_hsm: Target the managed HSM endpoint instead of the vault

    Raises:
        ValueError: If use_hsm is set but no HSM URL is configured
    """
    if use_hsm:
        if not config.hsm_url:
            raise ValueError(
                "AZURE_KEYVAULT_HSM_URL is required to run but not set as an environment variable."
            )
        url, scope = config.hsm_url, MANAGED_HSM_SCOPE
    else:
        url, scope = config.vault_url, VAULT_SCOPE

    executor = UrllibRequestExecutor(
        url,
        config.build_credential(),
        api_version=config.api_version,
        retry=config.retry,
        scope=scope,
    )
    return KeyClient(executor)


def avoid_throttling(polling: PollingConfig) -> None:
    """Pause before issuing requests when throttle avoidance is enabled.

    The service answers 429 when a client sends several requests per second,
    which back-to-back runs on a fast network easily do.
    """
    if polling.avoid_throttling:
        logger.info("Waiting %ss to avoid server throttling", polling.throttle_wait_seconds)
        time.sleep(polling.throttle_wait_seconds)


def clean_up_deleted_keys(
    key_client: KeyClient, purge_wait: float | timedelta = 60
) -> PurgeResult:
    """Purge every key currently in the deleted state.

    Args:
        key_client: Key client for the vault
        purge_wait: Seconds to wait for purges to settle (skipped if nothing purged)

    Returns:
        PurgeResult with purged and failed key names
    """
    deleted_names = [deleted.name for deleted in key_client.list_deleted_keys()]
    logger.info("Found %d deleted keys", len(deleted_names))

    purged: list[str] = []
    failed: list[str] = []
    for name in deleted_names:
        try:
            key_client.purge_deleted_key(name)
            purged.append(name)
        except Exception as e:
            logger.error("Failed to purge %s: %s", name, e)
            failed.append(name)

    if purged:
        _wait(purge_wait)

    return PurgeResult(
        purged_count=len(purged),
        failed_count=len(failed),
        purged_names=purged,
        failed_names=failed,
    )


def remove_all_keys_from_vault(
    key_client: KeyClient,
    poll_interval: float | timedelta = 60,
    wait_for_purge: bool = True,
    purge_wait: float | timedelta = 60,
) -> PurgeResult:
    """Delete, then purge, every key in the vault.

    1. List all keys and start a delete for each
    2. Poll each delete to completion
    3. Purge each deleted key

    Args:
        key_client: Key client for the vault
        poll_interval: Wait between delete status checks
        wait_for_purge: Wait purge_wait after purging so the names can be reused
        purge_wait: Seconds to wait for purges to settle

    Returns:
        PurgeResult with purged and failed key names
    """
    operations: list[tuple[str, LongRunningOperation]] = []
    failed: list[str] = []

    # Collect names first; deleting while paging shifts later pages
    names = [properties.name for properties in key_client.list_properties_of_keys()]
    for name in names:
        try:
            operations.append((name, key_client.begin_delete_key(name)))
        except Exception as e:
            logger.error("Failed to start delete of %s: %s", name, e)
            failed.append(name)

    if not operations and not failed:
        logger.info("Vault has no keys to remove")
        return PurgeResult(purged_count=0, failed_count=0, purged_names=[], failed_names=[])

    logger.info("Cleaning vault. %d keys will be deleted and purged now", len(operations))

    purged: list[str] = []
    for name, operation in operations:
        try:
            deleted_key = operation.result(poll_interval)
            key_client.purge_deleted_key(deleted_key.name)
            purged.append(deleted_key.name)
            logger.info("Deleted and purged key: %s", deleted_key.name)
        except Exception as e:
            logger.error("Failed to delete and purge %s: %s", name, e)
            failed.append(name)

    logger.info("Complete purge operation")
    if wait_for_purge and purged:
        _wait(purge_wait)

    return PurgeResult(
        purged_count=len(purged),
        failed_count=len(failed),
        purged_names=purged,
        failed_names=failed,
    )


def _wait(duration: float | timedelta) -> None:
    seconds = duration.total_seconds() if isinstance(duration, timedelta) else float(duration)
    if seconds > 0:
        logger.info("Waiting %ss for purge to complete", seconds)
        time.sleep(seconds)
