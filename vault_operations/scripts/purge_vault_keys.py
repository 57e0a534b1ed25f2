#!/usr/bin/env python3
"""Remove all keys from a vault: delete each key, wait for deletion, then purge."""

import argparse
import sys

from vault_operations.lib.config import PollingConfig, VaultConfig
from vault_operations.lib.logging_config import LOGGER
from vault_operations.lib.maintenance import (
    avoid_throttling,
    create_key_client,
    remove_all_keys_from_vault,
)


def _or_default(value: float | None, default: float) -> float:
    return default if value is None else value


def main() -> int:
    """Run vault key removal.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(
        description="Delete and purge every key in the vault set by AZURE_KEYVAULT_URL"
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        help="Seconds between delete status checks (default: polling config, 60)",
    )
    parser.add_argument(
        "--purge-wait",
        type=float,
        help="Seconds to wait after purging (default: polling config, 60)",
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Return as soon as purge requests are accepted",
    )
    parser.add_argument(
        "--hsm",
        action="store_true",
        help="Target the managed HSM set by AZURE_KEYVAULT_HSM_URL",
    )
    args = parser.parse_args()

    try:
        config = VaultConfig.from_env()
        polling = config.polling or PollingConfig()
        avoid_throttling(polling)

        key_client = create_key_client(config, use_hsm=args.hsm)
        LOGGER.info("Removing all keys from %s", config.hsm_url if args.hsm else config.vault_url)

        result = remove_all_keys_from_vault(
            key_client,
            poll_interval=_or_default(args.poll_interval, polling.poll_interval_seconds),
            wait_for_purge=not args.no_wait,
            purge_wait=_or_default(args.purge_wait, polling.purge_wait_seconds),
        )

        LOGGER.info("Key removal complete:")
        LOGGER.info("  Purged: %d", result.purged_count)
        LOGGER.info("  Failed: %d", result.failed_count)

        if result.failed_count > 0:
            LOGGER.warning("Failed keys: %s", result.failed_names)
            return 1

        return 0

    except Exception as e:
        LOGGER.error("Key removal failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
