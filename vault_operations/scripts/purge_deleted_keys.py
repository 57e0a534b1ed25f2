#!/usr/bin/env python3
"""Purge keys already in the deleted state."""

import argparse
import sys

from vault_operations.lib.config import PollingConfig, VaultConfig
from vault_operations.lib.logging_config import LOGGER
from vault_operations.lib.maintenance import (
    avoid_throttling,
    clean_up_deleted_keys,
    create_key_client,
)


def main() -> int:
    """Run deleted key cleanup.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Purge all deleted keys from the vault")
    parser.add_argument(
        "--purge-wait",
        type=float,
        help="Seconds to wait after purging (default: polling config, 60)",
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

        purge_wait = polling.purge_wait_seconds if args.purge_wait is None else args.purge_wait
        result = clean_up_deleted_keys(
            create_key_client(config, use_hsm=args.hsm), purge_wait=purge_wait
        )

        LOGGER.info("Purged %d deleted keys", result.purged_count)
        if result.failed_count > 0:
            LOGGER.warning("Failed to purge: %s", result.failed_names)
            return 1
        return 0

    except Exception as e:
        LOGGER.error("Deleted key cleanup failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
