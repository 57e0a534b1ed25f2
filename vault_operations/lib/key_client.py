"""Key client for vault key operations."""

import logging
import urllib.parse
from typing import Any

from vault_operations.lib.cancellation import CancellationToken
from vault_operations.lib.executor import RequestExecutor, raise_for_status
from vault_operations.lib.models import (
    DeletedKey,
    KeyCurveName,
    KeyProperties,
    KeyType,
    KeyVaultKey,
)
from vault_operations.lib.paging import ItemPaged, PagedLister
from vault_operations.lib.poller import LongRunningOperation, LROPoller, OperationRequest
from vault_operations.lib.polling_methods import DeleteRecoverPolling

logger = logging.getLogger(__name__)


def _quote(name: str) -> str:
    return urllib.parse.quote(name, safe="")


class KeyClient:
    """Key client: create, read, list, delete and purge keys."""

    def __init__(self, executor: RequestExecutor) -> None:
        """Initialize key client.

        Args:
            executor: Executor bound to the vault URL
        """
        self.executor = executor

    def _create_key(self, name: str, body: dict[str, Any]) -> KeyVaultKey:
        response = self.executor.execute("POST", f"/keys/{_quote(name)}/create", body)
        raise_for_status(response, 200)
        key = KeyVaultKey.from_dict(response.body)
        logger.info("Created %s key %s", body["kty"], key.name)
        return key

    def create_ec_key(
        self,
        name: str,
        curve: KeyCurveName | None = None,
        hardware_protected: bool = False,
        key_operations: list[str] | None = None,
        enabled: bool | None = None,
        tags: dict[str, str] | None = None,
    ) -> KeyVaultKey:
        """Create an elliptic curve key (a new version if the name exists).

        Args:
            name: Key name
            curve: Curve name (service default when None)
            hardware_protected: Create an EC-HSM key
            key_operations: Allowed operations (service default when None)
            enabled: Whether the key is enabled
            tags: Application metadata

        Returns:
            The created key
        """
        body: dict[str, Any] = {
            "kty": (KeyType.EC_HSM if hardware_protected else KeyType.EC).value
        }
        if curve is not None:
            body["crv"] = curve.value
        return self._create_key(name, _with_common(body, key_operations, enabled, tags))

    def create_rsa_key(
        self,
        name: str,
        size: int | None = None,
        hardware_protected: bool = False,
        key_operations: list[str] | None = None,
        enabled: bool | None = None,
        tags: dict[str, str] | None = None,
    ) -> KeyVaultKey:
        """Create an RSA key (a new version if the name exists)."""
        body: dict[str, Any] = {
            "kty": (KeyType.RSA_HSM if hardware_protected else KeyType.RSA).value
        }
        if size is not None:
            body["key_size"] = size
        return self._create_key(name, _with_common(body, key_operations, enabled, tags))

    def get_key(self, name: str, version: str = "") -> KeyVaultKey:
        """Get a key; latest version when version is empty."""
        path = f"/keys/{_quote(name)}"
        if version:
            path += f"/{_quote(version)}"
        response = raise_for_status(self.executor.execute("GET", path), 200)
        return KeyVaultKey.from_dict(response.body)

    def list_properties_of_keys(
        self,
        max_page_size: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ItemPaged[KeyProperties]:
        """List properties of the latest version of every key."""
        lister = PagedLister(self.executor, KeyProperties.from_dict)
        return ItemPaged(lister, "/keys", {"maxresults": max_page_size}, cancellation)

    def list_properties_of_key_versions(
        self,
        name: str,
        max_page_size: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ItemPaged[KeyProperties]:
        """List properties of every version of one key."""
        lister = PagedLister(self.executor, KeyProperties.from_dict)
        return ItemPaged(
            lister, f"/keys/{_quote(name)}/versions", {"maxresults": max_page_size}, cancellation
        )

    def list_deleted_keys(
        self,
        max_page_size: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ItemPaged[DeletedKey]:
        """List keys in the deleted state (soft-delete enabled vaults only)."""
        lister = PagedLister(self.executor, DeletedKey.from_dict)
        return ItemPaged(lister, "/deletedkeys", {"maxresults": max_page_size}, cancellation)

    def get_deleted_key(self, name: str) -> DeletedKey:
        response = self.executor.execute("GET", f"/deletedkeys/{_quote(name)}")
        raise_for_status(response, 200)
        return DeletedKey.from_dict(response.body)

    def begin_delete_key(self, name: str) -> LongRunningOperation:
        """Delete all versions of a key.

        Returns:
            Operation whose result is the DeletedKey once deletion completes
        """
        poller = LROPoller(
            self.executor,
            DeleteRecoverPolling(f"/deletedkeys/{_quote(name)}", DeletedKey.from_dict),
        )
        handle = poller.start(
            OperationRequest(
                method="DELETE",
                url=f"/keys/{_quote(name)}",
                resource_id=name,
                expected_status=(200,),
            )
        )
        return LongRunningOperation(poller, handle)

    def purge_deleted_key(self, name: str) -> None:
        """Permanently delete a deleted key."""
        response = self.executor.execute("DELETE", f"/deletedkeys/{_quote(name)}")
        raise_for_status(response, 204)
        logger.info("Purged deleted key %s", name)


def _with_common(
    body: dict[str, Any],
    key_operations: list[str] | None,
    enabled: bool | None,
    tags: dict[str, str] | None,
) -> dict[str, Any]:
    if key_operations is not None:
        body["key_ops"] = list(key_operations)
    if enabled is not None:
        body["attributes"] = {"enabled": enabled}
    if tags:
        body["tags"] = dict(tags)
    return body
