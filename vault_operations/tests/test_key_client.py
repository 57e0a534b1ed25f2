"""Tests for key client module."""

import uuid
from unittest.mock import MagicMock

import pytest

from vault_operations.lib.errors import ServiceError
from vault_operations.lib.executor import Response
from vault_operations.lib.key_client import KeyClient
from vault_operations.lib.models import KeyCurveName, KeyType
from vault_operations.lib.poller import OperationStatus
from vault_operations.tests.factories import VAULT_URL, FakeVault, key_bundle


def _unique_name() -> str:
    return str(uuid.uuid4())


class TestKeyRequests:
    """Request shapes sent by KeyClient."""

    def test_create_ec_key(self, mock_executor: MagicMock) -> None:
        """EC key creation posts kty and curve."""
        mock_executor.execute.return_value = Response(200, body=key_bundle("key-1"))

        key = KeyClient(mock_executor).create_ec_key("key-1", curve=KeyCurveName.P_384)

        mock_executor.execute.assert_called_once_with(
            "POST", "/keys/key-1/create", {"kty": "EC", "crv": "P-384"}
        )
        assert key.name == "key-1"
        assert key.key_type is KeyType.EC
        assert key.properties.version == "v1"

    def test_create_rsa_hsm_key_with_options(self, mock_executor: MagicMock) -> None:
        """RSA-HSM creation sends size, operations, attributes and tags."""
        mock_executor.execute.return_value = Response(
            200, body=key_bundle("key-1", kty="RSA-HSM")
        )

        KeyClient(mock_executor).create_rsa_key(
            "key-1",
            size=3072,
            hardware_protected=True,
            key_operations=["wrapKey", "unwrapKey"],
            enabled=False,
            tags={"team": "payments"},
        )

        body = mock_executor.execute.call_args.args[2]
        assert body == {
            "kty": "RSA-HSM",
            "key_size": 3072,
            "key_ops": ["wrapKey", "unwrapKey"],
            "attributes": {"enabled": False},
            "tags": {"team": "payments"},
        }

    def test_get_key_version(self, mock_executor: MagicMock) -> None:
        """Specific versions are addressed by path."""
        mock_executor.execute.return_value = Response(200, body=key_bundle("key-1", "abc"))

        key = KeyClient(mock_executor).get_key("key-1", "abc")

        mock_executor.execute.assert_called_once_with("GET", "/keys/key-1/abc")
        assert key.properties.version == "abc"

    def test_names_are_quoted(self, mock_executor: MagicMock) -> None:
        """Names are URL-quoted into the path."""
        mock_executor.execute.return_value = Response(200, body=key_bundle("a b"))

        KeyClient(mock_executor).get_key("a b")

        assert mock_executor.execute.call_args.args[1] == "/keys/a%20b"

    def test_get_missing_key_raises(self, mock_executor: MagicMock) -> None:
        """404 raises ServiceError with the service error code."""
        mock_executor.execute.return_value = Response(
            404, body={"error": {"code": "KeyNotFound", "message": "missing"}}
        )

        with pytest.raises(ServiceError) as exc_info:
            KeyClient(mock_executor).get_key("missing")

        assert exc_info.value.error_code == "KeyNotFound"

    def test_purge_expects_no_content(self, mock_executor: MagicMock) -> None:
        """Purge succeeds on 204 only."""
        mock_executor.execute.return_value = Response(204)

        KeyClient(mock_executor).purge_deleted_key("key-1")

        mock_executor.execute.assert_called_once_with("DELETE", "/deletedkeys/key-1")

    def test_list_sends_max_page_size(self, mock_executor: MagicMock) -> None:
        """max_page_size becomes maxresults."""
        mock_executor.execute.return_value = Response(200, body={"value": []})

        list(KeyClient(mock_executor).list_properties_of_keys(max_page_size=5))

        mock_executor.execute.assert_called_once_with("GET", "/keys?maxresults=5")


class TestKeyClientAgainstFakeVault:
    """End-to-end behaviour against the in-memory vault."""

    def test_get_single_key(self, key_client: KeyClient) -> None:
        """A created EC key can be read back by name."""
        name = _unique_name()
        key_client.create_ec_key(name)

        key = key_client.get_key(name)

        assert key.name == name
        assert key.key_type is KeyType.EC

    def test_list_keys_across_pages(self, key_client: KeyClient, fake_vault: FakeVault) -> None:
        """Five keys listed two per page appear exactly once each."""
        names = [_unique_name() for _ in range(5)]
        for name in names:
            key_client.create_ec_key(name)

        listed = [props.name for props in key_client.list_properties_of_keys(max_page_size=2)]

        assert sorted(listed) == sorted(names)
        assert len(set(listed)) == 5
        list_calls = [url for method, url in fake_vault.calls if method == "GET"]
        assert len(list_calls) == 3

    def test_list_key_versions(self, key_client: KeyClient) -> None:
        """Five versions of one key are all listed."""
        name = _unique_name()
        for _ in range(5):
            key_client.create_ec_key(name)

        versions = list(key_client.list_properties_of_key_versions(name, max_page_size=2))

        assert len(versions) == 5
        assert all(props.name == name for props in versions)
        assert len({props.version for props in versions}) == 5

    def test_deleted_keys_listed_after_delete(self, key_client: KeyClient) -> None:
        """Five keys deleted and polled to completion show up as deleted."""
        names = [_unique_name() for _ in range(5)]
        for name in names:
            key_client.create_ec_key(name)

        operations = [key_client.begin_delete_key(name) for name in names]
        for operation in operations:
            assert operation.status() is OperationStatus.IN_PROGRESS
            operation.result(poll_interval=0)

        deleted = [key.name for key in key_client.list_deleted_keys(max_page_size=2)]
        for name in names:
            assert name in deleted
        assert list(key_client.list_properties_of_keys()) == []

    def test_delete_result_is_deleted_key(self, key_client: KeyClient) -> None:
        """The operation result carries recovery details."""
        name = _unique_name()
        key_client.create_ec_key(name)

        deleted = key_client.begin_delete_key(name).result(poll_interval=0)

        assert deleted.name == name
        assert deleted.recovery_id == f"{VAULT_URL}/deletedkeys/{name}"
        assert deleted.scheduled_purge_date is not None
        assert key_client.get_deleted_key(name).name == name

    def test_delete_without_soft_delete_completes_immediately(self) -> None:
        """No recoveryId means nothing to poll."""
        vault = FakeVault(soft_delete=False)
        client = KeyClient(vault)
        client.create_ec_key("key-1")

        operation = client.begin_delete_key("key-1")

        assert operation.done()
        assert operation.result(poll_interval=60).name == "key-1"
        assert vault.calls == [("POST", "/keys/key-1/create"), ("DELETE", "/keys/key-1")]

    def test_delete_missing_key_raises(self, key_client: KeyClient) -> None:
        """Deleting an unknown key fails at start."""
        with pytest.raises(ServiceError) as exc_info:
            key_client.begin_delete_key("missing")

        assert exc_info.value.status_code == 404

    def test_step_by_step_polling(self, fake_vault: FakeVault, key_client: KeyClient) -> None:
        """Individual polls advance the operation once deletion lands."""
        fake_vault.delete_polls = 2
        key_client.create_ec_key("key-1")
        operation = key_client.begin_delete_key("key-1")

        assert operation.poll() is OperationStatus.IN_PROGRESS
        assert operation.poll() is OperationStatus.IN_PROGRESS
        assert operation.poll() is OperationStatus.SUCCEEDED
        assert operation.done()

    def test_purge_removes_deleted_key(self, key_client: KeyClient) -> None:
        """A purged key is gone from the deleted listing."""
        key_client.create_ec_key("key-1")
        key_client.begin_delete_key("key-1").result(poll_interval=0)

        key_client.purge_deleted_key("key-1")

        assert list(key_client.list_deleted_keys()) == []
