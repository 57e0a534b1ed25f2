"""Tests for config module."""

from unittest.mock import patch

import pytest

from vault_operations.lib.config import PollingConfig, VaultConfig, get_env

REQUIRED_ENV = {
    "AZURE_KEYVAULT_URL": "https://test-vault.vault.azure.net",
    "AZURE_TENANT_ID": "tenant",
    "AZURE_CLIENT_ID": "client",
    "AZURE_CLIENT_SECRET": "secret",
}


@pytest.fixture
def vault_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set required variables and clear optional ones."""
    for name, value in REQUIRED_ENV.items():
        monkeypatch.setenv(name, value)
    monkeypatch.delenv("AZURE_KEYVAULT_HSM_URL", raising=False)
    monkeypatch.delenv("AZURE_KEYVAULT_AVOID_THROTTLED", raising=False)


class TestGetEnv:
    """Tests for get_env."""

    def test_returns_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("VAULT_TEST_VAR", "value")
        assert get_env("VAULT_TEST_VAR") == "value"

    def test_default_used_when_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("VAULT_TEST_VAR", raising=False)
        assert get_env("VAULT_TEST_VAR", "0") == "0"

    def test_missing_required_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Missing variable without default names the variable."""
        monkeypatch.delenv("VAULT_TEST_VAR", raising=False)

        with pytest.raises(ValueError, match="VAULT_TEST_VAR is required"):
            get_env("VAULT_TEST_VAR")


class TestVaultConfig:
    """Tests for VaultConfig.from_env."""

    @pytest.mark.usefixtures("vault_env")
    def test_from_env(self) -> None:
        config = VaultConfig.from_env()

        assert config.vault_url == "https://test-vault.vault.azure.net"
        assert config.tenant_id == "tenant"
        assert config.client_id == "client"
        assert config.client_secret == "secret"
        assert config.hsm_url is None
        assert config.polling == PollingConfig(avoid_throttling=False)

    @pytest.mark.usefixtures("vault_env")
    def test_optional_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """HSM URL and throttle toggle are picked up."""
        monkeypatch.setenv("AZURE_KEYVAULT_HSM_URL", "https://test-hsm.managedhsm.azure.net")
        monkeypatch.setenv("AZURE_KEYVAULT_AVOID_THROTTLED", "1")

        config = VaultConfig.from_env()

        assert config.hsm_url == "https://test-hsm.managedhsm.azure.net"
        assert config.polling is not None
        assert config.polling.avoid_throttling is True

    @pytest.mark.usefixtures("vault_env")
    def test_missing_credential_raises(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("AZURE_CLIENT_SECRET")

        with pytest.raises(ValueError, match="AZURE_CLIENT_SECRET"):
            VaultConfig.from_env()

    @pytest.mark.usefixtures("vault_env")
    def test_build_credential(self) -> None:
        """Service principal credential is built from the triple."""
        config = VaultConfig.from_env()

        with patch("vault_operations.lib.config.ClientSecretCredential") as mock_credential:
            credential = config.build_credential()

        mock_credential.assert_called_once_with("tenant", "client", "secret")
        assert credential is mock_credential.return_value
