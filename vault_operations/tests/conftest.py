"""Test fixtures for vault_operations tests."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePrivateKey
from cryptography.x509.oid import NameOID

from vault_operations.lib.key_client import KeyClient
from vault_operations.tests.factories import FakeVault


@pytest.fixture
def mock_executor() -> MagicMock:
    """Return executor mock; script responses via execute.side_effect."""
    return MagicMock()


@pytest.fixture
def fake_vault() -> FakeVault:
    """Return empty in-memory vault with soft delete enabled."""
    return FakeVault()


@pytest.fixture
def key_client(fake_vault: FakeVault) -> KeyClient:
    """Return KeyClient talking to the in-memory vault."""
    return KeyClient(fake_vault)


@pytest.fixture
def signing_key() -> EllipticCurvePrivateKey:
    """Generate EC key for test certificates."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def self_signed_cert(signing_key: EllipticCurvePrivateKey) -> x509.Certificate:
    """Generate self-signed CN=xyz certificate valid for one year."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "xyz")])
    now = datetime.now(UTC)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(signing_key.public_key())
        .serial_number(0x0A1B2C)
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + timedelta(days=365))
        .sign(signing_key, hashes.SHA256())
    )
