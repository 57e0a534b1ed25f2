"""Certificate utility functions for decoding certificates returned by the vault."""

import base64

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.serialization import pkcs12

from vault_operations.lib.models import (
    CertificateContentType,
    CertificateMetadata,
    DownloadCertificateResult,
)


def load_cer(cer: bytes) -> x509.Certificate:
    """Load the DER certificate bytes from a certificate bundle's "cer" field."""
    return x509.load_der_x509_certificate(cer)


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def get_certificate_thumbprint(cert: x509.Certificate) -> str:
    """Return the base64url SHA-1 thumbprint, as the vault reports it in x5t."""
    digest = cert.fingerprint(hashes.SHA1())
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


def extract_certificate_metadata(cert: x509.Certificate) -> CertificateMetadata:
    """Extract subject, issuer, serial, validity and thumbprint.

    Args:
        cert: X.509 certificate

    Returns:
        CertificateMetadata with RFC 4514 names and ISO 8601 timestamps
    """
    return CertificateMetadata(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        serialNumber=get_certificate_serial_hex(cert),
        notBefore=cert.not_valid_before_utc.isoformat(),
        expiry=cert.not_valid_after_utc.isoformat(),
        thumbprint=get_certificate_thumbprint(cert),
    )


def load_downloaded_certificate(result: DownloadCertificateResult) -> x509.Certificate:
    """Load the leaf certificate from downloaded certificate content.

    Raises:
        ValueError: If the content holds no certificate
    """
    if result.content_type is CertificateContentType.PEM:
        return x509.load_pem_x509_certificate(result.certificate.encode("utf-8"))

    bundle = pkcs12.load_pkcs12(base64.b64decode(result.certificate), password=None)
    if bundle.cert is None:
        raise ValueError("PKCS#12 content has no certificate")
    return bundle.cert.certificate
