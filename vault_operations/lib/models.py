"""Value types for keys and certificates returned by the vault."""

import base64
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypedDict
from urllib.parse import urlsplit


class KeyType(str, Enum):
    EC = "EC"
    EC_HSM = "EC-HSM"
    RSA = "RSA"
    RSA_HSM = "RSA-HSM"
    OCT = "oct"
    OCT_HSM = "oct-HSM"


class KeyCurveName(str, Enum):
    P_256 = "P-256"
    P_256K = "P-256K"
    P_384 = "P-384"
    P_521 = "P-521"


class CertificateContentType(str, Enum):
    PKCS12 = "application/x-pkcs12"
    PEM = "application/x-pem-file"


class CertificateKeyUsage(str, Enum):
    DIGITAL_SIGNATURE = "digitalSignature"
    NON_REPUDIATION = "nonRepudiation"
    KEY_ENCIPHERMENT = "keyEncipherment"
    DATA_ENCIPHERMENT = "dataEncipherment"
    KEY_AGREEMENT = "keyAgreement"
    KEY_CERT_SIGN = "keyCertSign"
    CRL_SIGN = "cRLSign"
    ENCIPHER_ONLY = "encipherOnly"
    DECIPHER_ONLY = "decipherOnly"


class CertificatePolicyAction(str, Enum):
    AUTO_RENEW = "AutoRenew"
    EMAIL_CONTACTS = "EmailContacts"


@dataclass(frozen=True)
class VaultId:
    """Parsed vault object identifier: {vault_url}/{collection}/{name}[/{version}]."""

    source_id: str
    vault_url: str
    collection: str
    name: str
    version: str | None = None

    @classmethod
    def parse(cls, source_id: str) -> "VaultId":
        """Parse an object identifier URL.

        Raises:
            ValueError: If the identifier has no collection and name
        """
        parts = urlsplit(source_id)
        segments = [s for s in parts.path.split("/") if s]
        if len(segments) < 2:
            raise ValueError(f"Invalid vault object identifier: {source_id}")
        return cls(
            source_id=source_id,
            vault_url=f"{parts.scheme}://{parts.netloc}",
            collection=segments[0],
            name=segments[1],
            version=segments[2] if len(segments) > 2 else None,
        )


def _timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=UTC)


@dataclass(frozen=True)
class KeyProperties:
    """Key attributes, as listed by the vault (no key material)."""

    id: str
    name: str
    version: str | None = None
    enabled: bool | None = None
    created_on: datetime | None = None
    updated_on: datetime | None = None
    expires_on: datetime | None = None
    recovery_level: str | None = None
    managed: bool = False
    tags: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "KeyProperties":
        """Build from a key item or key bundle ("kid" at top level or under "key")."""
        kid = data.get("kid") or data.get("key", {}).get("kid", "")
        vault_id = VaultId.parse(kid)
        attributes = data.get("attributes", {})
        return cls(
            id=kid,
            name=vault_id.name,
            version=vault_id.version,
            enabled=attributes.get("enabled"),
            created_on=_timestamp(attributes.get("created")),
            updated_on=_timestamp(attributes.get("updated")),
            expires_on=_timestamp(attributes.get("exp")),
            recovery_level=attributes.get("recoveryLevel"),
            managed=bool(data.get("managed", False)),
            tags=dict(data.get("tags") or {}),
        )


@dataclass(frozen=True)
class KeyVaultKey:
    """Key bundle: properties plus the public JSON web key."""

    properties: KeyProperties
    key_type: KeyType | str
    key_ops: tuple[str, ...] = ()
    key: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return self.properties.name

    @property
    def id(self) -> str:
        return self.properties.id

    @classmethod
    def from_dict(cls, data: dict) -> "KeyVaultKey":
        jwk = data.get("key", {})
        kty = jwk.get("kty", "")
        try:
            key_type: KeyType | str = KeyType(kty)
        except ValueError:
            key_type = kty
        return cls(
            properties=KeyProperties.from_dict(data),
            key_type=key_type,
            key_ops=tuple(jwk.get("key_ops") or ()),
            key=dict(jwk),
        )


@dataclass(frozen=True)
class DeletedKey:
    """Key in the soft-deleted state."""

    key: KeyVaultKey | None
    properties: KeyProperties
    recovery_id: str | None = None
    deleted_on: datetime | None = None
    scheduled_purge_date: datetime | None = None

    @property
    def name(self) -> str:
        return self.properties.name

    @classmethod
    def from_dict(cls, data: dict) -> "DeletedKey":
        """Build from a deleted key bundle or a deleted key list item."""
        key = KeyVaultKey.from_dict(data) if "key" in data else None
        return cls(
            key=key,
            properties=key.properties if key else KeyProperties.from_dict(data),
            recovery_id=data.get("recoveryId"),
            deleted_on=_timestamp(data.get("deletedDate")),
            scheduled_purge_date=_timestamp(data.get("scheduledPurgeDate")),
        )


@dataclass(frozen=True)
class LifetimeAction:
    """Action triggered at a point in a certificate's lifetime."""

    action: CertificatePolicyAction
    lifetime_percentage: int | None = None
    days_before_expiry: int | None = None

    def to_dict(self) -> dict:
        trigger: dict[str, int] = {}
        if self.lifetime_percentage is not None:
            trigger["lifetime_percentage"] = self.lifetime_percentage
        if self.days_before_expiry is not None:
            trigger["days_before_expiry"] = self.days_before_expiry
        return {"trigger": trigger, "action": {"action_type": self.action.value}}

    @classmethod
    def from_dict(cls, data: dict) -> "LifetimeAction":
        trigger = data.get("trigger", {})
        return cls(
            action=CertificatePolicyAction(data.get("action", {}).get("action_type")),
            lifetime_percentage=trigger.get("lifetime_percentage"),
            days_before_expiry=trigger.get("days_before_expiry"),
        )


@dataclass(frozen=True)
class CertificatePolicy:
    """Issuance policy of a certificate."""

    issuer_name: str | None = "Self"
    subject: str = "CN=xyz"
    validity_in_months: int | None = 12
    content_type: CertificateContentType | None = CertificateContentType.PKCS12
    enabled: bool | None = True
    key_usage: tuple[CertificateKeyUsage, ...] = ()
    lifetime_actions: tuple[LifetimeAction, ...] = ()

    def to_dict(self) -> dict:
        x509_props: dict[str, Any] = {"subject": self.subject}
        if self.validity_in_months is not None:
            x509_props["validity_months"] = self.validity_in_months
        if self.key_usage:
            x509_props["key_usage"] = [usage.value for usage in self.key_usage]

        policy: dict[str, Any] = {"x509_props": x509_props}
        if self.issuer_name is not None:
            policy["issuer"] = {"name": self.issuer_name}
        if self.content_type is not None:
            policy["secret_props"] = {"contentType": self.content_type.value}
        if self.enabled is not None:
            policy["attributes"] = {"enabled": self.enabled}
        if self.lifetime_actions:
            policy["lifetime_actions"] = [action.to_dict() for action in self.lifetime_actions]
        return policy

    @classmethod
    def from_dict(cls, data: dict) -> "CertificatePolicy":
        x509_props = data.get("x509_props", {})
        content_type = data.get("secret_props", {}).get("contentType")
        return cls(
            issuer_name=data.get("issuer", {}).get("name"),
            subject=x509_props.get("subject", ""),
            validity_in_months=x509_props.get("validity_months"),
            content_type=CertificateContentType(content_type) if content_type else None,
            enabled=data.get("attributes", {}).get("enabled"),
            key_usage=tuple(CertificateKeyUsage(u) for u in x509_props.get("key_usage") or ()),
            lifetime_actions=tuple(
                LifetimeAction.from_dict(a) for a in data.get("lifetime_actions") or ()
            ),
        )


def default_certificate_policy() -> CertificatePolicy:
    """Self-signed policy: CN=xyz, 12 months, PKCS#12, auto-renew at 80% lifetime."""
    return CertificatePolicy(
        lifetime_actions=(
            LifetimeAction(action=CertificatePolicyAction.AUTO_RENEW, lifetime_percentage=80),
        ),
    )


@dataclass(frozen=True)
class CertificateCreateOptions:
    """Options for creating a certificate."""

    policy: CertificatePolicy = field(default_factory=default_certificate_policy)
    enabled: bool | None = True
    tags: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict:
        body: dict[str, Any] = {"policy": self.policy.to_dict()}
        if self.enabled is not None:
            body["attributes"] = {"enabled": self.enabled}
        if self.tags:
            body["tags"] = dict(self.tags)
        return body


@dataclass(frozen=True)
class CertificateProperties:
    """Certificate attributes, as listed by the vault."""

    id: str
    name: str
    version: str | None = None
    enabled: bool | None = None
    x509_thumbprint: str | None = None
    created_on: datetime | None = None
    updated_on: datetime | None = None
    expires_on: datetime | None = None
    tags: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "CertificateProperties":
        cert_id = data.get("id", "")
        vault_id = VaultId.parse(cert_id)
        attributes = data.get("attributes", {})
        return cls(
            id=cert_id,
            name=vault_id.name,
            version=vault_id.version,
            enabled=attributes.get("enabled"),
            x509_thumbprint=data.get("x5t"),
            created_on=_timestamp(attributes.get("created")),
            updated_on=_timestamp(attributes.get("updated")),
            expires_on=_timestamp(attributes.get("exp")),
            tags=dict(data.get("tags") or {}),
        )


@dataclass(frozen=True)
class KeyVaultCertificateWithPolicy:
    """Certificate bundle including its policy and DER bytes."""

    properties: CertificateProperties
    policy: CertificatePolicy | None = None
    cer: bytes = b""
    key_id: str | None = None
    secret_id: str | None = None

    @property
    def name(self) -> str:
        return self.properties.name

    @classmethod
    def from_dict(cls, data: dict) -> "KeyVaultCertificateWithPolicy":
        cer = data.get("cer")
        policy = data.get("policy")
        return cls(
            properties=CertificateProperties.from_dict(data),
            policy=CertificatePolicy.from_dict(policy) if policy else None,
            cer=base64.b64decode(cer) if cer else b"",
            key_id=data.get("kid"),
            secret_id=data.get("sid"),
        )


@dataclass(frozen=True)
class DeletedCertificate:
    """Certificate in the soft-deleted state."""

    properties: CertificateProperties
    certificate: KeyVaultCertificateWithPolicy | None = None
    recovery_id: str | None = None
    deleted_on: datetime | None = None
    scheduled_purge_date: datetime | None = None

    @property
    def name(self) -> str:
        return self.properties.name

    @classmethod
    def from_dict(cls, data: dict) -> "DeletedCertificate":
        certificate = KeyVaultCertificateWithPolicy.from_dict(data) if "cer" in data else None
        return cls(
            properties=CertificateProperties.from_dict(data),
            certificate=certificate,
            recovery_id=data.get("recoveryId"),
            deleted_on=_timestamp(data.get("deletedDate")),
            scheduled_purge_date=_timestamp(data.get("scheduledPurgeDate")),
        )


@dataclass(frozen=True)
class CertificateOperation:
    """Pending certificate creation as reported by /certificates/{name}/pending."""

    id: str
    name: str
    status: str | None = None
    status_details: str | None = None
    csr: str | None = None
    request_id: str | None = None
    error: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "CertificateOperation":
        operation_id = data.get("id", "")
        return cls(
            id=operation_id,
            name=VaultId.parse(operation_id).name,
            status=data.get("status"),
            status_details=data.get("status_details"),
            csr=data.get("csr"),
            request_id=data.get("request_id"),
            error=data.get("error"),
        )


@dataclass(frozen=True)
class DownloadCertificateResult:
    """Certificate content downloaded through its backing secret."""

    certificate: str
    content_type: CertificateContentType


@dataclass
class PurgeResult:
    """Result from a vault maintenance run."""

    purged_count: int
    failed_count: int
    purged_names: list[str]
    failed_names: list[str]


class CertificateMetadata(TypedDict):
    """Metadata decoded from certificate bytes."""

    subject: str
    issuer: str
    serialNumber: str
    notBefore: str
    expiry: str
    thumbprint: str
