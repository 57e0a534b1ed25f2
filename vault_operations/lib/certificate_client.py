"""Certificate client for vault certificate operations."""

import logging
import urllib.parse

from vault_operations.lib.cancellation import CancellationToken
from vault_operations.lib.executor import RequestExecutor, raise_for_status
from vault_operations.lib.models import (
    CertificateContentType,
    CertificateCreateOptions,
    CertificateOperation,
    CertificateProperties,
    DeletedCertificate,
    DownloadCertificateResult,
    KeyVaultCertificateWithPolicy,
)
from vault_operations.lib.paging import ItemPaged, PagedLister
from vault_operations.lib.poller import LongRunningOperation, LROPoller, OperationRequest
from vault_operations.lib.polling_methods import CertificateOperationPolling, DeleteRecoverPolling

logger = logging.getLogger(__name__)


def _quote(name: str) -> str:
    return urllib.parse.quote(name, safe="")


class CertificateClient:
    """Certificate client: create, read, list, delete, purge and download certificates."""

    def __init__(self, executor: RequestExecutor) -> None:
        """Initialize certificate client.

        Args:
            executor: Executor bound to the vault URL
        """
        self.executor = executor

    def begin_create_certificate(
        self, name: str, options: CertificateCreateOptions | None = None
    ) -> LongRunningOperation:
        """Start certificate creation.

        Args:
            name: Certificate name
            options: Policy and attributes (self-signed default policy when None)

        Returns:
            Operation whose result is the KeyVaultCertificateWithPolicy
        """
        options = options or CertificateCreateOptions()
        certificate_url = f"/certificates/{_quote(name)}"
        poller = LROPoller(
            self.executor,
            CertificateOperationPolling(
                pending_url=f"{certificate_url}/pending",
                certificate_url=certificate_url,
                deserialize=KeyVaultCertificateWithPolicy.from_dict,
            ),
        )
        handle = poller.start(
            OperationRequest(
                method="POST",
                url=f"{certificate_url}/create",
                resource_id=name,
                body=options.to_dict(),
                expected_status=(202,),
            )
        )
        return LongRunningOperation(poller, handle)

    def get_certificate(self, name: str) -> KeyVaultCertificateWithPolicy:
        """Get the latest version of a certificate with its policy."""
        response = self.executor.execute("GET", f"/certificates/{_quote(name)}")
        raise_for_status(response, 200)
        return KeyVaultCertificateWithPolicy.from_dict(response.body)

    def get_certificate_operation(self, name: str) -> CertificateOperation:
        response = self.executor.execute("GET", f"/certificates/{_quote(name)}/pending")
        raise_for_status(response, 200)
        return CertificateOperation.from_dict(response.body)

    def list_properties_of_certificates(
        self,
        max_page_size: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ItemPaged[CertificateProperties]:
        lister = PagedLister(self.executor, CertificateProperties.from_dict)
        return ItemPaged(lister, "/certificates", {"maxresults": max_page_size}, cancellation)

    def list_deleted_certificates(
        self,
        max_page_size: int | None = None,
        cancellation: CancellationToken | None = None,
    ) -> ItemPaged[DeletedCertificate]:
        lister = PagedLister(self.executor, DeletedCertificate.from_dict)
        return ItemPaged(
            lister, "/deletedcertificates", {"maxresults": max_page_size}, cancellation
        )

    def begin_delete_certificate(self, name: str) -> LongRunningOperation:
        """Delete all versions of a certificate.

        Returns:
            Operation whose result is the DeletedCertificate
        """
        poller = LROPoller(
            self.executor,
            DeleteRecoverPolling(
                f"/deletedcertificates/{_quote(name)}", DeletedCertificate.from_dict
            ),
        )
        handle = poller.start(
            OperationRequest(
                method="DELETE",
                url=f"/certificates/{_quote(name)}",
                resource_id=name,
                expected_status=(200,),
            )
        )
        return LongRunningOperation(poller, handle)

    def purge_deleted_certificate(self, name: str) -> None:
        """Permanently delete a deleted certificate."""
        response = self.executor.execute("DELETE", f"/deletedcertificates/{_quote(name)}")
        raise_for_status(response, 204)
        logger.info("Purged deleted certificate %s", name)

    def download_certificate(self, name: str) -> DownloadCertificateResult:
        """Download certificate content through the secret backing it.

        PKCS#12 content comes back base64 encoded; PEM content as text.

        Raises:
            ValueError: If the certificate has no secret id
        """
        certificate = self.get_certificate(name)
        if not certificate.secret_id:
            raise ValueError(f"Certificate {name} has no secret id")

        secret_path = urllib.parse.urlsplit(certificate.secret_id).path
        response = raise_for_status(self.executor.execute("GET", secret_path), 200)
        secret = response.body
        return DownloadCertificateResult(
            certificate=secret["value"],
            content_type=CertificateContentType(
                secret.get("contentType", CertificateContentType.PKCS12.value)
            ),
        )
