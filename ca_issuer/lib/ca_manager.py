"""CA manager for filesystem-backed certificate authority operations."""

import json
from pathlib import Path

from cryptography import x509

from .cert_utils import (
    deserialize_csr,
    extract_certificate_metadata,
    generate_keypair,
    serialize_certificate,
    serialize_csr,
    serialize_private_key,
)
from .certificate_issuer import SERIAL_NUMBER_STRATEGIES, CertificateIssuer
from .config import CAConfig, DistinguishedName
from .csr_builder import CsrBuilder
from .errors import InvalidRequestError
from .logging_config import LOGGER
from .models import BootstrapResult, ClientCertResult, IssuedCertResult
from .ssm_client import SSMClient


class CAManager:
    """Certificate Authority manager for CA operations."""

    def __init__(self, config: CAConfig) -> None:
        """Initialize CA manager with configuration.

        Args:
            config: CA configuration with validity, issuance policy and DN template

        Raises:
            ValueError: If the configured serial strategy is unknown
        """
        if config.serial_strategy not in SERIAL_NUMBER_STRATEGIES:
            raise ValueError(f"unknown serial strategy: {config.serial_strategy}")
        self.config = config

    def _issuer_options(self) -> dict:
        return {
            "serial_number_strategy": SERIAL_NUMBER_STRATEGIES[self.config.serial_strategy],
            "verify_requests": self.config.verify_requests,
        }

    def bootstrap_ca(
        self,
        output_base_dir: Path,
        store_password: bytes,
        key_password: bytes,
    ) -> BootstrapResult:
        """Create a self-signed CA and write its artifacts to the filesystem.

        Generates:
            - ca/ca.pem: self-signed CA certificate
            - ca/ca.keystore: credential store with the certificate and private key
            - ca/metadata.json: serial number and validity dates

        Args:
            output_base_dir: Base directory for output artifacts
            store_password: Password protecting the credential store
            key_password: Password protecting the private key entry

        Returns:
            BootstrapResult with file paths and serial number
        """
        ca_dir = output_base_dir / "ca"
        ca_dir.mkdir(parents=True, exist_ok=True)

        issuer = CertificateIssuer.create_self_signed(
            DistinguishedName.from_config(self.config, self.config.ca_common_name),
            key_size=self.config.key_size,
            validity_years=self.config.root_validity_years,
            **self._issuer_options(),
        )

        cert_path = ca_dir / "ca.pem"
        keystore_path = ca_dir / "ca.keystore"
        metadata_path = ca_dir / "metadata.json"

        cert_path.write_bytes(serialize_certificate(issuer.ca_certificate))
        issuer.save_to_file(keystore_path, store_password, key_password)

        metadata = extract_certificate_metadata(issuer.ca_certificate)
        metadata_path.write_text(json.dumps(metadata, indent=2))

        return BootstrapResult(
            cert_path=cert_path,
            keystore_path=keystore_path,
            metadata_path=metadata_path,
            serial_number=metadata["serialNumber"],
        )

    def load_issuer(
        self,
        keystore_path: Path,
        store_password: bytes,
        key_password: bytes,
    ) -> CertificateIssuer:
        """Load CA from its credential store, applying the configured issuance policy.

        Raises:
            FileNotFoundError: If the credential store does not exist
        """
        if not keystore_path.exists():
            raise FileNotFoundError(f"CA keystore not found: {keystore_path}")
        return CertificateIssuer.load(
            keystore_path, store_password, key_password, **self._issuer_options()
        )

    def sign_request(
        self,
        csr_path: Path,
        keystore_path: Path,
        store_password: bytes,
        key_password: bytes,
        output_dir: Path,
    ) -> IssuedCertResult:
        """Sign a PEM CSR from disk with the stored CA.

        Writes `<common name>/cert.pem` and `<common name>/metadata.json` under
        `output_dir`.

        Raises:
            FileNotFoundError: If the CSR or CA keystore not found
            InvalidRequestError: If the CSR subject cannot name a directory under `output_dir`
        """
        if not csr_path.exists():
            raise FileNotFoundError(f"CSR not found: {csr_path}")

        issuer = self.load_issuer(keystore_path, store_password, key_password)
        csr = deserialize_csr(csr_path.read_bytes())
        cert_dir = _output_subdir(output_dir, _directory_name(csr.subject))
        certificate = issuer.sign(csr)

        cert_dir.mkdir(parents=True, exist_ok=True)

        cert_path = cert_dir / "cert.pem"
        metadata_path = cert_dir / "metadata.json"

        cert_path.write_bytes(serialize_certificate(certificate))
        metadata = extract_certificate_metadata(certificate)
        metadata_path.write_text(json.dumps(metadata, indent=2))

        return IssuedCertResult(
            cert_path=cert_path,
            metadata_path=metadata_path,
            serial_number=metadata["serialNumber"],
        )

    def provision_client_certificate(
        self,
        client_id: str,
        keystore_path: Path,
        store_password: bytes,
        key_password: bytes,
        output_dir: Path,
    ) -> ClientCertResult:
        """Provision client certificate signed by the stored CA.

        Generates:
            - Client private key
            - CSR with client_id as CN
            - Certificate signed by the CA
            - Metadata JSON

        Raises:
            FileNotFoundError: If the CA keystore not found
            ValueError: If `client_id` resolves outside `output_dir`
        """
        issuer = self.load_issuer(keystore_path, store_password, key_password)
        return self._provision(client_id, issuer, output_dir)

    def provision_client_certificate_from_ssm(
        self,
        client_id: str,
        account: str,
        ssm_client: SSMClient,
        output_dir: Path,
        project_name: str = "ca-issuer",
    ) -> ClientCertResult:
        """Provision client certificate using CA material from SSM.

        Args:
            client_id: Client identifier (used as CN in certificate)
            account: Account/environment name (e.g., 'sandbox')
            ssm_client: SSM client for fetching the CA
            output_dir: Output directory for client artifacts
            project_name: Project name for SSM path prefix

        Raises:
            ValueError: If CA not found in SSM
        """
        key_pem, cert_pem = ssm_client.get_ca(project_name=project_name, account=account)
        issuer = CertificateIssuer.from_pem(cert_pem, key_pem, **self._issuer_options())
        return self._provision(client_id, issuer, output_dir)

    def _provision(
        self,
        client_id: str,
        issuer: CertificateIssuer,
        output_dir: Path,
    ) -> ClientCertResult:
        client_dir = _output_subdir(output_dir, client_id)
        key_pair = generate_keypair(self.config.key_size)
        csr = CsrBuilder.build(DistinguishedName.from_config(self.config, client_id), key_pair)
        client_cert = issuer.sign(csr)

        client_dir.mkdir(parents=True, exist_ok=True)

        key_path = client_dir / "client.key"
        cert_path = client_dir / "client.pem"
        csr_path = client_dir / "client.csr"
        metadata_path = client_dir / "metadata.json"

        key_path.write_bytes(serialize_private_key(key_pair.private_key))
        cert_path.write_bytes(serialize_certificate(client_cert))
        csr_path.write_bytes(serialize_csr(csr))

        metadata = extract_certificate_metadata(client_cert, client_id=client_id)
        metadata_path.write_text(json.dumps(metadata, indent=2))

        LOGGER.info(
            "Provisioned client certificate: %s",
            client_id,
            extra={"client_id": client_id, "serial": metadata["serialNumber"]},
        )

        return ClientCertResult(
            key_path=key_path,
            cert_path=cert_path,
            csr_path=csr_path,
            metadata_path=metadata_path,
            serial_number=metadata["serialNumber"],
        )


def _directory_name(subject: x509.Name) -> str:
    """Directory name for an issued certificate: the subject CN, else the full RFC 4514 name.

    Raises:
        InvalidRequestError: If the cleaned name is only dots
    """
    common_names = subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)
    name = str(common_names[0].value) if common_names else subject.rfc4514_string()
    name = "".join(c if c.isalnum() or c in "-_." else "_" for c in name) or "unnamed"
    if not name.strip("."):
        raise InvalidRequestError(
            f"subject cannot be used as a directory name: {subject.rfc4514_string()}"
        )
    return name


def _output_subdir(output_dir: Path, name: str) -> Path:
    """Return `output_dir / name`, refusing names that resolve outside `output_dir`."""
    base = output_dir.resolve()
    target = (output_dir / name).resolve()
    if target == base or not target.is_relative_to(base):
        raise ValueError(f"output path escapes {output_dir}: {name}")
    return output_dir / name
