"""Result models and metadata types for CA operations."""

from dataclasses import dataclass
from pathlib import Path
from typing import NotRequired, TypedDict


class CertificateMetadata(TypedDict):
    """Issued certificate metadata written next to the certificate as JSON."""

    serialNumber: str
    subject: str
    issuer: str
    notBefore: str
    expiry: str
    signatureAlgorithm: str
    issuedAt: str
    client_id: NotRequired[str]


@dataclass
class BootstrapResult:
    """Result from CA bootstrap operation.

    Contains file paths and serial number for the CA certificate and its
    credential store.
    """

    cert_path: Path
    keystore_path: Path
    metadata_path: Path
    serial_number: str


@dataclass
class IssuedCertResult:
    """Result from signing a CSR read from disk."""

    cert_path: Path
    metadata_path: Path
    serial_number: str


@dataclass
class ClientCertResult:
    """Result from client certificate provisioning.

    Contains file paths and serial number for client certificate artifacts.
    """

    key_path: Path
    cert_path: Path
    csr_path: Path
    metadata_path: Path
    serial_number: str
