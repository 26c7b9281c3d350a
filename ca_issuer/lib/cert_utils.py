"""Certificate utility functions for key generation, serialization, validity and metadata."""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from ca_issuer.lib.config import DEFAULT_SERIAL_NUMBER
from ca_issuer.lib.models import CertificateMetadata


@dataclass(frozen=True)
class KeyPair:
    """RSA private key together with its public half."""

    private_key: RSAPrivateKey
    public_key: RSAPublicKey


def generate_private_key(key_size: int = 2048) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def generate_keypair(key_size: int = 2048) -> KeyPair:
    """Generate RSA key pair with specified size."""
    private_key = generate_private_key(key_size)
    return KeyPair(private_key=private_key, public_key=private_key.public_key())


def serialize_private_key(key: RSAPrivateKey, password: bytes | None = None) -> bytes:
    """Serialize private key to PEM format (PKCS8).

    The key is encrypted with the best available algorithm when a password is
    given. An empty password is rejected by cryptography with ValueError.
    """
    encryption: serialization.KeySerializationEncryption
    if password is None:
        encryption = serialization.NoEncryption()
    else:
        encryption = serialization.BestAvailableEncryption(password)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=encryption,
    )


def deserialize_private_key(pem_data: bytes, password: bytes | None = None) -> RSAPrivateKey:
    """Deserialize private key from PEM bytes."""
    key = serialization.load_pem_private_key(pem_data, password=password)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("expected RSA private key")
    return key


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def load_certificate(data: bytes) -> x509.Certificate:
    """Load certificate from PEM or DER bytes."""
    if data.lstrip().startswith(b"-----BEGIN"):
        return x509.load_pem_x509_certificate(data)
    return x509.load_der_x509_certificate(data)


def serialize_csr(csr: x509.CertificateSigningRequest) -> bytes:
    """Serialize CSR to PEM format."""
    return csr.public_bytes(serialization.Encoding.PEM)


def deserialize_csr(pem_data: bytes) -> x509.CertificateSigningRequest:
    """Deserialize CSR from PEM bytes."""
    return x509.load_pem_x509_csr(pem_data)


def constant_serial_number() -> int:
    """Return the fixed default serial number (1).

    Every certificate issued with this strategy shares the same serial, which
    does not satisfy the uniqueness expected by X.509 relying parties.
    """
    return DEFAULT_SERIAL_NUMBER


def random_serial_number() -> int:
    """Generate certificate serial number from UUID4.

    Uses UUID v4 (random) for 128-bit values (~122 bits effective entropy),
    above the CA/Browser Forum baseline of 64 bits from a CSPRNG.
    """
    return uuid.uuid4().int


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def start_of_day(moment: datetime) -> datetime:
    """Truncate to midnight UTC of the same calendar day."""
    return moment.astimezone(UTC).replace(hour=0, minute=0, second=0, microsecond=0)


def add_years(moment: datetime, years: int) -> datetime:
    """Add calendar years; 29 February falls back to 28 February in non-leap years."""
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, day=28)


def validity_window(now: datetime, years: int) -> tuple[datetime, datetime]:
    """Return (not_before, not_after) starting at the beginning of the day of `now`."""
    not_before = start_of_day(now)
    return not_before, add_years(not_before, years)


def is_currently_valid(cert: x509.Certificate, now: datetime) -> bool:
    """Check that `now` lies inside the certificate validity window."""
    return cert.not_valid_before_utc <= now <= cert.not_valid_after_utc


def verify_signature(cert: x509.Certificate, public_key: RSAPublicKey) -> bool:
    """Verify certificate signature against an RSA public key.

    Returns True if the signature verifies, False otherwise.
    """
    hash_algorithm = cert.signature_hash_algorithm
    if hash_algorithm is None:
        return False
    try:
        public_key.verify(
            cert.signature,
            cert.tbs_certificate_bytes,
            padding.PKCS1v15(),
            hash_algorithm,
        )
        return True
    except InvalidSignature:
        return False


def extract_csr_subject(csr: x509.CertificateSigningRequest) -> x509.Name:
    """Extract subject DN from CSR."""
    return csr.subject


def validate_csr_signature(csr: x509.CertificateSigningRequest) -> bool:
    """Verify CSR self-signature to prove private key possession.

    Returns:
        True if signature is valid, False otherwise
    """
    try:
        return csr.is_signature_valid
    except (ValueError, TypeError):
        return False


def extract_certificate_metadata(
    cert: x509.Certificate, client_id: str | None = None
) -> CertificateMetadata:
    """Extract certificate metadata for JSON serialization.

    Args:
        cert: X.509 certificate to extract metadata from
        client_id: Optional client identifier (for client certs)

    Returns:
        CertificateMetadata with serial, names, validity and signature algorithm.
        client_id included only when provided (NotRequired field).
    """
    metadata = CertificateMetadata(
        serialNumber=get_certificate_serial_hex(cert),
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        notBefore=cert.not_valid_before_utc.isoformat(),
        expiry=cert.not_valid_after_utc.isoformat(),
        signatureAlgorithm=cert.signature_algorithm_oid.dotted_string,
        issuedAt=utc_now().isoformat(),
    )

    if client_id is not None:
        metadata["client_id"] = client_id

    return metadata
