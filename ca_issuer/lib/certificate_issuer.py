"""Certificate issuer: signs CSRs into end-entity certificates with the CA key."""

import os
from collections.abc import Callable
from datetime import datetime

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .cert_utils import (
    constant_serial_number,
    deserialize_private_key,
    extract_csr_subject,
    generate_private_key,
    is_currently_valid,
    load_certificate,
    random_serial_number,
    utc_now,
    validate_csr_signature,
    validity_window,
    verify_signature,
)
from .certificate_builder import CertificateBuilder
from .config import VALIDITY_YEARS, DistinguishedName
from .errors import (
    CertificateValidityError,
    InvalidRequestError,
    MalformedCAIdentityError,
    SignatureVerificationError,
    SigningError,
)
from .identity import CAIdentity
from .keystore import CredentialStore
from .logging_config import LOGGER
from .store_adapter import load_ca_identity, to_store, write_to_file

SerialNumberStrategy = Callable[[], int]

SERIAL_NUMBER_STRATEGIES: dict[str, SerialNumberStrategy] = {
    "constant": constant_serial_number,
    "random": random_serial_number,
}


def _parse_certificate(certificate: x509.Certificate | bytes) -> x509.Certificate:
    """Parse CA certificate into its structured form, failing on unreadable fields."""
    if isinstance(certificate, bytes):
        parsed = load_certificate(certificate)
    elif isinstance(certificate, x509.Certificate):
        parsed = x509.load_der_x509_certificate(certificate.public_bytes(serialization.Encoding.DER))
    else:
        raise TypeError(f"expected x509.Certificate or bytes, got {type(certificate).__name__}")
    # Force decoding of the issuer name reused on every sign() call
    parsed.subject.rfc4514_string()
    return parsed


class CertificateIssuer:
    """Certificate authority engine holding an immutable CA identity.

    Issued certificates get:
        - issuer: subject of the CA certificate
        - validity: midnight UTC today + 10 calendar years
        - serial: from `serial_number_strategy` (constant 1 by default)
        - subject and public key copied unchanged from the CSR

    The CSR self-signature is not verified unless `verify_requests` is set.
    Instances hold no mutable state, so `sign` is safe to call from several
    threads at once.
    """

    def __init__(
        self,
        ca_certificate: x509.Certificate | bytes,
        ca_private_key: RSAPrivateKey,
        *,
        serial_number_strategy: SerialNumberStrategy = constant_serial_number,
        verify_requests: bool = False,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize issuer from CA certificate and private key.

        Args:
            ca_certificate: CA certificate, parsed or as PEM/DER bytes
            ca_private_key: Private key that signed `ca_certificate`
            serial_number_strategy: Callable returning the serial for each certificate
            verify_requests: Reject CSRs whose self-signature does not verify
            clock: Returns the current time as an aware datetime

        Raises:
            MalformedCAIdentityError: If the CA certificate cannot be parsed
        """
        try:
            certificate = _parse_certificate(ca_certificate)
            identity = CAIdentity(certificate=certificate, private_key=ca_private_key)
            ca_public_key = identity.public_key
        except (TypeError, ValueError) as e:
            raise MalformedCAIdentityError(f"invalid CA certificate: {e}", e) from e

        self._identity = identity
        self._ca_public_key = ca_public_key
        self._serial_number_strategy = serial_number_strategy
        self._verify_requests = verify_requests
        self._clock = clock

    @classmethod
    def from_pem(
        cls,
        cert_pem: bytes,
        key_pem: bytes,
        password: bytes | None = None,
        **kwargs,
    ) -> "CertificateIssuer":
        """Build issuer from PEM encoded CA certificate and private key.

        Raises:
            MalformedCAIdentityError: If the certificate or key cannot be decoded
        """
        try:
            private_key = deserialize_private_key(key_pem, password=password)
        except (TypeError, ValueError) as e:
            raise MalformedCAIdentityError(f"invalid CA private key: {e}", e) from e
        return cls(cert_pem, private_key, **kwargs)

    @classmethod
    def load(
        cls,
        source: str | os.PathLike[str] | bytes,
        store_password: bytes,
        key_password: bytes,
        **kwargs,
    ) -> "CertificateIssuer":
        """Load issuer from a credential store written by `save_to_file`.

        Raises:
            PersistenceError: If the store cannot be read
            MalformedCAIdentityError: If the stored certificate cannot be parsed
        """
        identity = load_ca_identity(source, store_password, key_password)
        return cls(identity.certificate, identity.private_key, **kwargs)

    @classmethod
    def create_self_signed(
        cls,
        subject: x509.Name | DistinguishedName,
        key_size: int = 2048,
        validity_years: int = VALIDITY_YEARS,
        **kwargs,
    ) -> "CertificateIssuer":
        """Generate a CA key and self-signed root certificate, returning an issuer for them."""
        if isinstance(subject, DistinguishedName):
            subject = subject.to_x509_name()
        clock = kwargs.get("clock", utc_now)
        private_key = generate_private_key(key_size)
        certificate = CertificateBuilder.build_root_ca(
            subject=subject,
            private_key=private_key,
            validity_years=validity_years,
            now=clock(),
        )
        name = subject.rfc4514_string()
        LOGGER.info("Created self-signed CA: %s", name, extra={"subject": name})
        return cls(certificate, private_key, **kwargs)

    @property
    def identity(self) -> CAIdentity:
        return self._identity

    @property
    def ca_certificate(self) -> x509.Certificate:
        return self._identity.certificate

    def sign(self, request: x509.CertificateSigningRequest) -> x509.Certificate:
        """Sign CSR into an end-entity certificate.

        Args:
            request: Certificate signing request to issue a certificate for

        Returns:
            X.509 certificate signed by the CA

        Raises:
            InvalidRequestError: If request verification is enabled and the CSR
                signature is invalid, or the CSR public key cannot be decoded
            SigningError: If the CA key cannot be used for signing
            CertificateValidityError: If the new certificate is not currently valid
            SignatureVerificationError: If the new certificate does not verify
                against the CA public key
        """
        if self._verify_requests and not validate_csr_signature(request):
            raise InvalidRequestError("CSR signature validation failed")

        subject = extract_csr_subject(request)
        try:
            public_key = request.public_key()
        except ValueError as e:
            raise InvalidRequestError(f"unsupported CSR public key: {e}", e) from e

        now = self._clock()
        not_before, not_after = validity_window(now, VALIDITY_YEARS)
        serial_number = self._serial_number_strategy()

        signing_key = self._identity.private_key
        if not isinstance(signing_key, RSAPrivateKey):
            raise SigningError(f"unsupported CA private key type: {type(signing_key).__name__}")

        try:
            certificate = CertificateBuilder.build_end_entity(
                issuer_name=self._identity.issuer_name,
                serial_number=serial_number,
                not_before=not_before,
                not_after=not_after,
                subject=subject,
                public_key=public_key,
                signing_key=signing_key,
            )
        except (TypeError, ValueError) as e:
            raise SigningError(f"could not sign certificate: {e}", e) from e

        if not is_currently_valid(certificate, now):
            raise CertificateValidityError(
                f"issued certificate not valid at {now.isoformat()}: "
                f"{certificate.not_valid_before_utc.isoformat()} - "
                f"{certificate.not_valid_after_utc.isoformat()}"
            )
        if not verify_signature(certificate, self._ca_public_key):
            raise SignatureVerificationError(
                "issued certificate does not verify against the CA public key"
            )

        subject_name = subject.rfc4514_string()
        LOGGER.info(
            "Issued certificate: %s",
            subject_name,
            extra={
                "subject": subject_name,
                "issuer": self._identity.issuer_name.rfc4514_string(),
                "serial": serial_number,
            },
        )
        return certificate

    def to_store(self, private_key_password: bytes) -> CredentialStore:
        """Put the CA certificate and key into a new credential store."""
        return to_store(self._identity, private_key_password)

    def save_to_file(
        self,
        path: str | os.PathLike[str],
        store_password: bytes,
        private_key_password: bytes,
    ) -> None:
        """Write the CA certificate and key to a credential store file."""
        store = self.to_store(private_key_password)
        write_to_file(store, path, store_password)
