"""Certificate builder for X.509 certificate construction."""

from datetime import datetime

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.hazmat.primitives.asymmetric.types import CertificatePublicKeyTypes

from .cert_utils import utc_now, validity_window
from .config import DEFAULT_SERIAL_NUMBER, SIGNATURE_HASH, VALIDITY_YEARS


class CertificateBuilder:
    """Builds X.509 certificates for the root CA and the end entities it issues."""

    @staticmethod
    def build_root_ca(
        subject: x509.Name,
        private_key: RSAPrivateKey,
        validity_years: int = VALIDITY_YEARS,
        serial_number: int = DEFAULT_SERIAL_NUMBER,
        now: datetime | None = None,
    ) -> x509.Certificate:
        """Build self-signed Root CA certificate.

        The validity window starts at midnight UTC of the current day and runs
        for `validity_years` calendar years.

        Args:
            subject: Distinguished name used as both subject and issuer
            private_key: RSA private key for signing
            validity_years: Certificate validity period in years
            serial_number: Serial number of the root certificate
            now: Reference time for the validity window (defaults to current UTC time)

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        not_before, not_after = validity_window(now or utc_now(), validity_years)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(private_key.public_key())
            .serial_number(serial_number)
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=False,
                    content_commitment=False,
                    key_encipherment=False,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
        )

        return builder.sign(private_key, SIGNATURE_HASH())

    @staticmethod
    def build_end_entity(
        issuer_name: x509.Name,
        serial_number: int,
        not_before: datetime,
        not_after: datetime,
        subject: x509.Name,
        public_key: CertificatePublicKeyTypes,
        signing_key: RSAPrivateKey,
    ) -> x509.Certificate:
        """Build and sign an end-entity certificate.

        Subject and public key are copied as given; no extensions are added.

        Raises:
            TypeError: If the signing key type is not supported by cryptography
            ValueError: If the certificate fields are rejected by cryptography
        """
        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer_name)
            .public_key(public_key)
            .serial_number(serial_number)
            .not_valid_before(not_before)
            .not_valid_after(not_after)
        )

        return builder.sign(signing_key, SIGNATURE_HASH())
