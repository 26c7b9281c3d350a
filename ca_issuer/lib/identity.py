"""CA identity: the CA certificate together with its signing key."""

from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey


@dataclass(frozen=True)
class CAIdentity:
    """CA certificate and the private key that produced its signature.

    The key is trusted to match the certificate; this is not checked here.
    """

    certificate: x509.Certificate
    private_key: RSAPrivateKey

    @property
    def issuer_name(self) -> x509.Name:
        """Subject of the CA certificate, used as issuer of every issued certificate."""
        return self.certificate.subject

    @property
    def serial_number(self) -> int:
        return self.certificate.serial_number

    @property
    def public_key(self) -> RSAPublicKey:
        public_key = self.certificate.public_key()
        if not isinstance(public_key, RSAPublicKey):
            raise ValueError("CA certificate public key must be RSA type")
        return public_key
