"""Certificate signing request construction."""

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from .cert_utils import KeyPair, generate_keypair
from .config import SIGNATURE_HASH, DistinguishedName
from .errors import SigningError


class CsrBuilder:
    """Builds signed PKCS#10 requests on the requester side."""

    @staticmethod
    def build(subject: x509.Name | DistinguishedName, key_pair: KeyPair) -> x509.CertificateSigningRequest:
        """Build a CSR binding `subject` to the key pair's public key.

        The request is signed with the requester's private key using SHA-256
        with RSA, which makes it a proof of possession for that key.

        Args:
            subject: Subject name of the requester
            key_pair: Requester key pair

        Returns:
            Signed certificate signing request

        Raises:
            SigningError: If the signer cannot be initialised from the key pair
        """
        if isinstance(subject, DistinguishedName):
            subject = subject.to_x509_name()
        if len(subject) == 0:
            raise SigningError("subject must not be empty")

        private_key = key_pair.private_key
        if not isinstance(private_key, RSAPrivateKey):
            raise SigningError(f"unsupported private key type: {type(private_key).__name__}")
        if private_key.public_key().public_numbers() != key_pair.public_key.public_numbers():
            raise SigningError("public key does not match private key")

        try:
            return (
                x509.CertificateSigningRequestBuilder()
                .subject_name(subject)
                .sign(private_key, SIGNATURE_HASH())
            )
        except (TypeError, ValueError) as e:
            raise SigningError(f"could not sign request: {e}", e) from e

    @staticmethod
    def generate_request(
        common_name: str = "test", key_size: int = 2048
    ) -> tuple[KeyPair, x509.CertificateSigningRequest]:
        """Generate a fresh key pair and a CSR for `CN=<common_name>`.

        Returns:
            Tuple of (key_pair, csr)
        """
        key_pair = generate_keypair(key_size)
        csr = CsrBuilder.build(DistinguishedName(common_name=common_name), key_pair)
        return key_pair, csr
