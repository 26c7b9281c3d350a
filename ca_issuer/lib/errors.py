"""Exceptions raised by CA operations.

Every error wraps the underlying cryptographic, encoding or I/O failure. The
cause is chained with ``raise ... from`` and also kept on ``.cause``. None of
these errors are transient, so callers should not retry.
"""


class CaOperationError(Exception):
    """Base class for all CA operation failures."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class MalformedCAIdentityError(CaOperationError):
    """CA certificate or private key could not be parsed."""


class SigningError(CaOperationError):
    """Signer could not be initialised from the supplied private key."""


class InvalidRequestError(CaOperationError):
    """CSR self-signature rejected (strict request verification only)."""


class CertificateValidityError(CaOperationError):
    """Issued certificate is not currently valid."""


class SignatureVerificationError(CaOperationError):
    """Issued certificate does not verify against the CA public key."""


class StoreAssemblyError(CaOperationError):
    """Credential store refused an entry."""


class PersistenceError(CaOperationError):
    """Credential store could not be serialized, written or read back."""
