"""Credential store backed by a Java KeyStore (JKS) file.

Trusted certificates are stored unprotected. Private keys are encrypted with
their own entry password before they enter the store, and the whole file is
integrity-protected by the store password, so the two passwords are
independent. The output loads with `keytool` and any other JKS reader.
"""

import copy
import struct
from dataclasses import dataclass

import jks
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from jks.util import (
    BadKeystoreFormatException,
    DecryptionFailureException,
    KeystoreException,
    KeystoreSignatureException,
)

STORE_TYPE = "jks"
JKS_MAGIC = b"\xfe\xed\xfe\xed"


def _password_text(password: bytes) -> str:
    """JKS passwords are character strings; reject empty ones."""
    if not password:
        raise ValueError("password must be 1 or more bytes")
    return password.decode("utf-8")


def _certificate_der(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.DER)


@dataclass(frozen=True)
class TrustedCertificateEntry:
    """Certificate stored without password protection."""

    certificate: x509.Certificate


@dataclass(frozen=True)
class PrivateKeyEntry:
    """Encrypted private key with its certificate chain."""

    protected: jks.PrivateKeyEntry
    chain: tuple[x509.Certificate, ...]

    def private_key(self, password: bytes) -> RSAPrivateKey:
        """Decrypt the key with the entry password.

        Raises:
            ValueError: If the password is wrong or the key is not RSA
        """
        # decrypt() mutates the entry; keep the stored one encrypted
        entry = copy.copy(self.protected)
        try:
            entry.decrypt(_password_text(password))
        except DecryptionFailureException as e:
            raise ValueError(f"private key password incorrect: {e}") from e

        key = serialization.load_der_private_key(entry.pkey_pkcs8, password=None)
        if not isinstance(key, RSAPrivateKey):
            raise ValueError("expected RSA private key")
        return key


Entry = TrustedCertificateEntry | PrivateKeyEntry


class CredentialStore:
    """In-memory credential store, serialized with `dump` and read back with `load`.

    Aliases are case-insensitive and kept in lower case, as JKS does.
    """

    def __init__(self) -> None:
        self._entries: dict[str, Entry] = {}

    def __contains__(self, alias: object) -> bool:
        return isinstance(alias, str) and alias.lower() in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def aliases(self) -> list[str]:
        """Return entry aliases in insertion order."""
        return list(self._entries)

    def set_certificate_entry(self, alias: str, certificate: x509.Certificate) -> None:
        """Store a trusted certificate under `alias`, replacing any previous entry."""
        self._entries[alias.lower()] = TrustedCertificateEntry(certificate)

    def set_key_entry(
        self,
        alias: str,
        private_key: RSAPrivateKey,
        chain: list[x509.Certificate],
        password: bytes,
    ) -> None:
        """Store a private key and its certificate chain, protected by `password`.

        Raises:
            ValueError: If the chain is empty, does not start with the key's
                certificate, or the password is empty
        """
        if not chain:
            raise ValueError("private key entry requires a certificate chain")
        if chain[0].public_key().public_numbers() != private_key.public_key().public_numbers():
            raise ValueError("first certificate of the chain does not match the private key")
        key_password = _password_text(password)

        pkcs8 = private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        protected = jks.PrivateKeyEntry.new(
            alias.lower(), [_certificate_der(c) for c in chain], pkcs8, "pkcs8"
        )
        protected.encrypt(key_password)
        self._entries[alias.lower()] = PrivateKeyEntry(protected=protected, chain=tuple(chain))

    def is_certificate_entry(self, alias: str) -> bool:
        return isinstance(self._entries.get(alias.lower()), TrustedCertificateEntry)

    def is_key_entry(self, alias: str) -> bool:
        return isinstance(self._entries.get(alias.lower()), PrivateKeyEntry)

    def _get(self, alias: str) -> Entry:
        try:
            return self._entries[alias.lower()]
        except KeyError:
            raise KeyError(f"no entry for alias: {alias}") from None

    def get_certificate(self, alias: str) -> x509.Certificate:
        """Return the trusted certificate, or the first certificate of a key entry's chain."""
        entry = self._get(alias)
        if isinstance(entry, TrustedCertificateEntry):
            return entry.certificate
        return entry.chain[0]

    def get_certificate_chain(self, alias: str) -> list[x509.Certificate]:
        entry = self._get(alias)
        if not isinstance(entry, PrivateKeyEntry):
            raise ValueError(f"alias is not a private key entry: {alias}")
        return list(entry.chain)

    def get_key(self, alias: str, password: bytes) -> RSAPrivateKey:
        """Decrypt and return the private key stored under `alias`.

        Raises:
            ValueError: If the alias is not a key entry or the password is wrong
        """
        entry = self._get(alias)
        if not isinstance(entry, PrivateKeyEntry):
            raise ValueError(f"alias is not a private key entry: {alias}")
        return entry.private_key(password)

    def dump(self, password: bytes) -> bytes:
        """Serialize the store as JKS, integrity-protected by `password`.

        Raises:
            ValueError: If the password is empty
        """
        store_password = _password_text(password)
        entries = []
        for alias, entry in self._entries.items():
            if isinstance(entry, TrustedCertificateEntry):
                entries.append(jks.TrustedCertEntry.new(alias, _certificate_der(entry.certificate)))
            else:
                entries.append(entry.protected)
        return jks.KeyStore.new(STORE_TYPE, entries).saves(store_password)

    @classmethod
    def load(cls, data: bytes, password: bytes) -> "CredentialStore":
        """Read back a JKS store.

        Raises:
            ValueError: If the data is not a JKS store, the password is wrong
                or an entry is corrupted
        """
        store_password = _password_text(password)
        if not data.startswith(JKS_MAGIC):
            raise ValueError("not a JKS credential store")

        try:
            keystore = jks.KeyStore.loads(data, store_password, try_decrypt_keys=False)
        except KeystoreSignatureException as e:
            raise ValueError("store password incorrect or store corrupted") from e
        except BadKeystoreFormatException as e:
            raise ValueError(f"not a JKS credential store: {e}") from e
        except (KeystoreException, struct.error, IndexError) as e:
            raise ValueError(f"corrupted credential store: {e}") from e

        store = cls()
        for alias, item in keystore.entries.items():
            if isinstance(item, jks.TrustedCertEntry):
                store._entries[alias] = TrustedCertificateEntry(
                    x509.load_der_x509_certificate(item.cert)
                )
            elif isinstance(item, jks.PrivateKeyEntry):
                chain = tuple(x509.load_der_x509_certificate(der) for _, der in item.cert_chain)
                store._entries[alias] = PrivateKeyEntry(protected=item, chain=chain)
            else:
                raise ValueError(f"unsupported entry type for alias {alias}: {type(item).__name__}")
        return store
