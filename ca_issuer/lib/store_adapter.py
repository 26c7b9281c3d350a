"""Persistence of the CA identity into a password-protected credential store."""

import os
from contextlib import nullcontext
from pathlib import Path
from typing import BinaryIO

from .config import CERTIFICATE_ALIAS, PRIVATE_KEY_ALIAS
from .errors import PersistenceError, StoreAssemblyError
from .identity import CAIdentity
from .keystore import CredentialStore
from .logging_config import LOGGER

Sink = str | os.PathLike[str] | BinaryIO


def to_store(ca_identity: CAIdentity, private_key_password: bytes) -> CredentialStore:
    """Build a credential store holding the CA certificate and private key.

    The certificate goes under the "ca" alias as a trusted entry. The private
    key goes under the "key" alias with a one-certificate chain, protected by
    `private_key_password`.

    Raises:
        StoreAssemblyError: If the store rejects an entry (e.g. empty password)
    """
    store = CredentialStore()
    try:
        store.set_certificate_entry(CERTIFICATE_ALIAS, ca_identity.certificate)
        store.set_key_entry(
            PRIVATE_KEY_ALIAS,
            ca_identity.private_key,
            [ca_identity.certificate],
            private_key_password,
        )
    except (TypeError, ValueError) as e:
        raise StoreAssemblyError(f"could not assemble credential store: {e}", e) from e
    return store


def _open_sink(sink: Sink):
    if isinstance(sink, (str, os.PathLike)):
        return open(sink, "wb")
    # Caller-owned streams are written and flushed but left open
    return nullcontext(sink)


def write_to_file(store: CredentialStore, sink: Sink, store_password: bytes) -> None:
    """Serialize `store` under `store_password` and write it to `sink`.

    `sink` is a filesystem path or a writable binary stream. The store is
    serialized before the sink is touched, so a failed dump leaves an existing
    file intact. A path is opened here and always closed again.

    Raises:
        PersistenceError: If serialization or the write fails
    """
    try:
        data = store.dump(store_password)
        with _open_sink(sink) as stream:
            stream.write(data)
            stream.flush()
    except (OSError, TypeError, ValueError) as e:
        raise PersistenceError(f"could not write credential store: {e}", e) from e

    if isinstance(sink, (str, os.PathLike)):
        path = os.fspath(sink)
        LOGGER.info("Credential store written: %s", path, extra={"path": path})


def load_ca_identity(
    source: str | os.PathLike[str] | bytes,
    store_password: bytes,
    key_password: bytes,
) -> CAIdentity:
    """Read a CA identity back from a credential store file or its bytes.

    Raises:
        PersistenceError: If the store cannot be read, decrypted or lacks CA entries
    """
    try:
        data = source if isinstance(source, bytes) else Path(source).read_bytes()
        store = CredentialStore.load(data, store_password)
        certificate = store.get_certificate(CERTIFICATE_ALIAS)
        private_key = store.get_key(PRIVATE_KEY_ALIAS, key_password)
    except (OSError, KeyError, TypeError, ValueError) as e:
        raise PersistenceError(f"could not load CA from credential store: {e}", e) from e
    return CAIdentity(certificate=certificate, private_key=private_key)
