"""Test fixtures for ca_issuer tests."""

from datetime import UTC, datetime
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from ca_issuer.lib.cert_utils import KeyPair, generate_keypair, generate_private_key
from ca_issuer.lib.certificate_builder import CertificateBuilder
from ca_issuer.lib.certificate_issuer import CertificateIssuer
from ca_issuer.lib.config import CAConfig, DistinguishedName
from ca_issuer.lib.csr_builder import CsrBuilder
from ca_issuer.lib.identity import CAIdentity


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    """Return temporary directory for test output artifacts."""
    return tmp_path


@pytest.fixture
def ca_config() -> CAConfig:
    """Return test CA configuration."""
    return CAConfig(
        country="GB",
        state="London",
        locality="London",
        organization="Test Org",
        organizational_unit="Test Unit",
        ca_common_name="Test Root CA",
        key_size=2048,
    )


@pytest.fixture
def ca_key() -> RSAPrivateKey:
    """Generate RSA private key for the CA."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def ca_dn() -> DistinguishedName:
    """Return test CA distinguished name."""
    return DistinguishedName(
        common_name="Test Root CA",
        country="GB",
        organization="Test Org",
    )


@pytest.fixture
def ca_cert(ca_key: RSAPrivateKey, ca_dn: DistinguishedName) -> x509.Certificate:
    """Generate self-signed CA certificate."""
    return CertificateBuilder.build_root_ca(
        subject=ca_dn.to_x509_name(),
        private_key=ca_key,
    )


@pytest.fixture
def ca_identity(ca_cert: x509.Certificate, ca_key: RSAPrivateKey) -> CAIdentity:
    return CAIdentity(certificate=ca_cert, private_key=ca_key)


@pytest.fixture
def issuer(ca_cert: x509.Certificate, ca_key: RSAPrivateKey) -> CertificateIssuer:
    """Return issuer with the default policy (constant serial, no CSR verification)."""
    return CertificateIssuer(ca_cert, ca_key)


@pytest.fixture
def requester_key_pair() -> KeyPair:
    """Generate RSA key pair for the requester."""
    return generate_keypair(key_size=2048)


@pytest.fixture
def test_subject() -> x509.Name:
    return DistinguishedName(common_name="test").to_x509_name()


@pytest.fixture
def csr(test_subject: x509.Name, requester_key_pair: KeyPair) -> x509.CertificateSigningRequest:
    """Build CSR for CN=test."""
    return CsrBuilder.build(test_subject, requester_key_pair)


@pytest.fixture
def leap_day() -> datetime:
    """Fixed time on 29 February 2024."""
    return datetime(2024, 2, 29, 12, 30, 15, tzinfo=UTC)
