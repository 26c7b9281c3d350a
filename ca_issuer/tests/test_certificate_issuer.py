"""Tests for certificate_issuer module."""

from datetime import UTC, datetime, time, timedelta
from unittest.mock import patch

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from ca_issuer.lib.cert_utils import (
    KeyPair,
    add_years,
    generate_keypair,
    generate_private_key,
    random_serial_number,
    serialize_certificate,
    serialize_private_key,
    verify_signature,
)
from ca_issuer.lib.certificate_builder import CertificateBuilder
from ca_issuer.lib.certificate_issuer import CertificateIssuer
from ca_issuer.lib.config import SIGNATURE_ALGORITHM_OID, DistinguishedName
from ca_issuer.lib.csr_builder import CsrBuilder
from ca_issuer.lib.errors import (
    CertificateValidityError,
    InvalidRequestError,
    MalformedCAIdentityError,
    SignatureVerificationError,
    SigningError,
)


class TestConstruction:
    """Tests for CertificateIssuer construction."""

    def test_accepts_certificate_object(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
    ) -> None:
        issuer = CertificateIssuer(ca_cert, ca_key)
        assert issuer.ca_certificate == ca_cert
        assert issuer.identity.issuer_name == ca_cert.subject

    def test_accepts_pem_bytes(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
    ) -> None:
        issuer = CertificateIssuer(serialize_certificate(ca_cert), ca_key)
        assert issuer.ca_certificate == ca_cert

    def test_accepts_der_bytes(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
    ) -> None:
        issuer = CertificateIssuer(ca_cert.public_bytes(serialization.Encoding.DER), ca_key)
        assert issuer.identity.serial_number == ca_cert.serial_number

    def test_malformed_certificate_raises(self, ca_key: RSAPrivateKey) -> None:
        """Unparseable certificate aborts construction."""
        with pytest.raises(MalformedCAIdentityError) as exc_info:
            CertificateIssuer(b"not a certificate", ca_key)
        assert exc_info.value.cause is not None
        assert exc_info.value.__cause__ is exc_info.value.cause

    @pytest.mark.parametrize("value", ["-----BEGIN CERTIFICATE-----", None, 42])
    def test_unsupported_certificate_type_raises(self, ca_key: RSAPrivateKey, value) -> None:
        """Text PEM and other non-bytes input fail as a malformed CA identity."""
        with pytest.raises(MalformedCAIdentityError, match="expected x509.Certificate or bytes"):
            CertificateIssuer(value, ca_key)

    def test_pem_text_accepted_once_encoded(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
    ) -> None:
        pem_text = serialize_certificate(ca_cert).decode("ascii")
        with pytest.raises(MalformedCAIdentityError):
            CertificateIssuer(pem_text, ca_key)  # type: ignore[arg-type]
        assert CertificateIssuer(pem_text.encode("ascii"), ca_key).ca_certificate == ca_cert

    def test_truncated_pem_raises(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
    ) -> None:
        pem = serialize_certificate(ca_cert)
        with pytest.raises(MalformedCAIdentityError):
            CertificateIssuer(pem[: len(pem) // 2], ca_key)

    def test_from_pem(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
    ) -> None:
        issuer = CertificateIssuer.from_pem(
            serialize_certificate(ca_cert),
            serialize_private_key(ca_key, password=b"pw"),
            password=b"pw",
        )
        assert issuer.ca_certificate == ca_cert

    def test_from_pem_bad_key_raises(self, ca_cert: x509.Certificate) -> None:
        with pytest.raises(MalformedCAIdentityError, match="invalid CA private key"):
            CertificateIssuer.from_pem(serialize_certificate(ca_cert), b"garbage")

    def test_create_self_signed(self) -> None:
        """Self-signed issuer uses its own subject as issuer."""
        issuer = CertificateIssuer.create_self_signed(DistinguishedName(common_name="Generated CA"))

        assert issuer.ca_certificate.subject == issuer.ca_certificate.issuer
        assert verify_signature(issuer.ca_certificate, issuer.identity.public_key)


class TestSign:
    """Tests for CertificateIssuer.sign."""

    def test_example_scenario(
        self,
        ca_key: RSAPrivateKey,
        csr: x509.CertificateSigningRequest,
        ca_cert: x509.Certificate,
    ) -> None:
        """CN=test CSR signed by self-signed CA gets the reference fields."""
        now = datetime(2026, 10, 17, 23, 59, 59, tzinfo=UTC)
        issuer = CertificateIssuer(ca_cert, ca_key, clock=lambda: now)
        cert = issuer.sign(csr)
        midnight = datetime.combine(now.date(), time(), tzinfo=UTC)

        assert cert.issuer == ca_cert.subject
        assert cert.serial_number == 1
        assert cert.not_valid_before_utc == midnight
        assert cert.not_valid_after_utc == add_years(midnight, 10)
        assert cert.subject.rfc4514_string() == "CN=test"
        assert verify_signature(cert, ca_cert.public_key())  # type: ignore[arg-type]

    def test_not_before_has_no_time_of_day(
        self,
        issuer: CertificateIssuer,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        cert = issuer.sign(csr)
        assert cert.not_valid_before_utc.time() == time(0, 0, 0)
        assert cert.not_valid_after_utc.time() == time(0, 0, 0)

    def test_validity_is_ten_calendar_years(
        self,
        issuer: CertificateIssuer,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        cert = issuer.sign(csr)
        not_before = cert.not_valid_before_utc
        not_after = cert.not_valid_after_utc

        assert not_after.year - not_before.year == 10
        assert (not_after.month, not_after.day) == (not_before.month, not_before.day) or (
            (not_before.month, not_before.day) == (2, 29) and (not_after.month, not_after.day) == (2, 28)
        )

    def test_leap_day_uses_calendar_arithmetic(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
        csr: x509.CertificateSigningRequest,
        leap_day: datetime,
    ) -> None:
        """29 February 2024 + 10 years is 28 February 2034, not a 3650-day offset."""
        issuer = CertificateIssuer(ca_cert, ca_key, clock=lambda: leap_day)
        cert = issuer.sign(csr)

        assert cert.not_valid_before_utc == datetime(2024, 2, 29, tzinfo=UTC)
        assert cert.not_valid_after_utc == datetime(2034, 2, 28, tzinfo=UTC)
        assert cert.not_valid_after_utc != datetime(2024, 2, 29, tzinfo=UTC) + timedelta(days=3650)

    def test_validity_window_spans_leap_years(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        """Ten calendar years from 1 March 2023 covers three leap days."""
        issuer = CertificateIssuer(
            ca_cert, ca_key, clock=lambda: datetime(2023, 3, 1, 8, 0, tzinfo=UTC)
        )
        cert = issuer.sign(csr)

        assert cert.not_valid_after_utc == datetime(2033, 3, 1, tzinfo=UTC)
        assert (cert.not_valid_after_utc - cert.not_valid_before_utc).days == 3653

    def test_subject_and_public_key_copied_from_csr(
        self,
        issuer: CertificateIssuer,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        cert = issuer.sign(csr)

        assert cert.subject == csr.subject
        assert cert.public_key() == csr.public_key()

    def test_multi_attribute_subject_preserved(
        self,
        issuer: CertificateIssuer,
        requester_key_pair: KeyPair,
    ) -> None:
        dn = DistinguishedName(
            common_name="svc",
            country="GB",
            state="London",
            organization="Test Org",
            organizational_unit="Test Unit",
        )
        cert = issuer.sign(CsrBuilder.build(dn, requester_key_pair))
        assert list(cert.subject) == list(dn.to_x509_name())

    def test_signature_algorithm_is_sha256_with_rsa(
        self,
        issuer: CertificateIssuer,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        cert = issuer.sign(csr)
        assert cert.signature_algorithm_oid == SIGNATURE_ALGORITHM_OID
        assert isinstance(cert.signature_hash_algorithm, hashes.SHA256)

    def test_no_extensions_added(
        self,
        issuer: CertificateIssuer,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        cert = issuer.sign(csr)
        assert len(cert.extensions) == 0

    def test_signature_verifies_against_ca_key_only(
        self,
        issuer: CertificateIssuer,
        csr: x509.CertificateSigningRequest,
        ca_cert: x509.Certificate,
    ) -> None:
        """Signature verifies with the CA public key and not with an unrelated key."""
        cert = issuer.sign(csr)
        unrelated = generate_private_key(2048).public_key()

        assert verify_signature(cert, ca_cert.public_key()) is True  # type: ignore[arg-type]
        assert verify_signature(cert, unrelated) is False

    def test_directly_issued_by_ca(
        self,
        issuer: CertificateIssuer,
        csr: x509.CertificateSigningRequest,
        ca_cert: x509.Certificate,
    ) -> None:
        cert = issuer.sign(csr)
        cert.verify_directly_issued_by(ca_cert)

    def test_signing_twice_yields_identical_certificates(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        """Same CSR signed twice gives equal certificates, both with serial 1.

        Known non-uniqueness: the default serial strategy never varies.
        """
        issuer = CertificateIssuer(
            ca_cert, ca_key, clock=lambda: datetime(2026, 10, 17, 12, 0, tzinfo=UTC)
        )
        first = issuer.sign(csr)
        second = issuer.sign(csr)

        assert first is not second
        assert first.serial_number == second.serial_number == 1
        assert first.issuer == second.issuer
        assert first.subject == second.subject
        assert first.not_valid_before_utc == second.not_valid_before_utc
        assert first.not_valid_after_utc == second.not_valid_after_utc
        assert first.public_key() == second.public_key()
        assert first.tbs_certificate_bytes == second.tbs_certificate_bytes
        assert first == second

    def test_random_serial_strategy(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        issuer = CertificateIssuer(ca_cert, ca_key, serial_number_strategy=random_serial_number)

        first = issuer.sign(csr)
        second = issuer.sign(csr)

        assert first.serial_number != second.serial_number

    def test_custom_serial_strategy(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        serials = iter([1000, 1001])
        issuer = CertificateIssuer(ca_cert, ca_key, serial_number_strategy=lambda: next(serials))

        assert issuer.sign(csr).serial_number == 1000
        assert issuer.sign(csr).serial_number == 1001


class TestRequestVerification:
    """Tests for CSR self-signature handling."""

    @pytest.fixture
    def tampered_csr(self, requester_key_pair: KeyPair) -> x509.CertificateSigningRequest:
        """CSR whose public key was swapped after signing."""
        other = generate_keypair(2048)
        original = CsrBuilder.build(DistinguishedName(common_name="test"), requester_key_pair)
        other_csr = CsrBuilder.build(DistinguishedName(common_name="test"), other)

        # Splice the signature of one request onto the other request body
        der = bytearray(other_csr.public_bytes(serialization.Encoding.DER))
        sig_offset = der.rfind(other_csr.signature)
        der[sig_offset : sig_offset + len(other_csr.signature)] = original.signature
        return x509.load_der_x509_csr(bytes(der))

    def test_permissive_by_default(
        self,
        issuer: CertificateIssuer,
        tampered_csr: x509.CertificateSigningRequest,
    ) -> None:
        """Default issuer signs CSRs without checking their self-signature."""
        assert not tampered_csr.is_signature_valid
        cert = issuer.sign(tampered_csr)
        assert cert.public_key() == tampered_csr.public_key()

    def test_strict_rejects_invalid_signature(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
        tampered_csr: x509.CertificateSigningRequest,
    ) -> None:
        issuer = CertificateIssuer(ca_cert, ca_key, verify_requests=True)
        with pytest.raises(InvalidRequestError, match="CSR signature validation failed"):
            issuer.sign(tampered_csr)

    def test_strict_accepts_valid_signature(
        self,
        ca_cert: x509.Certificate,
        ca_key: RSAPrivateKey,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        issuer = CertificateIssuer(ca_cert, ca_key, verify_requests=True)
        assert issuer.sign(csr).subject == csr.subject


class TestSelfChecks:
    """Tests for the post-signing checks."""

    def test_non_rsa_ca_key_raises_signing_error(
        self,
        ca_cert: x509.Certificate,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        ec_key = ec.generate_private_key(ec.SECP256R1())
        issuer = CertificateIssuer(ca_cert, ec_key)  # type: ignore[arg-type]

        with pytest.raises(SigningError, match="unsupported CA private key type"):
            issuer.sign(csr)

    def test_mismatched_ca_key_raises_signature_verification_error(
        self,
        ca_cert: x509.Certificate,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        """Key that did not sign the CA certificate is detected after signing."""
        issuer = CertificateIssuer(ca_cert, generate_private_key(2048))

        with pytest.raises(SignatureVerificationError):
            issuer.sign(csr)

    def test_window_not_containing_now_raises_validity_error(
        self,
        issuer: CertificateIssuer,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        """Validity check fails when the computed window excludes the current time."""
        future = datetime.now(UTC) + timedelta(days=2)
        with patch(
            "ca_issuer.lib.certificate_issuer.validity_window",
            return_value=(future, future + timedelta(days=1)),
        ):
            with pytest.raises(CertificateValidityError):
                issuer.sign(csr)

    def test_builder_failure_raises_signing_error(
        self,
        issuer: CertificateIssuer,
        csr: x509.CertificateSigningRequest,
    ) -> None:
        with patch.object(CertificateBuilder, "build_end_entity", side_effect=TypeError("boom")):
            with pytest.raises(SigningError) as exc_info:
                issuer.sign(csr)
        assert isinstance(exc_info.value.__cause__, TypeError)
