"""CA configuration dataclasses and issuance constants."""

from dataclasses import dataclass

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.x509 import oid

# Issuance constants, fixed for the lifetime of the process
SIGNATURE_HASH = hashes.SHA256
SIGNATURE_ALGORITHM_OID = oid.SignatureAlgorithmOID.RSA_WITH_SHA256
VALIDITY_YEARS = 10
DEFAULT_SERIAL_NUMBER = 1

# Credential store aliases
CERTIFICATE_ALIAS = "ca"
PRIVATE_KEY_ALIAS = "key"


@dataclass
class CAConfig:
    """CA configuration with no AWS dependencies."""

    country: str | None = "GB"
    state: str | None = "London"
    locality: str | None = "London"
    organization: str | None = "CA Issuer"
    organizational_unit: str | None = "Engineering"
    ca_common_name: str = "CA Issuer Root CA"
    root_validity_years: int = VALIDITY_YEARS
    key_size: int = 2048
    serial_strategy: str = "constant"
    verify_requests: bool = False


@dataclass(frozen=True)
class DistinguishedName:
    """X.509 Subject Distinguished Name.

    Only the attributes that are set end up in the name, always in
    C, ST, L, O, OU, CN order.
    """

    common_name: str
    country: str | None = None
    state: str | None = None
    locality: str | None = None
    organization: str | None = None
    organizational_unit: str | None = None

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name for certificate generation."""
        components = [
            (oid.NameOID.COUNTRY_NAME, self.country),
            (oid.NameOID.STATE_OR_PROVINCE_NAME, self.state),
            (oid.NameOID.LOCALITY_NAME, self.locality),
            (oid.NameOID.ORGANIZATION_NAME, self.organization),
            (oid.NameOID.ORGANIZATIONAL_UNIT_NAME, self.organizational_unit),
            (oid.NameOID.COMMON_NAME, self.common_name),
        ]
        return x509.Name(
            [x509.NameAttribute(name_oid, value) for name_oid, value in components if value]
        )

    @classmethod
    def from_config(cls, config: CAConfig, common_name: str) -> "DistinguishedName":
        """Build DN from CAConfig fields + common_name."""
        return cls(
            common_name=common_name,
            country=config.country,
            state=config.state,
            locality=config.locality,
            organization=config.organization,
            organizational_unit=config.organizational_unit,
        )
