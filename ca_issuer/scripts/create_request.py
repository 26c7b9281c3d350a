#!/usr/bin/env python3
"""Generate a key pair and a signed CSR for submission to the CA."""

import argparse
import os
import sys
from pathlib import Path

from ca_issuer.lib.cert_utils import generate_keypair, serialize_csr, serialize_private_key
from ca_issuer.lib.config import CAConfig, DistinguishedName
from ca_issuer.lib.csr_builder import CsrBuilder
from ca_issuer.lib.errors import CaOperationError
from ca_issuer.lib.logging_config import LOGGER


def main() -> int:
    """Write `<common name>.key` and `<common name>.csr` to the output directory.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Create certificate signing request")
    parser.add_argument(
        "--common-name",
        required=True,
        help="CN of the requested certificate",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("ca-issuer/output/requests"),
        help="Output directory for key and CSR (default: ca-issuer/output/requests)",
    )
    parser.add_argument(
        "--key-password",
        default=os.environ.get("REQUEST_KEY_PASSWORD"),
        help="Encrypt the generated private key (default: $REQUEST_KEY_PASSWORD, unencrypted if unset)",
    )
    args = parser.parse_args()

    try:
        config = CAConfig()
        key_pair = generate_keypair(config.key_size)
        subject = DistinguishedName.from_config(config, args.common_name)
        csr = CsrBuilder.build(subject, key_pair)

        args.output_dir.mkdir(parents=True, exist_ok=True)
        key_path = args.output_dir / f"{args.common_name}.key"
        csr_path = args.output_dir / f"{args.common_name}.csr"

        password = args.key_password.encode("utf-8") if args.key_password else None
        key_path.write_bytes(serialize_private_key(key_pair.private_key, password=password))
        csr_path.write_bytes(serialize_csr(csr))

        LOGGER.info("Request created:")
        LOGGER.info("  Key: %s", key_path)
        LOGGER.info("  CSR: %s", csr_path)
        return 0

    except CaOperationError as e:
        LOGGER.error("CSR creation failed: %s", e)
        return 1
    except Exception as e:
        LOGGER.error("Request creation failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
