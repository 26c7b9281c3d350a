#!/usr/bin/env python3
"""Sign a CSR with the CA held in a credential store."""

import argparse
import os
import sys
from pathlib import Path

from ca_issuer.lib.ca_manager import CAManager
from ca_issuer.lib.config import CAConfig
from ca_issuer.lib.errors import CaOperationError
from ca_issuer.lib.logging_config import LOGGER


def main() -> int:
    """Issue a certificate for the given CSR.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Sign certificate signing request")
    parser.add_argument("--csr", type=Path, required=True, help="PEM encoded CSR")
    parser.add_argument(
        "--keystore",
        type=Path,
        required=True,
        help="CA credential store (e.g., ca-issuer/output/ca/ca.keystore)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("ca-issuer/output/issued"),
        help="Output directory for issued certificates (default: ca-issuer/output/issued)",
    )
    parser.add_argument(
        "--store-password",
        default=os.environ.get("CA_STORE_PASSWORD"),
        help="Credential store password (default: $CA_STORE_PASSWORD)",
    )
    parser.add_argument(
        "--key-password",
        default=os.environ.get("CA_KEY_PASSWORD"),
        help="CA private key password (default: $CA_KEY_PASSWORD)",
    )
    parser.add_argument(
        "--verify-request",
        action="store_true",
        help="Reject CSRs whose self-signature does not verify",
    )
    args = parser.parse_args()

    if not args.store_password or not args.key_password:
        LOGGER.error("Both store and key passwords are required")
        return 1

    try:
        config = CAConfig(verify_requests=args.verify_request)
        ca_manager = CAManager(config)

        LOGGER.info("Signing request: %s", args.csr)
        result = ca_manager.sign_request(
            csr_path=args.csr,
            keystore_path=args.keystore,
            store_password=args.store_password.encode("utf-8"),
            key_password=args.key_password.encode("utf-8"),
            output_dir=args.output_dir,
        )

        LOGGER.info("Certificate issued:")
        LOGGER.info("  Cert: %s", result.cert_path)
        LOGGER.info("  Serial: %s", result.serial_number)
        LOGGER.info("  Metadata: %s", result.metadata_path)
        return 0

    except FileNotFoundError as e:
        LOGGER.error("Input file not found: %s", e)
        return 1
    except CaOperationError as e:
        LOGGER.error("CA operation failed: %s", e)
        return 1
    except Exception as e:
        LOGGER.error("Signing failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
