#!/usr/bin/env python3
"""Bootstrap CA by generating a self-signed CA certificate and its credential store."""

import argparse
import os
import sys
from pathlib import Path

from ca_issuer.lib.ca_manager import CAManager
from ca_issuer.lib.config import CAConfig
from ca_issuer.lib.errors import CaOperationError
from ca_issuer.lib.logging_config import LOGGER


def main() -> int:
    """Bootstrap self-signed CA.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Bootstrap CA (self-signed certificate + keystore)")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("ca-issuer/output"),
        help="Output directory for CA artifacts (default: ca-issuer/output)",
    )
    parser.add_argument(
        "--common-name",
        default=None,
        help="CN of the CA certificate (default: from CAConfig)",
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
    args = parser.parse_args()

    if not args.store_password or not args.key_password:
        LOGGER.error("Both store and key passwords are required")
        return 1

    try:
        config = CAConfig()
        if args.common_name:
            config.ca_common_name = args.common_name
        ca_manager = CAManager(config)

        LOGGER.info("Bootstrapping CA...")
        result = ca_manager.bootstrap_ca(
            args.output_dir,
            store_password=args.store_password.encode("utf-8"),
            key_password=args.key_password.encode("utf-8"),
        )

        LOGGER.info("CA created:")
        LOGGER.info("  Cert: %s", result.cert_path)
        LOGGER.info("  Keystore: %s", result.keystore_path)
        LOGGER.info("  Serial: %s", result.serial_number)

        LOGGER.info("Bootstrap complete. Next: run sign_request.py or provision_client.py")
        return 0

    except CaOperationError as e:
        LOGGER.error("CA operation failed: %s", e)
        return 1
    except Exception as e:
        LOGGER.error("Bootstrap failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
