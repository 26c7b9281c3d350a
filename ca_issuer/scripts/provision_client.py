#!/usr/bin/env python3
"""Provision client certificate signed by the CA."""

import argparse
import os
import sys
from pathlib import Path

from ca_issuer.lib.ca_manager import CAManager
from ca_issuer.lib.config import CAConfig
from ca_issuer.lib.errors import CaOperationError
from ca_issuer.lib.logging_config import LOGGER
from ca_issuer.lib.ssm_client import SSMClient


def main() -> int:
    """Provision client certificate with specified client ID.

    The CA is read from a local credential store (--keystore) or from SSM
    Parameter Store (--account).

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    parser = argparse.ArgumentParser(description="Provision client certificate")
    parser.add_argument(
        "--client-id",
        required=True,
        help="Client identifier (used as CN in certificate)",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--keystore",
        type=Path,
        help="CA credential store (e.g., ca-issuer/output/ca/ca.keystore)",
    )
    source.add_argument(
        "--account",
        help="Account/environment name to fetch the CA from SSM (e.g., sandbox)",
    )
    parser.add_argument(
        "--project-name",
        default="ca-issuer",
        help="Project name for SSM path prefix (default: ca-issuer)",
    )
    parser.add_argument(
        "--region",
        default="eu-west-2",
        help="AWS region for SSM (default: eu-west-2)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("ca-issuer/output/clients"),
        help="Output directory for client artifacts (default: ca-issuer/output/clients)",
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

    try:
        config = CAConfig()
        ca_manager = CAManager(config)

        LOGGER.info("Provisioning certificate for: %s", args.client_id)
        if args.keystore is not None:
            if not args.store_password or not args.key_password:
                LOGGER.error("Both store and key passwords are required")
                return 1
            result = ca_manager.provision_client_certificate(
                client_id=args.client_id,
                keystore_path=args.keystore,
                store_password=args.store_password.encode("utf-8"),
                key_password=args.key_password.encode("utf-8"),
                output_dir=args.output_dir,
            )
        else:
            result = ca_manager.provision_client_certificate_from_ssm(
                client_id=args.client_id,
                account=args.account,
                ssm_client=SSMClient(region=args.region),
                output_dir=args.output_dir,
                project_name=args.project_name,
            )

        LOGGER.info("Client certificate created:")
        LOGGER.info("  Key: %s", result.key_path)
        LOGGER.info("  Cert: %s", result.cert_path)
        LOGGER.info("  Serial: %s", result.serial_number)
        LOGGER.info("  Metadata: %s", result.metadata_path)
        return 0

    except FileNotFoundError as e:
        LOGGER.error("CA file not found: %s", e)
        return 1
    except CaOperationError as e:
        LOGGER.error("CA operation failed: %s", e)
        return 1
    except Exception as e:
        LOGGER.error("Provisioning failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
