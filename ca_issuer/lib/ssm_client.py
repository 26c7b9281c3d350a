"""Read-only access to CA material kept in AWS SSM Parameter Store."""

import boto3
from botocore.exceptions import ClientError

from .logging_config import LOGGER


def ca_parameter_paths(project_name: str, account: str) -> tuple[str, str]:
    """Parameter names holding the CA private key and certificate PEMs."""
    prefix = f"/{project_name}/{account}/ca"
    return f"{prefix}/private-key", f"{prefix}/certificate"


class SSMClient:
    """Fetches a CA identity published to Parameter Store by the deployment pipeline."""

    def __init__(self, region: str = "eu-west-2") -> None:
        self.client = boto3.client("ssm", region_name=region)

    def _read(self, name: str, decrypt: bool) -> bytes:
        response = self.client.get_parameter(Name=name, WithDecryption=decrypt)
        return response["Parameter"]["Value"].encode("utf-8")

    def get_ca(self, project_name: str, account: str) -> tuple[bytes, bytes]:
        """Fetch CA key and certificate PEMs.

        The key parameter is a SecureString and is read decrypted; the
        certificate is a plain String.

        Args:
            project_name: Parameter prefix (e.g., 'ca-issuer')
            account: Account/environment name (e.g., 'sandbox')

        Returns:
            Tuple of (private_key_pem, certificate_pem)

        Raises:
            ValueError: If either parameter does not exist
            ClientError: For any other SSM failure
        """
        key_path, cert_path = ca_parameter_paths(project_name, account)

        try:
            key_pem = self._read(key_path, decrypt=True)
            cert_pem = self._read(cert_path, decrypt=False)
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ParameterNotFound":
                raise ValueError(
                    f"CA not found in SSM. Paths checked: {key_path}, {cert_path}"
                ) from e
            raise

        LOGGER.info("Loaded CA from SSM: %s", cert_path, extra={"path": cert_path})
        return key_pem, cert_pem
