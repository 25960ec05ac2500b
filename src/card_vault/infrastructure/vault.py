"""AWS Secrets Manager gateway for card payloads.

This module is the only code that talks to the secret vault. Each card
payload is stored as a JSON SecretString under an opaque secret name.
Payload contents are never logged.

Deletion uses a recovery window: the secret becomes unreadable at once and
is purged by AWS later. Reading or deleting a secret in that state is
treated as reading or deleting a missing secret.
"""

import json
from typing import Any

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from card_vault.domain.card import CardPayload
from card_vault.domain.exceptions import SecretNotFound, VaultUnavailable
from card_vault.domain.ports import IVaultGateway

logger = structlog.get_logger(__name__)

NOT_FOUND = "ResourceNotFoundException"
ALREADY_EXISTS = "ResourceExistsException"
INVALID_REQUEST = "InvalidRequestException"


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "Unknown")


def _is_marked_for_deletion(error: ClientError) -> bool:
    """Secrets Manager rejects reads and writes of a deleted secret with InvalidRequest."""
    message = error.response.get("Error", {}).get("Message", "").lower()
    return _error_code(error) == INVALID_REQUEST and ("deleted" in message or "deletion" in message)


def build_secrets_client(
    region: str = "us-east-1",
    endpoint_url: str | None = None,
    connect_timeout: int = 5,
    read_timeout: int = 10,
    max_attempts: int = 1,
) -> Any:
    """Create a boto3 Secrets Manager client.

    Args:
        region: AWS region
        endpoint_url: Optional endpoint URL (for LocalStack testing)
        connect_timeout: Seconds to wait for a connection
        read_timeout: Seconds to wait for a response
        max_attempts: Total attempts per call; 1 disables botocore retries

    Returns:
        boto3 ``secretsmanager`` client
    """
    client_config: dict[str, Any] = {
        "region_name": region,
        "config": Config(
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            retries={"max_attempts": max_attempts, "mode": "standard"},
        ),
    }
    if endpoint_url:
        client_config["endpoint_url"] = endpoint_url

    return boto3.client("secretsmanager", **client_config)


class SecretsManagerVault(IVaultGateway):
    """Secret vault gateway backed by AWS Secrets Manager.

    The boto3 client is thread-safe and shared across requests. No retries
    happen at this layer.
    """

    def __init__(
        self,
        client: Any,
        recovery_window_days: int = 7,
        force_delete: bool = False,
    ) -> None:
        """Initialize vault gateway.

        Args:
            client: boto3 ``secretsmanager`` client
            recovery_window_days: Soft-delete window (7 to 30 days)
            force_delete: Delete without a recovery window

        Raises:
            ValueError: If recovery_window_days is outside 7..30
        """
        if not 7 <= recovery_window_days <= 30:
            raise ValueError("recovery_window_days must be between 7 and 30")

        self._client = client
        self.recovery_window_days = recovery_window_days
        self.force_delete = force_delete

    @staticmethod
    def serialize(payload: CardPayload) -> str:
        return json.dumps(payload.to_dict())

    @staticmethod
    def deserialize(secret_string: str) -> CardPayload:
        """Decode a stored SecretString.

        Raises:
            ValueError: If the string is not a card document
        """
        data = json.loads(secret_string)
        if not isinstance(data, dict):
            raise ValueError("Card document must be a JSON object")
        return CardPayload.from_dict(data)

    def store(self, name: str, payload: CardPayload) -> None:
        """Create the secret, or overwrite it if it already exists.

        Raises:
            VaultUnavailable: If the write fails
        """
        secret_string = self.serialize(payload)

        try:
            try:
                self._client.create_secret(Name=name, SecretString=secret_string)
                logger.debug("vault_secret_created", secret_name=name)
            except ClientError as e:
                if _error_code(e) != ALREADY_EXISTS:
                    raise
                self._client.put_secret_value(SecretId=name, SecretString=secret_string)
                logger.debug("vault_secret_overwritten", secret_name=name)

        except ClientError as e:
            error_code = _error_code(e)
            logger.error("vault_store_failed", secret_name=name, error_code=error_code)
            raise VaultUnavailable(f"Failed to store secret {name}: {error_code}") from e

        except BotoCoreError as e:
            logger.error("vault_store_failed", secret_name=name, error=str(e))
            raise VaultUnavailable(f"Vault communication error storing {name}") from e

    def fetch(self, name: str) -> CardPayload:
        """Read and decode the payload under ``name``.

        Raises:
            SecretNotFound: If the secret is absent or scheduled for deletion
            VaultUnavailable: On any other failure, including undecodable payloads
        """
        try:
            response = self._client.get_secret_value(SecretId=name)

        except ClientError as e:
            if _error_code(e) == NOT_FOUND or _is_marked_for_deletion(e):
                logger.debug("vault_secret_not_found", secret_name=name)
                raise SecretNotFound(f"Secret {name} not found") from e
            error_code = _error_code(e)
            logger.error("vault_fetch_failed", secret_name=name, error_code=error_code)
            raise VaultUnavailable(f"Failed to fetch secret {name}: {error_code}") from e

        except BotoCoreError as e:
            logger.error("vault_fetch_failed", secret_name=name, error=str(e))
            raise VaultUnavailable(f"Vault communication error fetching {name}") from e

        secret_string = response.get("SecretString")
        if secret_string is None:
            raise VaultUnavailable(f"Secret {name} has no string value")

        try:
            return self.deserialize(secret_string)
        except ValueError:
            # Do not attach the payload to the log or the error
            logger.error("vault_payload_undecodable", secret_name=name)
            raise VaultUnavailable(f"Secret {name} does not hold a card document") from None

    def remove(self, name: str) -> None:
        """Request deletion of ``name``.

        Succeeds when the secret is already gone or already scheduled for
        deletion.

        Raises:
            VaultUnavailable: If the request fails otherwise
        """
        params: dict[str, Any] = {"SecretId": name}
        if self.force_delete:
            params["ForceDeleteWithoutRecovery"] = True
        else:
            params["RecoveryWindowInDays"] = self.recovery_window_days

        try:
            self._client.delete_secret(**params)
            logger.info("vault_secret_delete_requested", secret_name=name)

        except ClientError as e:
            if _error_code(e) == NOT_FOUND or _is_marked_for_deletion(e):
                logger.info("vault_secret_already_deleted", secret_name=name)
                return
            error_code = _error_code(e)
            logger.error("vault_remove_failed", secret_name=name, error_code=error_code)
            raise VaultUnavailable(f"Failed to delete secret {name}: {error_code}") from e

        except BotoCoreError as e:
            logger.error("vault_remove_failed", secret_name=name, error=str(e))
            raise VaultUnavailable(f"Vault communication error deleting {name}") from e

    def get_plain_secret(self, name: str) -> str:
        """Read a non-card secret (such as a database credential) as text.

        Raises:
            SecretNotFound: If the secret is absent
            VaultUnavailable: On any other failure
        """
        try:
            response = self._client.get_secret_value(SecretId=name)
        except ClientError as e:
            if _error_code(e) == NOT_FOUND or _is_marked_for_deletion(e):
                raise SecretNotFound(f"Secret {name} not found") from e
            raise VaultUnavailable(f"Failed to fetch secret {name}: {_error_code(e)}") from e
        except BotoCoreError as e:
            raise VaultUnavailable(f"Vault communication error fetching {name}") from e

        value = response.get("SecretString")
        if value is None:
            raise VaultUnavailable(f"Secret {name} has no string value")
        return value

    def health_check(self) -> bool:
        """Check that the vault answers a lightweight request."""
        try:
            self._client.list_secrets(MaxResults=1)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning("vault_health_check_failed", error=str(e))
            return False
